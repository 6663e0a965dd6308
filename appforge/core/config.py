from pydantic_settings import BaseSettings
from pydantic import field_validator
from typing import Dict, Any
from pathlib import Path


class Settings(BaseSettings):
    """Application settings - all configurable via environment variables"""

    # ==========================================
    # Application
    # ==========================================
    APP_NAME: str = "AppForge"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    # ==========================================
    # Logging
    # ==========================================
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""  # Empty disables the rotating file handler

    # ==========================================
    # Claude AI (multi-tool backend)
    # ==========================================
    ANTHROPIC_API_KEY: str = ""
    ANTHROPIC_BASE_URL: str = ""  # Empty means use default Anthropic URL
    CLAUDE_MODEL: str = "claude-sonnet-4-20250514"
    CLAUDE_MAX_TOKENS: int = 16384
    CLAUDE_TEMPERATURE: float = 0.7
    CLAUDE_REQUEST_TIMEOUT: int = 300  # 5 minutes for large multi-file turns
    CLAUDE_CONNECT_TIMEOUT: int = 60  # seconds
    CLAUDE_MAX_RETRIES: int = 5
    CLAUDE_RETRY_BASE_DELAY: float = 2.0  # seconds
    CLAUDE_RETRY_MAX_DELAY: float = 30.0  # seconds

    # ==========================================
    # Gemini (single-tool backend)
    # ==========================================
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.5-pro"
    GEMINI_MAX_OUTPUT_TOKENS: int = 65536
    GEMINI_TEMPERATURE: float = 1.0
    GEMINI_MAX_RETRIES: int = 3  # Shares the CLAUDE_RETRY_* backoff delays

    # ==========================================
    # Agent loop limits
    # ==========================================
    AGENT_MAX_ITERATIONS: int = 15
    AGENT_MAX_BACKEND_CALLS: int = 100
    AGENT_CONTINUATION_BATCH_SIZE: int = 3  # Files requested per continuation prompt
    AGENT_MAX_PLAN_RETRIES: int = 1

    # ==========================================
    # Tool executor
    # ==========================================
    FIX_ERROR_CONTENT_CAP: int = 3000  # Characters of file content returned by fix_error
    SEARCH_MAX_MATCHES: int = 200

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields in .env that aren't defined in Settings

    @field_validator("AGENT_MAX_ITERATIONS", "AGENT_MAX_BACKEND_CALLS", "AGENT_CONTINUATION_BATCH_SIZE")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def _upper_log_level(cls, v: str) -> str:
        return v.upper()

    @property
    def BASE_DIR(self) -> Path:
        return Path(__file__).resolve().parent.parent.parent

    def is_production(self) -> bool:
        """Check if running in production mode"""
        return self.ENVIRONMENT == "production"

    def get_agent_limits(self) -> Dict[str, Any]:
        """Agent loop limits as a dictionary"""
        return {
            "max_iterations": self.AGENT_MAX_ITERATIONS,
            "max_backend_calls": self.AGENT_MAX_BACKEND_CALLS,
            "continuation_batch_size": self.AGENT_CONTINUATION_BATCH_SIZE,
            "max_plan_retries": self.AGENT_MAX_PLAN_RETRIES,
        }


# Create settings instance
settings = Settings()
