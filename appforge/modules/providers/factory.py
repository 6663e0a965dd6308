"""Build provider adapters by name."""

from typing import Optional, Any

from appforge.core.config import Settings, settings as default_settings
from appforge.core.exceptions import ProviderConfigurationError
from appforge.modules.providers.base import ProviderAdapter
from appforge.modules.providers.claude_provider import ClaudeProvider
from appforge.modules.providers.gemini_provider import GeminiProvider

PROVIDERS = ("claude", "gemini")


def create_provider(name: str = "claude", config: Optional[Settings] = None, **kwargs: Any) -> ProviderAdapter:
    """
    Create the adapter for `name`.

    Raises:
        ProviderConfigurationError: unknown provider or missing API key
    """
    config = config or default_settings
    key = (name or "").strip().lower()

    if key == "claude":
        api_key = kwargs.pop("api_key", None) or config.ANTHROPIC_API_KEY
        if not api_key and "client" not in kwargs:
            raise ProviderConfigurationError("Claude API key not configured (ANTHROPIC_API_KEY)")
        return ClaudeProvider(api_key=api_key, **kwargs)

    if key == "gemini":
        api_key = kwargs.pop("api_key", None) or config.GEMINI_API_KEY
        if not api_key and "model_factory" not in kwargs:
            raise ProviderConfigurationError("Gemini API key not configured (GEMINI_API_KEY)")
        return GeminiProvider(api_key=api_key, **kwargs)

    raise ProviderConfigurationError(
        f"Unknown provider '{name}'. Available: {', '.join(PROVIDERS)}"
    )
