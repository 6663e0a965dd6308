"""Map project file paths to editor language identifiers."""

from pathlib import PurePosixPath
from typing import Dict

LANGUAGE_BY_EXTENSION: Dict[str, str] = {
    ".tsx": "typescript",
    ".ts": "typescript",
    ".jsx": "javascript",
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".json": "json",
    ".css": "css",
    ".scss": "scss",
    ".html": "html",
    ".md": "markdown",
    ".mdx": "markdown",
    ".yml": "yaml",
    ".yaml": "yaml",
    ".py": "python",
    ".sh": "shell",
    ".svg": "xml",
    ".xml": "xml",
    ".toml": "toml",
    ".txt": "plaintext",
}

LANGUAGE_BY_FILENAME: Dict[str, str] = {
    ".env": "dotenv",
    ".gitignore": "ignore",
    ".npmrc": "ini",
    "dockerfile": "dockerfile",
}


def get_language_from_path(path: str) -> str:
    """Return the language for a file path, "plaintext" when unknown"""
    name = PurePosixPath(path.replace("\\", "/")).name.lower()
    if name in LANGUAGE_BY_FILENAME:
        return LANGUAGE_BY_FILENAME[name]
    suffix = PurePosixPath(name).suffix
    return LANGUAGE_BY_EXTENSION.get(suffix, "plaintext")
