"""Infrastructure domain: file discovery and content reads."""

from migaudit.infrastructure.file_discovery import (
    TEXT_EXTENSIONS,
    FileDiscovery,
    FileReadError,
    FileSource,
    is_text_file,
)

__all__ = [
    "TEXT_EXTENSIONS",
    "FileDiscovery",
    "FileReadError",
    "FileSource",
    "is_text_file",
]
