"""Detect the format of fetched document bytes."""

from enum import Enum
from pathlib import PurePosixPath
from typing import Optional
from urllib.parse import urlparse


class ContentFormat(str, Enum):
    PDF = "pdf"
    HTML = "html"
    TEXT = "text"
    DOCX = "docx"
    XLSX = "xlsx"
    PPTX = "pptx"
    BINARY = "binary"


HTML_EXTENSIONS = {".html", ".htm", ".xhtml"}

TEXT_EXTENSIONS = {
    ".txt", ".md", ".rst", ".csv", ".json", ".yaml", ".yml", ".xml", ".log",
}

# Office Open XML documents, by extension and by MIME type
OFFICE_EXTENSIONS = {
    ".docx": ContentFormat.DOCX,
    ".xlsx": ContentFormat.XLSX,
    ".pptx": ContentFormat.PPTX,
}

OFFICE_MIME_TYPES = {
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": ContentFormat.DOCX,
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": ContentFormat.XLSX,
    "application/vnd.openxmlformats-officedocument.presentationml.presentation": ContentFormat.PPTX,
}

# Formats with no text extractor
BINARY_EXTENSIONS = {
    # Images
    ".png", ".jpg", ".jpeg", ".gif", ".bmp", ".ico", ".webp", ".tiff",
    # Archives
    ".zip", ".tar", ".gz", ".rar", ".7z", ".bz2", ".xz",
    # Executables
    ".exe", ".dll", ".so", ".dylib", ".bin",
    # Media
    ".mp3", ".mp4", ".avi", ".mov", ".wav", ".flac", ".mkv", ".webm",
}


def url_extension(url: str) -> str:
    """Return the lowercased file extension of a URL's path."""
    return PurePosixPath(urlparse(url).path).suffix.lower()


def is_binary_content(content: bytes, sample_size: int = 8192) -> bool:
    """Detect if content is binary by checking for null bytes and non-text chars.

    Args:
        content: Raw file content
        sample_size: Number of bytes to sample from the start

    Returns:
        True if content appears to be binary
    """
    if not content:
        return False

    sample = content[:sample_size]

    if b"\x00" in sample:
        return True

    # Bytes >= 0x80 are allowed since they are usually UTF-8 sequences
    text_chars = set(range(32, 256)) | {9, 10, 13}
    non_text = sum(1 for byte in sample if byte not in text_chars)

    return (non_text / len(sample)) > 0.30


def sniff_format(url: str, content_type: Optional[str], content: bytes) -> ContentFormat:
    """Decide how to extract text from a downloaded document.

    Checks magic bytes first, then the Content-Type header, then the URL
    extension, and finally falls back to content analysis.
    """
    if content.startswith(b"%PDF"):
        return ContentFormat.PDF

    mime = (content_type or "").split(";")[0].strip().lower()
    if mime == "application/pdf":
        return ContentFormat.PDF
    if mime in OFFICE_MIME_TYPES:
        return OFFICE_MIME_TYPES[mime]
    if mime in ("text/html", "application/xhtml+xml"):
        return ContentFormat.HTML
    if mime.startswith("text/") or mime in ("application/json", "application/xml"):
        return ContentFormat.TEXT

    extension = url_extension(url)
    if extension == ".pdf":
        return ContentFormat.PDF
    if extension in OFFICE_EXTENSIONS:
        return OFFICE_EXTENSIONS[extension]
    if extension in HTML_EXTENSIONS:
        return ContentFormat.HTML
    if extension in TEXT_EXTENSIONS:
        return ContentFormat.TEXT
    if extension in BINARY_EXTENSIONS:
        return ContentFormat.BINARY

    if is_binary_content(content):
        return ContentFormat.BINARY

    head = content[:512].lstrip().lower()
    if head.startswith(b"<!doctype html") or head.startswith(b"<html"):
        return ContentFormat.HTML
    return ContentFormat.TEXT
