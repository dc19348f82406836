"""Utility functions for ragpack."""

from ragpack.utils.content import ContentFormat, sniff_format
from ragpack.utils.text import clean_text

__all__ = ["ContentFormat", "clean_text", "sniff_format"]
