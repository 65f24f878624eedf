"""Game audit logging."""

from .markdown_logger import MarkdownLogger

__all__ = ["MarkdownLogger"]
