"""chaptrans - context-aware chapter-by-chapter novel translation."""

__version__ = "0.1.0"
