"""
Base exceptions shared by every chaptrans module.

Subpackages define their own errors on top of these
(see ai/exceptions.py and translation/exceptions.py).
"""


class ChaptransError(Exception):
    """Error with optional code and details."""

    def __init__(self, message: str, code: str = None, details: dict = None):
        super().__init__(message)
        self.code = code
        self.details = details or {}


class ConfigError(ChaptransError):
    """Invalid or incomplete configuration. Raised before any chapter is processed."""
