"""
AI Backend Exceptions

Separated to avoid circular imports between service.py and providers.py.
"""

from chaptrans.exceptions import ChaptransError


class BackendError(ChaptransError):
    """A single model call failed (network, non-2xx status, unparseable response)."""

    def __init__(self, message: str, provider: str = "", code: str = None, details: dict = None):
        super().__init__(message, code=code, details=details)
        self.provider = provider
