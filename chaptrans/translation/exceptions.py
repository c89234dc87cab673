"""
Chapter Pipeline Exceptions

Errors raised while processing a chapter. Any of them aborts the current
chapter and the run loop; artifacts of earlier chapters stay as they are.
"""

from pathlib import Path
from typing import Optional

from chaptrans.exceptions import ChaptransError


class ParseError(ChaptransError):
    """The analysis response could not be parsed into summary + glossary."""

    def __init__(self, message: str, raw_response: str = ""):
        super().__init__(message, code="parse_error", details={"raw_response": raw_response})
        self.raw_response = raw_response

    def __str__(self):
        return f"{self.args[0]}; raw response: {self.raw_response}"


class StorageError(ChaptransError):
    """Reading or writing a chapter, glossary snapshot or output file failed."""

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(message, code="storage_error", details={"path": str(path) if path else None})
        self.path = path


class ChapterError(ChaptransError):
    """Processing of one chapter failed at a given stage."""

    def __init__(self, path: Path, stage: str, cause: Exception):
        super().__init__(
            f"Chapter {path} failed during {stage}: {cause}",
            code="chapter_failed",
            details={"path": str(path), "stage": stage},
        )
        self.path = path
        self.stage = stage
        self.cause = cause


class MissingSeedError(ChaptransError):
    """
    The chapter before the start index has no glossary snapshot.

    Continuing means translating without the story so far; callers must opt
    in explicitly (allow_empty_seed=True).
    """

    def __init__(self, start_index: int, previous_chapter_id: str):
        super().__init__(
            f"No glossary snapshot for chapter '{previous_chapter_id}' "
            f"(needed to start at chapter {start_index + 1})",
            code="missing_seed",
            details={"start_index": start_index, "previous_chapter_id": previous_chapter_id},
        )
        self.start_index = start_index
        self.previous_chapter_id = previous_chapter_id
