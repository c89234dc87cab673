"""
Progress Data Classes

Contains the dataclasses describing chapter status, live progress and run results.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, List, Dict


@dataclass
class ChapterStatus:
    """Artifacts present for one chapter."""
    index: int
    path: Path
    chapter_id: str
    has_output: bool
    has_glossary: bool

    @property
    def is_complete(self) -> bool:
        return self.has_output and self.has_glossary

    def to_dict(self) -> Dict:
        return {
            'index': self.index,
            'file_name': self.path.name,
            'chapter_id': self.chapter_id,
            'has_output': self.has_output,
            'has_glossary': self.has_glossary,
            'is_complete': self.is_complete,
        }


@dataclass
class ProgressReport:
    """Scan of the chapter list against existing artifacts."""
    chapters: List[ChapterStatus]
    suggested_index: int
    # Complete chapters found after the first incomplete one
    holes: List[int] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.chapters)

    @property
    def all_complete(self) -> bool:
        return self.suggested_index >= len(self.chapters)

    @property
    def completed_count(self) -> int:
        return sum(1 for c in self.chapters if c.is_complete)

    def to_dict(self) -> Dict:
        return {
            'total': self.total,
            'completed': self.completed_count,
            'suggested_index': self.suggested_index,
            'all_complete': self.all_complete,
            'holes': list(self.holes),
            'chapters': [c.to_dict() for c in self.chapters],
        }


@dataclass
class ChapterProgress:
    """Progress information for the chapter being processed."""
    chapter_index: int
    total_chapters: int
    chapter_id: str
    file_name: str
    phase: str  # "analyzing", "glossary_saved", "translating", "completed"
    term_count: int = 0
    token_usage: Optional[Dict[str, int]] = None


@dataclass
class RunResult:
    """Outcome of one run of the chapter loop."""
    start_index: int
    completed: List[str] = field(default_factory=list)
    failed_chapter: Optional[Path] = None
    error: Optional[Exception] = None
    stopped_by_operator: bool = False
    token_usage: Optional[Dict[str, int]] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None
