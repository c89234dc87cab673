"""
Chapter glossary snapshots.

One JSON file per chapter under the glossary folder, named by chapter id:

    {"chapter_name": "ch001", "summary": "...", "terms": {"source": "target"}}

A snapshot holds the story summary up to and including that chapter and every
term accumulated so far.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from chaptrans.logger import get_logger
from chaptrans.translation.exceptions import StorageError
from chaptrans.translation.storage import atomic_write_text, read_text

logger = get_logger(__name__)


@dataclass
class ChapterGlossary:
    """Glossary and summary as of the end of one chapter."""
    chapter_id: str
    summary: str = ""
    terms: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> "ChapterGlossary":
        """Seed for the first chapter (or a degraded-continuity start)."""
        return cls(chapter_id="")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'chapter_name': self.chapter_id,
            'summary': self.summary,
            'terms': dict(self.terms),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChapterGlossary":
        """
        Build a snapshot from its JSON form.

        Raises:
            ValueError: If 'summary' is not a string or 'terms' is not an
                object of string values. A damaged seed is never read as empty.
        """
        chapter_id = data.get('chapter_name', '')
        if not isinstance(chapter_id, str):
            raise ValueError("'chapter_name' must be a string")

        summary = data.get('summary')
        if not isinstance(summary, str):
            raise ValueError("'summary' must be a string")

        terms = data.get('terms')
        if not isinstance(terms, dict):
            raise ValueError("'terms' must be an object")
        for term, rendering in terms.items():
            if not isinstance(rendering, str):
                raise ValueError(f"term '{term}' must map to a string")

        return cls(chapter_id=chapter_id, summary=summary, terms=dict(terms))


@dataclass
class AnalysisResult:
    """Parsed analysis pass output for one chapter."""
    summary: str
    new_terms: Dict[str, str] = field(default_factory=dict)


def merge_glossary(chapter_id: str, prior: ChapterGlossary, analysis: AnalysisResult) -> ChapterGlossary:
    """
    Build the snapshot for a chapter from the prior snapshot and its analysis.

    Every prior term is kept; new terms are added and overwrite prior
    entries with the same key (corrections).
    """
    merged_terms = dict(prior.terms)
    merged_terms.update(analysis.new_terms)
    return ChapterGlossary(chapter_id=chapter_id, summary=analysis.summary, terms=merged_terms)


class GlossaryStore:
    """Load and save per-chapter glossary snapshots in a folder."""

    def __init__(self, folder: Path):
        self.folder = Path(folder)

    def path_for(self, chapter_id: str) -> Path:
        return self.folder / f"{chapter_id}.json"

    def exists(self, chapter_id: str) -> bool:
        return self.path_for(chapter_id).is_file()

    def load(self, chapter_id: str) -> Optional[ChapterGlossary]:
        """
        Load the snapshot for a chapter.

        Returns:
            The snapshot, or None when no snapshot has been written yet.

        Raises:
            StorageError: If the snapshot file exists but cannot be read or decoded.
        """
        path = self.path_for(chapter_id)
        if not path.is_file():
            return None

        text = read_text(path)
        try:
            data = json.loads(text)
            if not isinstance(data, dict):
                raise ValueError("snapshot is not a JSON object")
            glossary = ChapterGlossary.from_dict(data)
        except ValueError as e:
            raise StorageError(f"Corrupt glossary snapshot {path}: {e}", path)

        logger.debug(f"Loaded glossary {path} ({len(glossary.terms)} terms)")
        return glossary

    def save(self, chapter_id: str, glossary: ChapterGlossary) -> Path:
        """
        Write the full snapshot for a chapter, replacing any previous one.

        Raises:
            StorageError: If the write fails. A previous snapshot stays intact.
        """
        path = self.path_for(chapter_id)
        payload = json.dumps(glossary.to_dict(), ensure_ascii=False, indent=2) + '\n'
        atomic_write_text(path, payload)
        logger.debug(f"Saved glossary {path} ({len(glossary.terms)} terms)")
        return path
