"""
Translation module - Chapter pipeline

This module provides:
- ResumeDriver: resumable, sequential run over the chapter list
- ChapterProcessor: two-pass analysis and translation of one chapter
- GlossaryStore / ChapterGlossary: per-chapter glossary snapshots
- Progress dataclasses and response parsing helpers
"""

from chaptrans.translation.exceptions import ChapterError, MissingSeedError, ParseError, StorageError
from chaptrans.translation.glossary import AnalysisResult, ChapterGlossary, GlossaryStore, merge_glossary
from chaptrans.translation.progress import ChapterProgress, ChapterStatus, ProgressReport, RunResult
from chaptrans.translation.processor import ChapterProcessor, chapter_id_for
from chaptrans.translation.manager import ResumeDriver, list_chapters, suggest_resume_index
from chaptrans.translation.utils import (
    match_json_object,
    parse_analysis_response,
    safe_parse_json_object,
    strip_code_fences,
    unescape_newlines,
)
