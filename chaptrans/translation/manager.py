"""
Resume Driver Module

Main ResumeDriver class that coordinates a translation run:
- Enumerate chapters in lexical path order
- Detect where a previous run left off from the artifacts on disk
- Load the seed glossary from the chapter before the start point
- Process chapters sequentially, stopping at the first failure
"""

from pathlib import Path
from typing import Callable, List, Optional

from chaptrans.ai.service import ModelBackend
from chaptrans.config import TranslationSettings
from chaptrans.logger import get_logger
from chaptrans.translation.exceptions import ChapterError, MissingSeedError
from chaptrans.translation.glossary import ChapterGlossary, GlossaryStore
from chaptrans.translation.processor import ChapterProcessor, chapter_id_for
from chaptrans.translation.progress import ChapterProgress, ChapterStatus, ProgressReport, RunResult

logger = get_logger(__name__)


def list_chapters(input_folder: Path) -> List[Path]:
    """All files under input_folder (recursively), sorted by path."""
    input_folder = Path(input_folder)
    if not input_folder.is_dir():
        return []
    return sorted(p for p in input_folder.rglob('*') if p.is_file())


def suggest_resume_index(statuses: List[ChapterStatus]) -> int:
    """
    Index of the first chapter missing its output or its glossary snapshot.

    Returns len(statuses) when every chapter is complete.
    """
    for status in statuses:
        if not status.is_complete:
            return status.index
    return len(statuses)


class ResumeDriver:
    """
    Manages a resumable, sequential translation run.

    Progress is never stored separately: a chapter is complete when both its
    output file and its glossary snapshot exist.
    """

    def __init__(self, settings: TranslationSettings, backend: Optional[ModelBackend] = None):
        """
        Initialize the driver.

        Args:
            settings: Pipeline settings
            backend: Model backend; only needed for run()
        """
        self.settings = settings
        self.backend = backend
        self.store = GlossaryStore(settings.glossary_folder)
        self._processor: Optional[ChapterProcessor] = None

    @property
    def processor(self) -> ChapterProcessor:
        if self._processor is None:
            if self.backend is None:
                raise RuntimeError("ResumeDriver needs a backend to process chapters")
            self._processor = ChapterProcessor(self.backend, self.settings, self.store)
        return self._processor

    def list_chapters(self) -> List[Path]:
        return list_chapters(self.settings.input_folder)

    def chapter_status(self, index: int, path: Path) -> ChapterStatus:
        chapter_id = chapter_id_for(path)
        return ChapterStatus(
            index=index,
            path=path,
            chapter_id=chapter_id,
            has_output=(self.settings.output_folder / path.name).is_file(),
            has_glossary=self.store.exists(chapter_id),
        )

    def scan(self, chapters: Optional[List[Path]] = None) -> ProgressReport:
        """
        Check every chapter's artifacts and compute the suggested resume index.

        Complete chapters that sit after the first incomplete one are reported
        as holes. They do not move the suggested index: resuming from it
        reprocesses them.
        """
        if chapters is None:
            chapters = self.list_chapters()

        statuses = [self.chapter_status(i, path) for i, path in enumerate(chapters)]
        suggested = suggest_resume_index(statuses)
        holes = [s.index for s in statuses[suggested:] if s.is_complete]

        if holes:
            logger.warning(
                f"Chapter {suggested + 1} is incomplete but later chapters are complete: "
                f"{', '.join(statuses[i].path.name for i in holes)}. "
                f"They will be reprocessed when resuming from chapter {suggested + 1}."
            )

        return ProgressReport(chapters=statuses, suggested_index=suggested, holes=holes)

    def suggest_resume_index(self, chapters: Optional[List[Path]] = None) -> int:
        return self.scan(chapters).suggested_index

    def load_seed(self, chapters: List[Path], start_index: int, allow_empty_seed: bool = False) -> ChapterGlossary:
        """
        Load the glossary that seeds a run starting at start_index.

        The seed always comes from the chapter before start_index, never from
        the start chapter's own snapshot.

        Raises:
            MissingSeedError: The previous snapshot is missing and
                allow_empty_seed was not given.
        """
        if start_index == 0:
            logger.info("Starting from the first chapter with an empty glossary")
            return ChapterGlossary.empty()

        prev_id = chapter_id_for(chapters[start_index - 1])
        glossary = self.store.load(prev_id)
        if glossary is not None:
            logger.info(f"Loaded glossary of previous chapter '{prev_id}' ({len(glossary.terms)} terms)")
            return glossary

        if not allow_empty_seed:
            raise MissingSeedError(start_index, prev_id)

        logger.warning(
            f"No glossary for previous chapter '{prev_id}'; continuing with an empty glossary. "
            f"Story summary and known terms are lost for this run."
        )
        return ChapterGlossary.empty()

    def run(
        self,
        start_index: int,
        allow_empty_seed: bool = False,
        chapters: Optional[List[Path]] = None,
        continue_check: Optional[Callable[[RunResult], bool]] = None,
        progress_callback: Optional[Callable[[ChapterProgress], None]] = None,
    ) -> RunResult:
        """
        Process chapters from start_index to the end of the list.

        Args:
            start_index: 0-based index of the first chapter to process
            allow_empty_seed: Start with an empty glossary if the previous
                chapter has no snapshot
            chapters: Chapter list (defaults to list_chapters())
            continue_check: Called after each completed chapter; returning
                False stops the run before the next chapter
            progress_callback: Optional callback for progress updates

        Returns:
            RunResult. On a chapter failure the loop stops and the error is
            recorded; earlier chapters' artifacts are left untouched.

        Raises:
            ValueError: start_index is outside the chapter list.
            MissingSeedError: See load_seed.
        """
        if chapters is None:
            chapters = self.list_chapters()

        if not 0 <= start_index < len(chapters):
            raise ValueError(f"Start index {start_index} out of range (0-{len(chapters) - 1})")

        current_glossary = self.load_seed(chapters, start_index, allow_empty_seed)
        processor = self.processor
        result = RunResult(start_index=start_index)
        total = len(chapters)

        for index in range(start_index, total):
            path = chapters[index]

            def on_phase(phase: str, term_count: int, index=index, path=path):
                if progress_callback:
                    progress_callback(ChapterProgress(
                        chapter_index=index,
                        total_chapters=total,
                        chapter_id=chapter_id_for(path),
                        file_name=path.name,
                        phase=phase,
                        term_count=term_count,
                        token_usage=self.backend.usage.total(),
                    ))

            try:
                current_glossary = processor.process(path, current_glossary, on_phase=on_phase)
            except ChapterError as e:
                logger.error(f"Processing {path} failed: {e}")
                logger.error("Progress so far is kept. Fix the problem and run again to resume.")
                result.failed_chapter = path
                result.error = e
                break

            result.completed.append(chapter_id_for(path))

            if index < total - 1 and continue_check and not continue_check(result):
                logger.info("Run stopped by operator")
                result.stopped_by_operator = True
                break

        result.token_usage = self.backend.usage.total()
        logger.info(
            f"Run finished: {len(result.completed)} chapter(s) completed, "
            f"tokens used: {result.token_usage}"
        )
        return result
