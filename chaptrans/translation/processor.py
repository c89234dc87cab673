"""
Chapter Processing Module

Runs the two-pass protocol for a single chapter:

1. Analysis: summarize the chapter and extract new glossary terms given the
   previous chapter's snapshot. The merged snapshot is saved right away.
2. Translation: translate the chapter with the merged glossary as a mandatory
   term reference and write the output file.

The snapshot is saved before translation starts, so a failed translation
keeps the chapter's glossary progress on disk.
"""

from pathlib import Path
from typing import Callable, Optional

from chaptrans.ai.service import ModelBackend
from chaptrans.config import TranslationSettings, render_prompt
from chaptrans.exceptions import ChaptransError
from chaptrans.logger import get_logger
from chaptrans.translation.exceptions import ChapterError
from chaptrans.translation.glossary import AnalysisResult, ChapterGlossary, GlossaryStore, merge_glossary
from chaptrans.translation.storage import atomic_write_text, read_text
from chaptrans.translation.utils import parse_analysis_response, serialize_terms, unescape_newlines

logger = get_logger(__name__)

# Called with (phase, term_count) as a chapter moves through the passes
PhaseCallback = Callable[[str, int], None]


def chapter_id_for(path: Path) -> str:
    """Chapter identifier: the file name without its extension."""
    return path.stem


class ChapterProcessor:
    """Analysis and translation of one chapter at a time."""

    def __init__(self, backend: ModelBackend, settings: TranslationSettings, store: GlossaryStore):
        self.backend = backend
        self.settings = settings
        self.store = store
        self._check_prompts()

    def _check_prompts(self):
        # Render both templates once so a bad placeholder fails before any chapter
        self._analysis_prompt(ChapterGlossary.empty())
        self._translation_prompt(ChapterGlossary.empty())

    def _analysis_prompt(self, prior: ChapterGlossary) -> str:
        return render_prompt(
            self.settings.analysis_prompt,
            target_lang=self.settings.target_language,
            summary_len=self.settings.max_summary_length,
            glossary_limit=self.settings.max_dictionary_size,
            prev_summary=prior.summary,
            existing_glossary=serialize_terms(prior.terms),
        )

    def _translation_prompt(self, glossary: ChapterGlossary) -> str:
        return render_prompt(
            self.settings.translation_prompt,
            target_lang=self.settings.target_language,
            summary=glossary.summary,
            glossary=serialize_terms(glossary.terms),
        )

    def output_path_for(self, path: Path) -> Path:
        return self.settings.output_folder / path.name

    def analyze(self, content: str, prior: ChapterGlossary) -> AnalysisResult:
        """
        Pass 1: ask the model for the updated summary and new terms.

        Raises:
            BackendError: The model call failed.
            ParseError: The response is not the expected JSON object.
        """
        prompt = self._analysis_prompt(prior)
        raw_response = self.backend.generate(prompt, content, json_mode=True)
        logger.debug(f"Analysis response:\n{raw_response}")

        parsed = parse_analysis_response(raw_response)
        return AnalysisResult(summary=parsed['summary'], new_terms=parsed['new_glossary'])

    def translate(self, content: str, glossary: ChapterGlossary) -> str:
        """
        Pass 2: translate the chapter with the merged glossary.

        Raises:
            BackendError: The model call failed.
        """
        prompt = self._translation_prompt(glossary)
        translated = self.backend.generate(prompt, content, json_mode=False)
        return unescape_newlines(translated)

    def process(
        self,
        path: Path,
        prior: ChapterGlossary,
        on_phase: Optional[PhaseCallback] = None,
    ) -> ChapterGlossary:
        """
        Run both passes for a chapter.

        Args:
            path: Source chapter file
            prior: Snapshot of the previous chapter (or an empty one)
            on_phase: Optional callback for progress updates

        Returns:
            The chapter's snapshot, the seed for the next chapter.

        Raises:
            ChapterError: Any failure, with the file path and the failing stage.
        """
        chapter_id = chapter_id_for(path)
        logger.info(f"Processing: {path.name}")

        def notify(phase: str, term_count: int = 0):
            if on_phase:
                on_phase(phase, term_count)

        # Pass 1: analysis, based on the previous chapter's glossary and summary
        try:
            content = read_text(path)
            notify("analyzing", len(prior.terms))
            logger.info("  > Pass 1: analyzing text and extracting new terms...")
            analysis = self.analyze(content, prior)
            glossary = merge_glossary(chapter_id, prior, analysis)
            glossary_path = self.store.save(chapter_id, glossary)
        except ChaptransError as e:
            logger.error(f"Pass 1 failed for {path}: {e}")
            raise ChapterError(path, "analysis", e) from e

        logger.info(
            f"    - Glossary saved to {glossary_path} "
            f"({len(analysis.new_terms)} new, {len(glossary.terms)} total terms)"
        )
        notify("glossary_saved", len(glossary.terms))

        # Pass 2: translation
        try:
            notify("translating", len(glossary.terms))
            logger.info("  > Pass 2: translating...")
            translated = self.translate(content, glossary)
            output_path = self.output_path_for(path)
            atomic_write_text(output_path, translated)
        except ChaptransError as e:
            logger.error(f"Pass 2 failed for {path}: {e}")
            raise ChapterError(path, "translation", e) from e

        logger.info(f"    - Translation written to {output_path}")
        notify("completed", len(glossary.terms))
        return glossary
