"""Shared test fixtures for chaptrans tests."""

import json
from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest

from chaptrans.ai.exceptions import BackendError
from chaptrans.ai.providers import TokenUsage
from chaptrans.config import DEFAULT_PROMPTS, TranslationSettings
from chaptrans.logger import enable_file_logging, set_log_mode


@pytest.fixture(autouse=True)
def quiet_logging():
    """Keep loggers off the file system and at a fixed level."""
    set_log_mode("info")
    enable_file_logging(False)
    yield
    set_log_mode("info")
    enable_file_logging(False)


class FakeBackend:
    """
    Backend that answers from canned responses and records every call.

    analysis_responses / translation_responses are consumed in order; an
    Exception instance in either list is raised instead of returned.
    """

    provider = "fake"
    model = "fake-model"

    def __init__(self, analysis_responses: Optional[List] = None,
                 translation_responses: Optional[List] = None):
        self.analysis_responses = list(analysis_responses or [])
        self.translation_responses = list(translation_responses or [])
        self.calls: List[Dict] = []
        self.usage = TokenUsage()

    def generate(self, system_prompt: str, user_content: str, json_mode: bool) -> str:
        self.calls.append({
            "system_prompt": system_prompt,
            "user_content": user_content,
            "json_mode": json_mode,
        })
        queue = self.analysis_responses if json_mode else self.translation_responses
        if queue:
            response = queue.pop(0)
        elif json_mode:
            response = analysis_json(f"summary after: {user_content[:20]}", {})
        else:
            response = f"translated: {user_content}"
        if isinstance(response, Exception):
            raise response
        self.usage.record(10, 5)
        return response


def analysis_json(summary: str, new_glossary: Dict[str, str]) -> str:
    return json.dumps({"summary": summary, "new_glossary": new_glossary}, ensure_ascii=False)


def backend_failure(message: str = "boom") -> BackendError:
    return BackendError(message, provider="fake", code="http_error", details={"body": message})


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def settings(tmp_path: Path) -> TranslationSettings:
    """Settings pointing at empty folders under tmp_path."""
    input_folder = tmp_path / "input"
    input_folder.mkdir()
    return TranslationSettings(
        target_language="Traditional Chinese",
        input_folder=input_folder,
        output_folder=tmp_path / "output",
        glossary_folder=tmp_path / "glossaries",
        max_summary_length=300,
        max_dictionary_size=50,
        analysis_prompt=DEFAULT_PROMPTS["analysis_prompt"]["prompt"],
        translation_prompt=DEFAULT_PROMPTS["translation_prompt"]["prompt"],
    )


@pytest.fixture
def write_chapters(settings: TranslationSettings) -> Callable[..., List[Path]]:
    """Create chapter files in the input folder and return their paths in order."""

    def _write(*names: str) -> List[Path]:
        paths = []
        for name in names:
            path = settings.input_folder / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(f"Text of {Path(name).stem}", encoding="utf-8")
            paths.append(path)
        return sorted(paths)

    return _write


@pytest.fixture
def mark_complete(settings: TranslationSettings) -> Callable[..., None]:
    """Create output and/or glossary artifacts for a chapter file."""

    def _mark(path: Path, output: bool = True, glossary: bool = True, terms: Optional[Dict] = None):
        if output:
            settings.output_folder.mkdir(parents=True, exist_ok=True)
            (settings.output_folder / path.name).write_text("done", encoding="utf-8")
        if glossary:
            settings.glossary_folder.mkdir(parents=True, exist_ok=True)
            (settings.glossary_folder / f"{path.stem}.json").write_text(
                json.dumps({"chapter_name": path.stem, "summary": f"summary of {path.stem}",
                            "terms": terms or {path.stem: f"{path.stem}-t"}}),
                encoding="utf-8",
            )

    return _mark
