"""
End-to-end chapter pipeline through a real backend class.

The OpenAI-compatible backend runs against an httpx.MockTransport that plays
the model: JSON-mode calls answer with an analysis object, plain calls with a
translation. Everything else (config, factory, driver, storage) is real.
"""

import copy
import json

import httpx
import pytest

from chaptrans.ai.service import create_backend
from chaptrans.config import DEFAULT_CONFIG, TranslationSettings
from chaptrans.translation.manager import ResumeDriver

# Terms the fake model "discovers" in each chapter
CHAPTER_TERMS = {
    "ch01": {"Aria": "艾莉亞"},
    "ch02": {"Bram": "布拉姆"},
    "ch03": {"Aria": "雅莉亞"},
}


class FakeModel:
    """Mock transport handler answering chat completions requests."""

    def __init__(self, fail_translation_of=None):
        self.fail_translation_of = fail_translation_of
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.requests.append(body)
        chapter = body["messages"][1]["content"].split(":", 1)[0]
        usage = {"prompt_tokens": 100, "completion_tokens": 50}

        if "response_format" in body:
            content = json.dumps({
                "summary": f"Story through {chapter}",
                "new_glossary": CHAPTER_TERMS.get(chapter, {}),
            }, ensure_ascii=False)
        elif chapter == self.fail_translation_of:
            return httpx.Response(503, json={"error": {"message": "model overloaded"}})
        else:
            content = f"[{chapter} translated]\\nsecond line"

        return httpx.Response(200, json={"choices": [{"message": {"content": content}}], "usage": usage})


@pytest.fixture
def config(tmp_path):
    config = copy.deepcopy(DEFAULT_CONFIG)
    config["ai_provider"] = "openai"
    config["openai"]["api_key"] = "sk-test"
    config["translation"].update({
        "input_folder": str(tmp_path / "input"),
        "output_folder": str(tmp_path / "output"),
        "glossary_folder": str(tmp_path / "glossaries"),
    })
    input_folder = tmp_path / "input"
    input_folder.mkdir()
    for chapter in ("ch01", "ch02", "ch03"):
        (input_folder / f"{chapter}.txt").write_text(f"{chapter}: chapter text", encoding="utf-8")
    return config


def make_driver(config, model):
    backend = create_backend(config, transport=httpx.MockTransport(model))
    return ResumeDriver(TranslationSettings.from_config(config), backend)


def read_snapshot(tmp_path, chapter):
    return json.loads((tmp_path / "glossaries" / f"{chapter}.json").read_text(encoding="utf-8"))


def test_full_run(config, tmp_path):
    model = FakeModel()
    driver = make_driver(config, model)

    result = driver.run(driver.suggest_resume_index())

    assert result.succeeded
    assert result.completed == ["ch01", "ch02", "ch03"]
    assert result.token_usage == {"prompt_tokens": 600, "completion_tokens": 300}

    assert read_snapshot(tmp_path, "ch02") == {
        "chapter_name": "ch02",
        "summary": "Story through ch02",
        "terms": {"Aria": "艾莉亞", "Bram": "布拉姆"},
    }
    # Later rendering overrides the earlier one
    assert read_snapshot(tmp_path, "ch03")["terms"] == {"Aria": "雅莉亞", "Bram": "布拉姆"}

    output = (tmp_path / "output" / "ch01.txt").read_text(encoding="utf-8")
    assert output == "[ch01 translated]\nsecond line"

    # Chapter 3's translation pass was given the merged glossary
    translation_request = model.requests[5]
    assert "response_format" not in translation_request
    assert "雅莉亞" in translation_request["messages"][0]["content"]
    assert driver.scan().all_complete


def test_resume_after_failure(config, tmp_path):
    driver = make_driver(config, FakeModel(fail_translation_of="ch02"))

    first = driver.run(0)

    assert first.completed == ["ch01"]
    assert first.failed_chapter.name == "ch02.txt"
    assert first.error.stage == "translation"
    assert first.error.cause.details["status_code"] == 503
    # Snapshot of the failed chapter was saved before its translation
    assert (tmp_path / "glossaries" / "ch02.json").exists()
    assert not (tmp_path / "output" / "ch02.txt").exists()

    model = FakeModel()
    driver = make_driver(config, model)
    start = driver.suggest_resume_index()
    second = driver.run(start)

    assert start == 1
    assert second.completed == ["ch02", "ch03"]
    # Seeded from ch01, not from the partial ch02 snapshot
    analysis_prompt = model.requests[0]["messages"][0]["content"]
    assert "Story through ch01" in analysis_prompt
    assert "Story through ch02" not in analysis_prompt
    assert driver.scan().all_complete
