"""Chapter progress and glossary snapshot API routes."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from chaptrans.logger import get_logger
from chaptrans.translation.exceptions import StorageError
from chaptrans.translation.manager import ResumeDriver
from chaptrans.translation.processor import chapter_id_for

chapters_bp = Blueprint("chapters", __name__)
logger = get_logger(__name__)


def _driver() -> ResumeDriver:
    return ResumeDriver(current_app.config["CHAPTRANS_SETTINGS"])


@chapters_bp.get("/chapters")
def list_chapter_status():
    """Return every chapter with its artifacts and the suggested start."""
    report = _driver().scan()
    logger.debug("Chapter status listed: %s chapters", report.total)
    return jsonify(report.to_dict())


@chapters_bp.get("/glossaries/<chapter_id>")
def get_glossary(chapter_id: str):
    """Return the glossary snapshot saved for a chapter."""
    driver = _driver()
    # Only serve snapshots of chapters in the input folder
    known_ids = {chapter_id_for(path) for path in driver.list_chapters()}
    if chapter_id not in known_ids:
        logger.warning("Unknown chapter requested: %s", chapter_id)
        return jsonify({"error": f"Unknown chapter: {chapter_id}"}), 404

    try:
        glossary = driver.store.load(chapter_id)
    except StorageError as e:
        logger.error("Failed to load glossary for %s: %s", chapter_id, e)
        return jsonify({"error": str(e)}), 500

    if glossary is None:
        return jsonify({"error": f"No glossary saved for chapter: {chapter_id}"}), 404

    return jsonify(glossary.to_dict())
