"""Web application package for chaptrans (read-only progress view)."""

from pathlib import Path
from typing import Any, Dict, Optional

from flask import Flask

from chaptrans.config import TranslationSettings, load_config


def create_app(config_file: Optional[Path] = None, config: Optional[Dict[str, Any]] = None) -> Flask:
    """Application factory for the web interface."""
    if config is None:
        config = load_config(config_file)
    settings = TranslationSettings.from_config(config)

    from .app import build_app  # Import here to avoid circular imports

    return build_app(settings)


__all__ = ["create_app"]
