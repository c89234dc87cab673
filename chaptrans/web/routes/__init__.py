"""Route blueprints for the web application."""

from .chapters import chapters_bp

__all__ = [
    "chapters_bp",
]
