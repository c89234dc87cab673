"""
AI Module

This module provides the model backends used by the chapter pipeline.
"""

from chaptrans.ai.exceptions import BackendError
from chaptrans.ai.providers import GeminiBackend, OllamaBackend, OpenAICompatibleBackend, TokenUsage
from chaptrans.ai.service import ModelBackend, create_backend, validate_ai_config

__all__ = [
    'BackendError',
    'GeminiBackend',
    'OllamaBackend',
    'OpenAICompatibleBackend',
    'TokenUsage',
    'ModelBackend',
    'create_backend',
    'validate_ai_config',
]
