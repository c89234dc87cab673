import copy
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Any, Optional

from chaptrans.exceptions import ConfigError
from chaptrans.logger import get_logger

logger = get_logger(__name__)

# Provider configuration constants
BUILTIN_PROVIDERS = ["gemini", "ollama", "openai", "deepseek"]

BUILTIN_PROVIDER_DISPLAY_NAMES = {
    "gemini": "Gemini",
    "ollama": "Ollama",
    "openai": "OpenAI",
    "deepseek": "DeepSeek",
}

PROVIDER_DEFAULTS = {
    "temperature": 0.2,
    "timeout": 300,
    "num_ctx": 4096,
}

# Config file lives in the working directory unless --config says otherwise
CONFIG_FILE = Path("config.json")

# Default prompts. Placeholders use str.format syntax, literal braces are doubled.
DEFAULT_PROMPTS = {
    "analysis_prompt": {
        "version": "1.0",
        "description": "Pass 1: summarize the chapter and extract new glossary terms",
        "prompt": """You are an editor preparing a novel for translation into {target_lang}.

Story so far:
{prev_summary}

Known glossary (source term -> {target_lang} rendering):
{existing_glossary}

Read the chapter supplied by the user and return ONLY a JSON object:
{{"summary": "...", "new_glossary": {{"source term": "translation"}}}}

Rules:
- "summary": the story up to and including this chapter, in {target_lang}, at most {summary_len} characters.
- "new_glossary": proper nouns, titles, places, skills and recurring terms that are NOT already in the known glossary, at most {glossary_limit} entries.
- Only repeat a known term if its existing rendering is wrong; give the corrected rendering.
- Do not include explanations or markdown code blocks."""
    },
    "translation_prompt": {
        "version": "1.0",
        "description": "Pass 2: translate the chapter using the merged glossary",
        "prompt": """You are a professional literary translator. Translate the chapter supplied by the user into {target_lang}.

Story context:
{summary}

MANDATORY glossary. Every occurrence of a source term MUST be rendered exactly as given:
{glossary}

Preserve paragraph breaks, dialogue and tone. Return only the translated text, without notes or commentary."""
    },
}

# Default configuration template
DEFAULT_CONFIG = {
    "ai_provider": "gemini",
    "gemini": {
        "api_key": "YOUR_API_KEY_HERE",
        "models": ["gemini-2.5-flash"],  # First is default
        "timeout": 300,
        "temperature": 0.2,
    },
    "ollama": {
        "base_url": "http://localhost:11434",
        "models": ["qwen2.5:14b"],
        "timeout": 600,
        "temperature": 0.2,
        "num_ctx": 4096,
    },
    "openai": {
        "api_key": "YOUR_API_KEY_HERE",
        "models": ["gpt-4o-mini", "gpt-4o"],
        "timeout": 300,
        "api_url": "https://api.openai.com/v1/chat/completions",
    },
    "deepseek": {
        "api_key": "YOUR_API_KEY_HERE",
        "models": ["deepseek-chat"],
        "timeout": 300,
        "api_url": "https://api.deepseek.com/chat/completions",
    },
    "translation": {
        "target_language": "Traditional Chinese",
        "input_folder": "input",
        "output_folder": "output",
        "glossary_folder": "glossaries",
    },
    "constraints": {
        "max_summary_length": 300,
        "max_dictionary_size": 50,
    },
    "runtime": {
        "unattended_mode": False,
    },
    "prompts": {},
    "log_mode": "info",
}

# Sections filled in from DEFAULT_CONFIG when the file leaves keys out.
# Provider blocks are never defaulted: a provider must be configured explicitly.
_MERGED_SECTIONS = ("translation", "constraints", "runtime", "prompts")


@dataclass
class TranslationSettings:
    """Everything the chapter pipeline needs from the configuration."""
    target_language: str
    input_folder: Path
    output_folder: Path
    glossary_folder: Path
    max_summary_length: int
    max_dictionary_size: int
    analysis_prompt: str
    translation_prompt: str
    unattended_mode: bool = False

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "TranslationSettings":
        """
        Build settings from a loaded configuration.

        Raises:
            ConfigError: If a required section or value is missing or invalid.
        """
        translation = config.get('translation')
        constraints = config.get('constraints')
        if not isinstance(translation, dict):
            raise ConfigError("Missing 'translation' section in configuration",
                              code="config_missing", details={"section": "translation"})
        if not isinstance(constraints, dict):
            raise ConfigError("Missing 'constraints' section in configuration",
                              code="config_missing", details={"section": "constraints"})

        for key in ("target_language", "input_folder", "output_folder", "glossary_folder"):
            if not translation.get(key):
                raise ConfigError(f"translation.{key} is not configured",
                                  code="config_missing", details={"section": "translation", "missing_field": key})

        try:
            max_summary_length = int(constraints.get('max_summary_length'))
            max_dictionary_size = int(constraints.get('max_dictionary_size'))
        except (TypeError, ValueError):
            raise ConfigError("constraints.max_summary_length and constraints.max_dictionary_size must be integers",
                              code="config_invalid", details={"section": "constraints"})

        runtime = config.get('runtime') or {}

        return cls(
            target_language=translation['target_language'],
            input_folder=Path(translation['input_folder']),
            output_folder=Path(translation['output_folder']),
            glossary_folder=Path(translation['glossary_folder']),
            max_summary_length=max_summary_length,
            max_dictionary_size=max_dictionary_size,
            analysis_prompt=get_prompt('analysis_prompt', config)['prompt'],
            translation_prompt=get_prompt('translation_prompt', config)['prompt'],
            unattended_mode=bool(runtime.get('unattended_mode', False)),
        )


def create_default_config(config_file: Path = CONFIG_FILE):
    """Write the default configuration file."""
    config_file.parent.mkdir(parents=True, exist_ok=True)
    with open(config_file, 'w', encoding='utf-8') as f:
        json.dump(DEFAULT_CONFIG, f, indent=4, ensure_ascii=False)
    logger.info(f"Created default config file: {config_file}")


def _with_defaults(config: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(config)
    for section in _MERGED_SECTIONS:
        value = merged.get(section)
        if value is None:
            merged[section] = copy.deepcopy(DEFAULT_CONFIG[section])
        elif isinstance(value, dict):
            merged[section] = {**DEFAULT_CONFIG[section], **value}
    merged.setdefault('log_mode', DEFAULT_CONFIG['log_mode'])
    return merged


def load_config(config_file: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load the configuration from a JSON file.

    When the file does not exist a default one is written next to it and a
    ConfigError asks the operator to fill it in.

    Raises:
        ConfigError: If the file is missing, unreadable or not a JSON object.
    """
    config_file = Path(config_file) if config_file else CONFIG_FILE

    if not config_file.exists():
        create_default_config(config_file)
        raise ConfigError(
            f"Config file not found. A default one was created at {config_file}; "
            f"fill in the provider settings and run again.",
            code="config_created",
            details={"path": str(config_file)},
        )

    try:
        with open(config_file, 'r', encoding='utf-8') as f:
            config = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Failed to parse config file {config_file}: {e}",
                          code="config_invalid", details={"path": str(config_file)})
    except OSError as e:
        raise ConfigError(f"Failed to read config file {config_file}: {e}",
                          code="config_invalid", details={"path": str(config_file)})

    if not isinstance(config, dict):
        raise ConfigError(f"Config file {config_file} must contain a JSON object",
                          code="config_invalid", details={"path": str(config_file)})

    logger.debug(f"Configuration loaded from {config_file}")
    return _with_defaults(config)


def save_config(config: Dict[str, Any], config_file: Optional[Path] = None):
    """Save the configuration to a JSON file."""
    config_file = Path(config_file) if config_file else CONFIG_FILE
    config_file.parent.mkdir(parents=True, exist_ok=True)
    with open(config_file, 'w', encoding='utf-8') as f:
        json.dump(config, f, indent=4, ensure_ascii=False)
    logger.info(f"Configuration saved to {config_file}")


def load_prompts(config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Load prompt templates.

    A plain string under config["prompts"][name] replaces the default prompt text.
    """
    prompts = copy.deepcopy(DEFAULT_PROMPTS)
    overrides = (config or {}).get('prompts') or {}
    for name, value in overrides.items():
        if isinstance(value, str) and value.strip():
            prompts[name] = {"version": "custom", "description": "From configuration", "prompt": value}
    return prompts


def get_prompt(prompt_name: str, config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Get a specific prompt by name."""
    prompts = load_prompts(config)
    if prompt_name not in prompts:
        raise ConfigError(f"Unknown prompt: {prompt_name}", code="config_invalid",
                          details={"prompt": prompt_name})
    return prompts[prompt_name]


def render_prompt(template: str, **values: Any) -> str:
    """
    Fill a prompt template.

    Raises:
        ConfigError: If the template references a placeholder that is not provided.
    """
    try:
        return template.format(**values)
    except (KeyError, IndexError) as e:
        raise ConfigError(f"Prompt template uses unknown placeholder {e}", code="config_invalid",
                          details={"available": sorted(values)})
    except ValueError as e:
        raise ConfigError(f"Malformed prompt template: {e}", code="config_invalid")
