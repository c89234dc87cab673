"""
Text utilities for model responses.

Pure functions with no I/O:
- Code-fence stripping and JSON object extraction for the analysis response
- Glossary serialization for prompts
- Newline unescaping for the translated text
"""

import json
import re
from typing import Any, Dict, Optional

from chaptrans.translation.exceptions import ParseError

# Opening fence with an optional language tag (```json, ```JSON, ```)
_OPENING_FENCE_RE = re.compile(r'^```[ \t]*[A-Za-z0-9_-]*[ \t]*\n?')
_CLOSING_FENCE_RE = re.compile(r'\n?[ \t]*```$')


def strip_code_fences(text: str) -> str:
    """
    Remove markdown code-fence markers surrounding a model response.

    Only fences at the very start and end are removed; fences inside the
    text are left alone.

    Example:
        >>> strip_code_fences('```json\\n{"a": 1}\\n```')
        '{"a": 1}'
    """
    if not text:
        return ""

    clean_text = text.strip()
    clean_text = _OPENING_FENCE_RE.sub('', clean_text, count=1)
    clean_text = _CLOSING_FENCE_RE.sub('', clean_text, count=1)
    return clean_text.strip()


def match_json_object(text: str) -> Optional[str]:
    """
    Extract JSON object from mixed text using bracket matching.

    Args:
        text: Text potentially containing JSON object

    Returns:
        Extracted JSON object string, or None if not found
    """
    if not text:
        return None

    stack = []
    start = -1
    in_string = False
    escape_next = False

    for i, char in enumerate(text):
        if escape_next:
            escape_next = False
            continue

        if char == '\\':
            escape_next = True
            continue

        if char == '"':
            in_string = not in_string
            continue

        if in_string:
            continue

        if char == '{':
            if not stack:
                start = i
            stack.append('{')
        elif char == '}':
            if stack:
                stack.pop()
                if not stack and start >= 0:
                    return text[start:i+1]

    return None


def safe_parse_json_object(text: str) -> Optional[Dict[str, Any]]:
    """
    Parse a JSON object from a model response.

    Tries:
    1. Parse after stripping surrounding code fences
    2. Extract the first balanced {...} with bracket matching and parse

    Returns:
        Parsed dict or None on failure
    """
    if not text:
        return None

    clean_text = strip_code_fences(text)

    try:
        result = json.loads(clean_text)
        if isinstance(result, dict):
            return result
    except json.JSONDecodeError:
        pass

    extracted = match_json_object(clean_text)
    if extracted:
        try:
            result = json.loads(extracted)
            if isinstance(result, dict):
                return result
        except json.JSONDecodeError:
            pass

    return None


def parse_analysis_response(raw_response: str) -> Dict[str, Any]:
    """
    Parse the analysis pass response into its summary and new glossary terms.

    Returns:
        {"summary": str, "new_glossary": {str: str}}

    Raises:
        ParseError: If the response is not a JSON object with a string
            "summary" and an object "new_glossary" of string values.
    """
    data = safe_parse_json_object(raw_response)
    if data is None:
        raise ParseError("Analysis response is not a valid JSON object", raw_response)

    summary = data.get('summary')
    if not isinstance(summary, str):
        raise ParseError("Analysis response is missing a string 'summary' field", raw_response)

    new_glossary = data.get('new_glossary')
    if not isinstance(new_glossary, dict):
        raise ParseError("Analysis response is missing an object 'new_glossary' field", raw_response)

    for term, rendering in new_glossary.items():
        if not isinstance(rendering, str):
            raise ParseError(f"Glossary entry '{term}' is not a string", raw_response)

    return {'summary': summary, 'new_glossary': dict(new_glossary)}


def serialize_terms(terms: Dict[str, str]) -> str:
    """Serialize glossary terms for a prompt (compact JSON, non-ASCII kept)."""
    return json.dumps(terms, ensure_ascii=False)


def unescape_newlines(text: str) -> str:
    """Turn literal backslash-n sequences from the model into real line breaks."""
    return text.replace('\\n', '\n')
