"""Source frontends for typeflow

Each frontend turns source text into a typeflow ``Program``.
"""

from typeflow.core.syntax import Program
from typeflow.frontend.errors import ParseError

LANGUAGE_ALIASES = {
    "javascript": "javascript",
    "js": "javascript",
    "lua": "lua",
}


def normalize_language(language: str) -> str:
    """Canonical name of a source language

    Raises:
        ValueError: If the language is not supported
    """
    canonical = LANGUAGE_ALIASES.get(language.lower())
    if canonical is None:
        raise ValueError(f"Unsupported language: {language}")
    return canonical


def parse_source(source: str, language: str = "javascript") -> Program:
    """Parse source text with the frontend for its language

    Args:
        source: Program text
        language: "javascript" (or "js") or "lua"

    Returns:
        Program syntax tree

    Raises:
        ValueError: If the language is not supported
        ParseError: If the source has syntax errors
    """
    canonical = normalize_language(language)
    if canonical == "lua":
        from typeflow.frontend.lua import parse_lua
        return parse_lua(source)
    from typeflow.frontend.javascript import parse_javascript
    return parse_javascript(source)


__all__ = ["ParseError", "normalize_language", "parse_source"]
