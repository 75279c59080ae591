"""Keyword query tokenising."""

from __future__ import annotations

import re

# Whitespace (including full-width spaces) and "&" both separate keywords
_SEPARATORS = re.compile(r"[\s&]+")


class EmptyQueryError(ValueError):
    """Raised when a query contains no usable keyword."""


def tokenize(text: str | None) -> list[str]:
    if not text:
        return []
    return [token for token in _SEPARATORS.split(text) if token]


def require_tokens(text: str | None) -> list[str]:
    tokens = tokenize(text)
    if not tokens:
        raise EmptyQueryError("Query must contain at least one keyword")
    return tokens


__all__ = ["EmptyQueryError", "require_tokens", "tokenize"]
