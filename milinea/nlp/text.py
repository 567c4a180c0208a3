"""Text helpers shared by extraction, resolution and the stores."""

from __future__ import annotations

import re

_WHITESPACE_RE = re.compile(r"\s+")
_OUTER_QUOTES_LEFT_RE = re.compile(r"^[\"'“”‘’«»]+")
_OUTER_QUOTES_RIGHT_RE = re.compile(r"[\"'“”‘’«»]+$")
_LEADING_ARTICLE_RE = re.compile(r"^(?:de|del|la|el|los|las|al)\s+", re.IGNORECASE)


def normalize_label(label: str) -> str:
    """Normalize a place label into a store key.

    Trims, lower-cases and collapses internal whitespace, so that label
    variants share one entry. The function is idempotent.

    >>> normalize_label("  Plaza   Colón ")
    'plaza colón'
    """
    return _WHITESPACE_RE.sub(" ", label.strip().lower())


def clean_spaces(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def strip_outer_quotes(text: str) -> str:
    """Remove quotes (straight, curly, guillemets) around a captured slot."""
    return _OUTER_QUOTES_RIGHT_RE.sub("", _OUTER_QUOTES_LEFT_RE.sub("", text))


def remove_leading_article(text: str) -> str:
    """Remove one leading Spanish article/preposition ("la UMSS" -> "UMSS")."""
    return _LEADING_ARTICLE_RE.sub("", text, count=1).strip()


def sanitize_place_text(text: str) -> str:
    """Lower-case a label and strip up to two leading articles.

    Applied twice so that doubled articles ("de la cancha") collapse.
    """
    if not text:
        return ""
    sanitized = text.strip().lower()
    sanitized = remove_leading_article(sanitized)
    sanitized = remove_leading_article(sanitized)
    return sanitized.strip()
