"""Presentation helpers for turning voice-agent identifiers into labels.

Evaluation criteria ids and data-collection keys arrive as snake_case or
kebab-case (``patient_understood_risks``); emails and read endpoints show them
as Title Case.
"""

from __future__ import annotations

import re


_SEPARATORS_RE = re.compile(r"[_-]+")
_WHITESPACE_RE = re.compile(r"\s+")
_SMALL_WORDS = {"a", "an", "and", "at", "by", "for", "in", "of", "on", "or", "the", "to", "vs"}
_ACRONYMS = {"iol": "IOL", "id": "ID", "dob": "DOB"}


def humanize_identifier(value: str | None) -> str:
    """Convert an identifier into human-friendly text.

    Examples:
        "vision_impact_scale" -> "Vision Impact Scale"
        "premium-iol-interest" -> "Premium IOL Interest"
        "ready_for_surgery" -> "Ready for Surgery"

    Mixed or upper case input is treated as an existing label and only has
    its separators normalized.
    """
    if value is None:
        return ""

    text = _SEPARATORS_RE.sub(" ", str(value))
    text = _WHITESPACE_RE.sub(" ", text).strip()
    if not text:
        return ""

    if any(ch.isupper() for ch in text):
        return text

    words = text.split(" ")
    last_idx = len(words) - 1
    titled: list[str] = []
    for i, word in enumerate(words):
        if word in _ACRONYMS:
            titled.append(_ACRONYMS[word])
        elif i not in (0, last_idx) and word in _SMALL_WORDS:
            titled.append(word)
        else:
            titled.append(word.capitalize())

    return " ".join(titled)
