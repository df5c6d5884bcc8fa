"""Keyword classification of calendar event titles.

Pure business logic: an ordered rule list, first match wins. The keywords are
Polish word stems, so matching is a case-insensitive substring test.
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_LABEL = "Wydarzenie"


@dataclass(frozen=True)
class ClassificationRule:
    label: str
    keywords: tuple[str, ...]


DEFAULT_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule("Nabożeństwo", ("nabożeństw", "msza", "liturgi")),
    ClassificationRule("Spotkanie", ("spotkanie", "wieczór", "studium")),
    ClassificationRule("Koncert", ("koncert", "muzyk")),
    ClassificationRule("Konferencja", ("konferencja", "zjazd", "synod")),
)


def classify_event(
    title: str,
    rules: tuple[ClassificationRule, ...] = DEFAULT_RULES,
    default: str = DEFAULT_LABEL,
) -> str:
    """Return the label of the first rule with a keyword found in ``title``."""
    lowered = title.lower()
    for rule in rules:
        if any(keyword in lowered for keyword in rule.keywords):
            return rule.label
    return default
