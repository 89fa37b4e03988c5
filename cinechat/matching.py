"""
CineChat — Text Matchers

Design patterns:
  - Strategy: every heuristic text detector (franchise, theme, mood,
    intent keywords) sits behind the same ``match(text) -> list`` contract
    so its table can be swapped or extended without touching scoring code
  - Table-driven: detectors are built from plain label → keyword tables
"""

from __future__ import annotations

import re
from typing import Dict, Iterable, List, Mapping, Optional, Pattern, Protocol, Sequence, Tuple


class TextMatcher(Protocol):
    """Anything that can tag a piece of text with zero or more labels."""

    def match(self, text: str) -> List[str]:
        ...


class KeywordMatcher:
    """Label → keyword-list matcher.

    Labels are returned in table order. With ``whole_words`` a keyword only
    matches when it is not glued to other letters or digits, so "thor" does
    not fire on "author"; otherwise plain case-insensitive substring search
    is used.
    """

    def __init__(self, table: Mapping[str, Sequence[str]], *, whole_words: bool = False) -> None:
        self.whole_words = whole_words
        self._table: Dict[str, Tuple[str, ...]] = {
            label: tuple(kw.lower() for kw in keywords) for label, keywords in table.items()
        }
        self._patterns: Dict[str, Tuple[Tuple[str, Pattern[str]], ...]] = {
            label: tuple((kw, self._compile(kw)) for kw in keywords)
            for label, keywords in self._table.items()
        }

    @classmethod
    def from_keywords(cls, keywords: Iterable[str], *, whole_words: bool = False) -> "KeywordMatcher":
        """Each keyword becomes its own label."""
        return cls({kw: (kw,) for kw in keywords}, whole_words=whole_words)

    def _compile(self, keyword: str) -> Pattern[str]:
        escaped = re.escape(keyword)
        if self.whole_words:
            return re.compile(rf"(?<![a-z0-9]){escaped}(?![a-z0-9])")
        return re.compile(escaped)

    @property
    def labels(self) -> List[str]:
        return list(self._table)

    def keywords(self, label: str) -> Tuple[str, ...]:
        return self._table.get(label, ())

    def hits(self, text: str) -> Dict[str, List[str]]:
        """Return ``{label: [matched keywords]}`` for every label that fired."""
        lowered = (text or "").lower()
        found: Dict[str, List[str]] = {}
        for label, patterns in self._patterns.items():
            matched = [kw for kw, pattern in patterns if pattern.search(lowered)]
            if matched:
                found[label] = matched
        return found

    def match(self, text: str) -> List[str]:
        return list(self.hits(text))

    def first(self, text: str) -> Optional[str]:
        lowered = (text or "").lower()
        for label, patterns in self._patterns.items():
            if any(pattern.search(lowered) for _, pattern in patterns):
                return label
        return None

    def extended(self, extra: Mapping[str, Sequence[str]]) -> "KeywordMatcher":
        """Return a new matcher with ``extra`` labels merged in."""
        table: Dict[str, List[str]] = {label: list(kws) for label, kws in self._table.items()}
        for label, keywords in extra.items():
            table.setdefault(label, []).extend(kw for kw in keywords if kw.lower() not in table[label])
        return KeywordMatcher(table, whole_words=self.whole_words)


# ── Franchises ────────────────────────────────────────────

FRANCHISE_GROUPS: Dict[str, Tuple[str, ...]] = {
    "marvel": (
        "marvel", "avengers", "iron man", "captain america", "thor", "spider-man",
        "black panther", "guardians of the galaxy", "ant-man", "doctor strange",
    ),
    "x-men": ("x-men", "wolverine", "deadpool"),
    "dc": ("batman", "superman", "wonder woman", "aquaman", "justice league", "joker"),
    "star-wars": ("star wars", "mandalorian", "boba fett", "obi-wan", "andor"),
    "harry-potter": ("harry potter", "fantastic beasts", "hogwarts"),
    "lotr": ("lord of the rings", "hobbit", "rings of power"),
    "fast-furious": ("fast & furious", "fast and furious", "fast furious", "furious 7", "fast five", "f9"),
    "mission-impossible": ("mission impossible", "mission: impossible"),
    "james-bond": ("james bond", "007", "skyfall", "spectre", "casino royale", "no time to die"),
    "jurassic": ("jurassic",),
    "transformers": ("transformers", "bumblebee"),
    "pixar": ("toy story", "finding nemo", "finding dory", "incredibles", "inside out", "wall-e", "coco"),
    "disney-animated": ("frozen", "moana", "tangled", "encanto", "zootopia"),
    "shrek": ("shrek",),
    "pirates-caribbean": ("pirates of the caribbean",),
    "john-wick": ("john wick",),
    "matrix": ("matrix",),
    "alien": ("alien", "aliens", "prometheus"),
    "predator": ("predator",),
    "terminator": ("terminator",),
    "bourne": ("bourne",),
    "rocky": ("rocky", "creed"),
    "godfather": ("godfather",),
    "indiana-jones": ("indiana jones",),
    "back-to-the-future": ("back to the future",),
    "conjuring": ("conjuring", "annabelle", "the nun"),
    "purge": ("purge",),
}

FRANCHISE_MATCHER = KeywordMatcher(FRANCHISE_GROUPS, whole_words=True)


def detect_franchise(title: str, matcher: TextMatcher = FRANCHISE_MATCHER) -> Optional[str]:
    """Return the first franchise group the title belongs to, if any."""
    found = matcher.match(title)
    return found[0] if found else None
