"""Classify composite RFM scores into named customer segments.

Segment coverage is business policy, so the classifier ships no default
rules. Rules are matched in the order supplied; the first match wins and
customers matching nothing are labelled ``"Unclassified"``.

Pattern syntax (three positions, in R-F-M order):

- ``1``-``5``: exact score
- ``*``: any score
- ``[45]``: any of the listed scores

For example ``"5**"`` matches every customer with R=5 and ``"[45][45]*"``
matches customers with R and F of at least 4.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from typing import Iterable, Sequence, Union

from rfm_audit.foundation.errors import ConfigurationError
from rfm_audit.foundation.rfm import CompositeLike, RFMScore, compose_score, parse_composite

UNCLASSIFIED = "Unclassified"

_POSITION = r"(?:[1-5]|\*|\[[1-5]+\])"
_PATTERN_RE = re.compile(rf"{_POSITION}{{3}}")
_TOKEN_RE = re.compile(_POSITION)


def _compile_pattern(pattern: str) -> re.Pattern[str]:
    if not isinstance(pattern, str) or not _PATTERN_RE.fullmatch(pattern):
        raise ConfigurationError(
            f"Segment pattern must have three positions of 1-5, '*' or '[..]': {pattern!r}"
        )
    tokens = _TOKEN_RE.findall(pattern)
    regex = "".join("[1-5]" if token == "*" else token for token in tokens)
    return re.compile(regex)


@dataclass(frozen=True)
class SegmentRule:
    """A segment label and the composite patterns that select it.

    Attributes
    ----------
    label:
        Segment name, e.g. "Best Customers"
    patterns:
        One or more patterns; an explicit list of exact composites such as
        ``("543", "444")`` is also valid
    """

    label: str
    patterns: tuple[str, ...]
    _compiled: tuple[re.Pattern[str], ...] = field(
        init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        """Validate the label and compile the patterns."""
        if isinstance(self.patterns, str):
            object.__setattr__(self, "patterns", (self.patterns,))
        else:
            object.__setattr__(self, "patterns", tuple(self.patterns))
        if not isinstance(self.label, str) or not self.label.strip():
            raise ConfigurationError(f"Segment label cannot be empty: {self.label!r}")
        if not self.patterns:
            raise ConfigurationError(f"Segment '{self.label}' has no patterns")
        object.__setattr__(
            self, "_compiled", tuple(_compile_pattern(p) for p in self.patterns)
        )

    def matches(self, composite: str) -> bool:
        """Return True if any pattern matches the composite code."""
        return any(regex.fullmatch(composite) for regex in self._compiled)


PatternSpec = Union[str, Sequence[str]]


class SegmentClassifier:
    """Map composite scores to segment labels with first-match-wins rules.

    Examples
    --------
    >>> classifier = SegmentClassifier.from_pairs([
    ...     ("5**", "Best Customers"),
    ...     ("**1", "Lost Customers"),
    ... ])
    >>> classifier.classify("521")
    'Best Customers'
    >>> classifier.classify("333")
    'Unclassified'
    """

    def __init__(self, rules: Iterable[SegmentRule]) -> None:
        self.rules = tuple(rules)
        if not self.rules:
            raise ConfigurationError("At least one segment rule is required")
        for rule in self.rules:
            if not isinstance(rule, SegmentRule):
                raise ConfigurationError(
                    f"Expected SegmentRule instances, got {type(rule).__name__}"
                )

    @classmethod
    def from_pairs(
        cls, pairs: Iterable[tuple[PatternSpec, str]]
    ) -> "SegmentClassifier":
        """Build a classifier from ``(pattern or patterns, label)`` pairs in priority order."""
        rules = []
        for item in pairs:
            try:
                patterns, label = item
            except (TypeError, ValueError) as exc:
                raise ConfigurationError(
                    f"Segment rules must be (pattern, label) pairs: {item!r}"
                ) from exc
            rules.append(SegmentRule(label=label, patterns=patterns))
        return cls(rules)

    def classify(self, composite: CompositeLike) -> str:
        """Return the label of the first rule matching ``composite``."""
        code = compose_score(*parse_composite(composite))
        for rule in self.rules:
            if rule.matches(code):
                return rule.label
        return UNCLASSIFIED

    def classify_scores(self, scores: Sequence[RFMScore]) -> list[RFMScore]:
        """Return copies of ``scores`` with their ``segment`` set."""
        return [replace(s, segment=self.classify(s.composite_score)) for s in scores]
