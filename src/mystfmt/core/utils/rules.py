"""Generic interpreter for ordered (pattern, weight) rule tables"""

import re
from dataclasses import dataclass
from typing import Iterable, Optional


@dataclass(frozen=True)
class Rule:
    """A single regex signal with a weight and an optional suggested title."""
    pattern: re.Pattern
    weight:  float = 1.0
    title:   Optional[str] = None


@dataclass(frozen=True)
class RuleHit:
    rule:  Rule
    match: re.Match

    @property
    def text(self) -> str:
        return self.match.group(0)


def rule(pattern: str, weight: float = 1.0, flags: int = 0, title: str = None) -> Rule:
    """Compile pattern into a Rule."""
    return Rule(re.compile(pattern, flags), weight, title)


def hits(rules: Iterable[Rule], text: str) -> list[RuleHit]:
    """Return a hit for every rule whose pattern matches text, in table order."""
    found = []
    for r in rules:
        m = r.pattern.search(text)
        if m:
            found.append(RuleHit(r, m))
    return found


def match_ratio(rules: tuple[Rule, ...], text: str) -> float:
    """Fraction of rules in the table that match text (0.0 for an empty table)."""
    if not rules:
        return 0.0
    return len(hits(rules, text)) / len(rules)


def strongest(rules: Iterable[Rule], text: str) -> Optional[RuleHit]:
    """Return the matching hit with the highest weight; the earliest rule wins ties."""
    best: Optional[RuleHit] = None
    for h in hits(rules, text):
        if best is None or h.rule.weight > best.rule.weight:
            best = h
    return best
