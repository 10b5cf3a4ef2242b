"""Weighted keyword classification of paragraphs into admonition types"""

import re
from typing import Iterable, Optional

import structlog

from mystfmt.core.models import AdmonitionSuggestion, AdmonitionType, ContentBlock, SuggestionSource
from mystfmt.core.parse import is_prose
from mystfmt.core.utils.rules import Rule, rule, strongest


logger = structlog.get_logger(__name__)

I = re.IGNORECASE

A = AdmonitionType

# Per-type keyword rules. A block's score for a type is the max weight matched, never the sum.
ADMONITION_RULES: dict[AdmonitionType, tuple[Rule, ...]] = {
    A.warning: (
        rule(r'\bwarning\b', 0.9, I),
        rule(r'\bcaution\b', 0.7, I),
        rule(r"\bdon'?t\b", 0.6, I),
        rule(r'\bnever\b', 0.7, I),
        rule(r'\bavoid\b', 0.6, I),
        rule(r'\bbe careful\b', 0.7, I),
        rule(r'\bwatch out\b', 0.8, I),
        rule(r'\bdangerous\b', 0.8, I),
        rule(r'\brisk\b', 0.5, I),
        rule(r'\bpotential (issue|problem|error)\b', 0.7, I),
        rule(r'\bcan (cause|lead to|result in)\b', 0.5, I),
        rule(r'\bwill (fail|break|crash)\b', 0.7, I),
        rule(r'\bmay (fail|break|crash)\b', 0.6, I),
        rule(r'\bcommon (mistake|error|pitfall)\b', 0.8, I),
        rule(r'\bpitfall\b', 0.7, I),
        rule(r'\bgotcha\b', 0.7, I),
        rule(r'\berror-prone\b', 0.7, I),
        rule(r'\bbe aware\b', 0.6, I),
        rule(r'\bprecaution\b', 0.6, I),
    ),
    A.caution: (
        rule(r'\bcaution\b', 0.9, I),
        rule(r'\bproceed (with care|carefully)\b', 0.8, I),
        rule(r'\bexercise (care|caution)\b', 0.8, I),
        rule(r'\bmight (not work|cause)\b', 0.5, I),
        rule(r'\bcould (cause|lead to)\b', 0.5, I),
        rule(r'\bsensitive\b', 0.4, I),
        rule(r'\bcareful (when|about|with)\b', 0.7, I),
    ),
    A.danger: (
        rule(r'\bdanger\b', 0.95, I),
        rule(r'\bdangerous\b', 0.9, I),
        rule(r'\bcritical\b', 0.7, I),
        rule(r'\birreversible\b', 0.85, I),
        rule(r'\bcannot (be undone|undo)\b', 0.9, I),
        rule(r'\bpermanent(ly)?\b', 0.7, I),
        rule(r'\bdeletes? (all|everything|permanently)\b', 0.9, I),
        rule(r'\bdata loss\b', 0.9, I),
        rule(r'\bsecurity (risk|vulnerability|issue)\b', 0.8, I),
        rule(r'\bdo not use in production\b', 0.9, I),
        rule(r'\bnever do this\b', 0.9, I),
        rule(r'\bdestroy\b', 0.7, I),
    ),
    A.error: (
        rule(r'\berror\b', 0.5, I),
        rule(r'\berror:', 0.8, I),
        rule(r'\bexception\b', 0.6, I),
        rule(r'\bfailure\b', 0.5, I),
        rule(r'\bwill (throw|raise) (an )?error\b', 0.8, I),
        rule(r'\bcauses? (an )?error\b', 0.8, I),
        rule(r'\bresults? in (an )?error\b', 0.8, I),
        rule(r"\bthis (doesn'?t|won'?t|will not) work\b", 0.7, I),
        rule(r'\binvalid\b', 0.4, I),
        rule(r'\billegal\b', 0.4, I),
        rule(r'\bsyntax error\b', 0.9, I),
        rule(r'\btype error\b', 0.9, I),
        rule(r'\bruntime error\b', 0.9, I),
    ),
    A.tip: (
        rule(r'\btip\b', 0.9, I, title='Tip'),
        rule(r'\bpro tip\b', 0.95, I, title='Pro Tip'),
        rule(r'\btrick\b', 0.7, I),
        rule(r'\bhint\b', 0.6, I),
        rule(r'\bshortcut\b', 0.7, I),
        rule(r'\bquick(er|ly)?\b', 0.4, I),
        rule(r'\befficient(ly)?\b', 0.4, I),
        rule(r'\bsave time\b', 0.6, I),
        rule(r'\btime-saving\b', 0.7, I),
        rule(r'\bbetter (way|approach|method)\b', 0.6, I),
        rule(r'\bhelpful\b', 0.5, I),
        rule(r'\buseful\b', 0.5, I),
        rule(r'\blifehack\b', 0.8, I),
        rule(r'\badvice\b', 0.5, I),
        rule(r'\brecommend\b', 0.5, I),
        rule(r'\bbest practice\b', 0.7, I, title='Best Practice'),
        rule(r'\beasier (way|method|approach)\b', 0.6, I),
        rule(r'\binstead (of\b|,)', 0.4, I),
    ),
    A.hint: (
        rule(r'\bhint\b', 0.9, I),
        rule(r'\bclue\b', 0.7, I),
        rule(r'\btry\b', 0.3, I),
        rule(r'\bconsider\b', 0.4, I),
        rule(r'\bexplore\b', 0.4, I),
        rule(r'\blook (at|into)\b', 0.3, I),
        rule(r'\bcheck (out|the)\b', 0.3, I),
        rule(r'\bsee (also|the)\b', 0.3, I),
    ),
    A.note: (
        rule(r'\bnote\b', 0.8, I),
        rule(r'\bnote:', 0.95, I),
        rule(r'\bn\.b\.', 0.9, I),
        rule(r'\bnota bene\b', 0.95, I),
        rule(r'\bplease note\b', 0.9, I),
        rule(r'\bkeep in mind\b', 0.7, I),
        rule(r'\bremember\b', 0.5, I),
        rule(r"\bdon'?t forget\b", 0.6, I),
        rule(r'\bfyi\b', 0.8, I),
        rule(r'\bfor your information\b', 0.8, I),
        rule(r'\bfor reference\b', 0.6, I),
        rule(r'\bworth (noting|mentioning)\b', 0.7, I),
        rule(r'\bside note\b', 0.85, I),
        rule(r'\baside\b', 0.5, I),
        rule(r'\bby the way\b', 0.6, I),
        rule(r'\bbtw\b', 0.5, I),
        rule(r'\badditionally\b', 0.3, I),
        rule(r'\bfurthermore\b', 0.3, I),
    ),
    A.important: (
        rule(r'\bimportant\b', 0.9, I),
        rule(r'\bcrucial\b', 0.85, I),
        rule(r'\bessential\b', 0.8, I),
        rule(r'\bcritical\b', 0.7, I),
        rule(r'\bmust\b', 0.5, I),
        rule(r'\brequired\b', 0.5, I),
        rule(r'\bnecessary\b', 0.5, I),
        rule(r'\bkey (point|concept|idea)\b', 0.7, I),
        rule(r'\bfundamental\b', 0.6, I),
        rule(r'\bpay attention\b', 0.7, I),
        rule(r'\battention\b', 0.5, I),
        rule(r'\bmake sure\b', 0.5, I),
        rule(r'\bensure\b', 0.4, I),
    ),
    A.attention: (
        rule(r'\battention\b', 0.9, I),
        rule(r'\bheads up\b', 0.85, I),
        rule(r'\bheads-up\b', 0.85, I),
        rule(r'\blisten up\b', 0.8, I),
        rule(r'\bnotice\b', 0.5, I),
        rule(r'\bplease read\b', 0.6, I),
        rule(r'\bread carefully\b', 0.7, I),
        rule(r'\bthis section\b', 0.3, I),
    ),
    A.seealso: (
        rule(r'\bsee also\b', 0.95, I, title='See Also'),
        rule(r'\brelated\b', 0.6, I),
        rule(r'\bsimilar(ly)?\b', 0.4, I),
        rule(r'\bfor more (info|information|details)\b', 0.7, I),
        rule(r'\blearn more\b', 0.6, I),
        rule(r'\bfurther reading\b', 0.85, I),
        rule(r'\badditional resources\b', 0.8, I),
        rule(r'\breferences?\b', 0.5, I),
        rule(r'\balso (see|check|read)\b', 0.7, I),
        rule(r'\bsee \[', 0.6, I),
        rule(r'\bcheck out\b', 0.5, I),
    ),
}

# Most severe/specific first; earlier types win score ties.
TYPE_PRIORITY: tuple[AdmonitionType, ...] = (
    A.danger, A.error, A.warning, A.caution, A.important,
    A.attention, A.tip, A.hint, A.note, A.seealso,
)

SAFETY_CRITICAL_TYPES = (A.danger, A.error, A.warning, A.caution)

MIN_WORDS = 5

EXISTING_ADMONITION_RE = re.compile(
    r'^:{3,}\{?(' + '|'.join(t.value for t in TYPE_PRIORITY) + r')\}?', re.MULTILINE | re.IGNORECASE,
)


def has_existing_admonition(content: str) -> bool:
    return bool(EXISTING_ADMONITION_RE.search(content))


def is_too_short(content: str) -> bool:
    return len(content.split()) < MIN_WORDS


def score_block(content: str, admonition_type: AdmonitionType) -> tuple[float, str, Optional[str]]:
    """Return (score, reason, suggested_title) for one type: the strongest matching rule."""
    hit = strongest(ADMONITION_RULES[admonition_type], content)
    if hit is None:
        return 0.0, '', None
    return hit.rule.weight, f'Contains "{hit.text}"', hit.rule.title


def classify_block(
    content: str,
    enabled_types: Iterable[AdmonitionType] = TYPE_PRIORITY,
    ) -> Optional[tuple[AdmonitionType, float, str, Optional[str]]]:
    """Return the winning (type, score, reason, title) for content, or None if nothing matched.

    Types are visited in TYPE_PRIORITY order so ties resolve to the more severe type,
    independent of the order enabled_types is given in.
    """
    enabled = set(enabled_types)
    best = None
    for admonition_type in TYPE_PRIORITY:
        if admonition_type not in enabled:
            continue
        score, reason, title = score_block(content, admonition_type)
        if score > 0 and (best is None or score > best[1]):
            best = (admonition_type, score, reason, title)
    return best


def _eligible(block: ContentBlock) -> bool:
    if not is_prose(block):
        return False
    if has_existing_admonition(block.content):
        logger.debug("admonitions.block_skipped", block_id=block.id, reason="already_wrapped")
        return False
    if is_too_short(block.content):
        logger.debug("admonitions.block_skipped", block_id=block.id, reason="too_short")
        return False
    return True


def detect_admonition_candidates(
    blocks: list[ContentBlock],
    min_confidence: float = 0.5,
    max_suggestions: int = 20,
    enabled_types: Iterable[AdmonitionType] = None,
    ) -> list[AdmonitionSuggestion]:
    """Suggest one admonition type per eligible paragraph, strongest first."""
    enabled = tuple(enabled_types) if enabled_types is not None else TYPE_PRIORITY
    suggestions = []

    for block in blocks:
        if not _eligible(block):
            continue
        best = classify_block(block.content, enabled)
        if best is None or best[1] < min_confidence:
            continue
        admonition_type, score, reason, title = best
        suggestions.append(AdmonitionSuggestion(
            block_id=block.id,
            type=admonition_type,
            confidence=score,
            reason=reason,
            suggested_title=title,
        ))

    suggestions.sort(key=lambda s: s.confidence, reverse=True)
    logger.debug(
        "admonitions.detected",
        blocks=len(blocks), suggestions=len(suggestions), min_confidence=min_confidence,
    )
    return suggestions[:max_suggestions]


def detect_specific_admonitions(
    blocks: list[ContentBlock],
    types: Iterable[AdmonitionType],
    ) -> list[AdmonitionSuggestion]:
    return detect_admonition_candidates(blocks, enabled_types=types)


def detect_safety_critical_content(blocks: list[ContentBlock]) -> list[AdmonitionSuggestion]:
    """Danger/error/warning/caution candidates only."""
    return detect_admonition_candidates(blocks, min_confidence=0.5, enabled_types=SAFETY_CRITICAL_TYPES)


def should_be_admonition(block: ContentBlock, min_confidence: float = 0.6) -> Optional[AdmonitionSuggestion]:
    """Return the first type in priority order whose score reaches min_confidence."""
    if not _eligible(block):
        return None
    for admonition_type in TYPE_PRIORITY:
        score, reason, title = score_block(block.content, admonition_type)
        if score >= min_confidence:
            return AdmonitionSuggestion(
                block_id=block.id, type=admonition_type, confidence=score,
                reason=reason, suggested_title=title,
            )
    return None


_SOURCE_RANK = {SuggestionSource.rule_based: 0, SuggestionSource.external: 1}


def merge_suggestions(*groups: Iterable[AdmonitionSuggestion]) -> dict[str, AdmonitionSuggestion]:
    """Merge suggestion groups keyed by block id; a higher-ranked source always wins.

    Within the same source the later suggestion replaces the earlier one.
    """
    merged: dict[str, AdmonitionSuggestion] = {}
    for group in groups:
        for s in group:
            current = merged.get(s.block_id)
            if current is None or _SOURCE_RANK[s.source] >= _SOURCE_RANK[current.source]:
                merged[s.block_id] = s
    return merged
