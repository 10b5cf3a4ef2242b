"""Unit tests for core/admonitions.py"""

from mystfmt.core.admonitions import (
    TYPE_PRIORITY,
    classify_block,
    detect_admonition_candidates,
    detect_safety_critical_content,
    has_existing_admonition,
    is_too_short,
    merge_suggestions,
    score_block,
    should_be_admonition,
)
from mystfmt.core.models import AdmonitionSuggestion, AdmonitionType, SuggestionSource
from mystfmt.core.parse import parse_content


A = AdmonitionType


def _blocks(raw: str):
    return parse_content(raw).blocks


def _suggestion(block_id: str, kind: AdmonitionType, source=SuggestionSource.rule_based, confidence=0.7):
    return AdmonitionSuggestion(block_id=block_id, type=kind, confidence=confidence, source=source)


# --- scoring ---

def test_score_block_takes_max_not_sum():
    score, reason, title = score_block("Pro tip: keep a quick shortcut handy.", A.tip)
    assert score == 0.95
    assert reason == 'Contains "Pro tip"'
    assert title == "Pro Tip"


def test_score_block_no_match():
    assert score_block("Plain sentence with nothing special.", A.danger) == (0.0, "", None)


def test_classify_warning_beats_danger():
    best = classify_block("Warning: never delete the root directory.", [A.danger, A.warning])
    assert best[0] == A.warning
    assert best[1] == 0.9


def test_classify_tie_resolves_by_priority():
    """'critical' scores 0.7 for both danger and important; danger ranks first."""
    best = classify_block("This step is critical for the build to succeed.", [A.important, A.danger])
    assert best[0] == A.danger


def test_classify_respects_enabled_types():
    assert classify_block("Warning: never delete the root directory.", [A.tip]) is None


# --- eligibility ---

def test_short_paragraph_never_suggested():
    assert is_too_short("Warning never friend")
    assert detect_admonition_candidates(_blocks("Warning never friend")) == []


def test_existing_admonition_skipped():
    assert has_existing_admonition(":::{note}\nbody\n:::")
    assert not has_existing_admonition("plain text")


def test_directive_content_not_suggested():
    raw = ":::{note}\nWarning: never delete the root directory on a server.\n:::"
    assert detect_admonition_candidates(_blocks(raw)) == []


# --- candidate detection ---

def test_detect_candidates_scenario():
    blocks = _blocks("Warning: never delete the root directory.")
    suggestions = detect_admonition_candidates(blocks, min_confidence=0.5, enabled_types=[A.danger, A.warning])
    assert len(suggestions) == 1
    assert suggestions[0].type == A.warning
    assert suggestions[0].block_id == "block-1"
    assert suggestions[0].source == SuggestionSource.rule_based


def test_detect_candidates_sorted_and_capped():
    raw = (
        "You might find this helpful when setting things up.\n\n"
        "Danger: this command deletes everything on the disk.\n\n"
        "Please note that the cache lives in your home directory."
    )
    suggestions = detect_admonition_candidates(_blocks(raw), min_confidence=0.4)
    assert [s.confidence for s in suggestions] == sorted((s.confidence for s in suggestions), reverse=True)
    assert suggestions[0].type == A.danger

    capped = detect_admonition_candidates(_blocks(raw), min_confidence=0.4, max_suggestions=1)
    assert len(capped) == 1


def test_detect_safety_critical_excludes_tips():
    raw = "Pro tip: keep a quick shortcut handy for daily work."
    assert detect_safety_critical_content(_blocks(raw)) == []


def test_should_be_admonition():
    block = _blocks("Warning: never delete the root directory.")[0]
    suggestion = should_be_admonition(block)
    assert suggestion.type == A.warning


def test_type_priority_covers_all_types():
    assert set(TYPE_PRIORITY) == set(AdmonitionType)


# --- merging ---

def test_merge_external_beats_rule_based_in_any_order():
    rule_based = _suggestion("block-1", A.warning)
    external = _suggestion("block-1", A.tip, source=SuggestionSource.external)
    assert merge_suggestions([rule_based], [external])["block-1"].type == A.tip
    assert merge_suggestions([external], [rule_based])["block-1"].type == A.tip


def test_merge_same_source_later_wins():
    merged = merge_suggestions([_suggestion("block-1", A.note)], [_suggestion("block-1", A.hint)])
    assert merged["block-1"].type == A.hint


def test_merge_keeps_distinct_blocks():
    merged = merge_suggestions([_suggestion("block-1", A.note), _suggestion("block-3", A.tip)])
    assert set(merged) == {"block-1", "block-3"}
