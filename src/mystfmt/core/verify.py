"""Content preservation checks: compare stripped original and formatted text"""

import re

import structlog

from mystfmt.core.models import IssueSeverity, IssueType, VerificationIssue, VerificationResult
from mystfmt.core.utils.words import count_words


logger = structlog.get_logger(__name__)

M = re.MULTILINE

# Ordered (pattern, replacement) passes that reduce MyST/markdown to bare prose.
STRIP_PASSES: tuple[tuple[re.Pattern, str], ...] = (
    (re.compile(r'^[ \t]*(`{3,}|~{3,})[^`\n]*$', M), ''),          # code fences and ```{directive} lines
    (re.compile(r'^[ \t]*:{2,}\{[\w:.-]+\}.*$', M), ''),            # :::{directive} [title]
    (re.compile(r'^[ \t]*:{2,}[\w-]*[ \t]*$', M), ''),               # ::: closers and :::name
    (re.compile(r'^[ \t]*:[\w-]+:.*$', M), ''),                      # :label: / :class: options
    (re.compile(r'^\([^)\n]+\)=[ \t]*$', M), ''),                    # (label)= targets
    (re.compile(r'^#{1,6}\s+', M), ''),
    (re.compile(r'^(?:>[ \t]?)+', M), ''),
    (re.compile(r'^(\s*)[-*+]\s+', M), r'\1'),
    (re.compile(r'^(\s*)\d+\.\s+', M), r'\1'),
    (re.compile(r'\*\*([^*]+)\*\*'), r'\1'),
    (re.compile(r'\*([^*\n]+)\*'), r'\1'),
    (re.compile(r'~~([^~]+)~~'), r'\1'),
    (re.compile(r'\{[\w:-]+\}`([^`]+)`'), r'\1'),                    # {role}`content`
    (re.compile(r'`([^`]+)`'), r'\1'),
    (re.compile(r'!?\[([^\]]*)\]\([^)]*\)'), r'\1'),
    (re.compile(r'\$\$\n?'), ''),
    (re.compile(r'\$'), ''),
    (re.compile(r'\n{3,}'), '\n\n'),
)

SENTENCE_SPLIT_RE = re.compile(r'(?<=[.!?])\s+')
PUNCT_RE          = re.compile(r'[^\w\s]')
SPACE_RE          = re.compile(r'\s+')

MIN_SENTENCE_CHARS   = 10
MIN_PERCENTAGE       = 98.0
MIN_SENTENCE_RATE    = 95.0
WORD_LOSS_WARNING    = 6
WORD_LOSS_ERROR      = 50
EXCERPT_CHARS        = 100


def strip_formatting(content: str) -> str:
    """Remove markup (fences, directives, markers, inline styles, math, labels), keeping prose."""
    result = content
    for pattern, replacement in STRIP_PASSES:
        result = pattern.sub(replacement, result)
    return result.strip()


def extract_sentences(content: str) -> list[str]:
    """Split the stripped text after sentence-ending punctuation."""
    return [s.strip() for s in SENTENCE_SPLIT_RE.split(strip_formatting(content)) if s.strip()]


def normalize_for_comparison(text: str) -> str:
    """Lower-case, punctuation-free, single-spaced form of the stripped text."""
    text = PUNCT_RE.sub('', strip_formatting(text).lower())
    return SPACE_RE.sub(' ', text).strip()


def find_missing_sentences(
    original_sentences: list[str],
    formatted: str,
    overlap_threshold: float = 0.7,
    ) -> list[str]:
    """Return original sentences absent from formatted.

    A sentence is present if its normalized form is a substring of the normalized
    formatted text; otherwise it is missing only when fewer than overlap_threshold of
    its words longer than three letters occur anywhere in the formatted text.
    """
    normalized = normalize_for_comparison(formatted)
    vocabulary = set(normalized.split())
    missing = []

    for sentence in original_sentences:
        target = normalize_for_comparison(sentence)
        if len(target) <= MIN_SENTENCE_CHARS or target in normalized:
            continue
        significant = [w for w in target.split() if len(w) > 3]
        if not significant:
            continue
        overlap = sum(1 for w in significant if w in vocabulary) / len(significant)
        if overlap < overlap_threshold:
            missing.append(sentence)

    return missing


def _excerpt(sentence: str) -> str:
    return sentence[:EXCERPT_CHARS] + ('...' if len(sentence) > EXCERPT_CHARS else '')


def verify_preservation(
    original: str,
    formatted: str,
    overlap_threshold: float = 0.7,
    max_reported: int = 5,
    ) -> VerificationResult:
    """Check that formatted keeps every word and sentence of original.

    Preservation percentage only penalizes loss (capped at 100). The verdict requires
    >= 98% of words, >= 95% of sentences, and no error-severity issue.
    """
    original_words = count_words(strip_formatting(original))
    formatted_words = count_words(strip_formatting(formatted))
    difference = formatted_words - original_words

    percentage = 100.0
    if original_words > 0:
        percentage = min(100.0, formatted_words / original_words * 100)

    original_sentences = extract_sentences(original)
    formatted_sentences = extract_sentences(formatted)
    missing = find_missing_sentences(original_sentences, formatted, overlap_threshold)

    sentence_rate = 100.0
    if original_sentences:
        sentence_rate = (len(original_sentences) - len(missing)) / len(original_sentences) * 100

    issues: list[VerificationIssue] = []
    lost = -difference
    if lost >= WORD_LOSS_WARNING:
        issues.append(VerificationIssue(
            type=IssueType.word_count_mismatch,
            severity=IssueSeverity.error if lost >= WORD_LOSS_ERROR else IssueSeverity.warning,
            description=f"Word count decreased by {lost} words ({original_words} -> {formatted_words})",
        ))

    for sentence in missing[:max_reported]:
        issues.append(VerificationIssue(
            type=IssueType.missing_content,
            severity=IssueSeverity.error,
            description="Sentence may be missing from formatted output",
            excerpt=_excerpt(sentence),
        ))
    if len(missing) > max_reported:
        issues.append(VerificationIssue(
            type=IssueType.missing_content,
            severity=IssueSeverity.error,
            description=f"{len(missing) - max_reported} additional sentences may be missing",
        ))

    is_preserved = (
        percentage >= MIN_PERCENTAGE
        and sentence_rate >= MIN_SENTENCE_RATE
        and not any(i.severity == IssueSeverity.error for i in issues)
    )
    logger.debug(
        "verify.done",
        is_preserved=is_preserved, percentage=round(percentage, 1),
        sentence_rate=round(sentence_rate, 1), missing=len(missing),
    )

    return VerificationResult(
        is_preserved=is_preserved,
        original_word_count=original_words,
        formatted_word_count=formatted_words,
        word_count_difference=difference,
        preservation_percentage=percentage,
        original_sentences=len(original_sentences),
        formatted_sentences=len(formatted_sentences),
        sentence_preservation_rate=sentence_rate,
        missing_sentences=missing,
        issues=issues,
    )


def quick_verify(original: str, formatted: str) -> bool:
    """Word-count-only check: formatted keeps at least 98% of the original words."""
    original_words = count_words(strip_formatting(original))
    return count_words(strip_formatting(formatted)) >= original_words * MIN_PERCENTAGE / 100


def validate_transformation(original_block: str, transformed_block: str) -> tuple[bool, str]:
    """Return (is_valid, reason); invalid when more than 5% of the block's words disappear."""
    before = {w for w in normalize_for_comparison(original_block).split() if len(w) > 2}
    after = {w for w in normalize_for_comparison(transformed_block).split() if len(w) > 2}
    lost = sorted(before - after)

    if len(lost) > len(before) * 0.05:
        shown = ', '.join(lost[:5]) + ('...' if len(lost) > 5 else '')
        return False, f"Missing {len(lost)} words: {shown}"
    return True, ''


def generate_verification_report(result: VerificationResult) -> str:
    """Render a VerificationResult as a plain-text report."""
    status = 'PRESERVED' if result.is_preserved else 'POTENTIAL ISSUES DETECTED'
    sign = '+' if result.word_count_difference >= 0 else ''
    lines = [
        '=== Content Preservation Verification Report ===',
        '',
        f"Status: {status}",
        '',
        'Word Count Analysis:',
        f"  Original: {result.original_word_count} words",
        f"  Formatted: {result.formatted_word_count} words",
        f"  Difference: {sign}{result.word_count_difference} words",
        f"  Preservation: {result.preservation_percentage:.1f}%",
        '',
        'Sentence Analysis:',
        f"  Original: {result.original_sentences} sentences",
        f"  Formatted: {result.formatted_sentences} sentences",
        f"  Preservation Rate: {result.sentence_preservation_rate:.1f}%",
        '',
    ]

    if not result.issues:
        lines.append('No issues found.')
        return '\n'.join(lines)

    lines.append('Issues Found:')
    for issue in result.issues:
        lines.append(f"  [{issue.severity.value.upper()}] {issue.description}")
        if issue.excerpt:
            lines.append(f'        Original: "{issue.excerpt}"')
    return '\n'.join(lines)
