"""Transformation engine: expand features, merge suggestions, wrap blocks, normalize spacing"""

import re
from typing import Optional

import structlog

from mystfmt.core.admonitions import TYPE_PRIORITY, detect_admonition_candidates, merge_suggestions
from mystfmt.core.models import (
    AdmonitionSuggestion,
    AdmonitionType,
    AppliedTransformation,
    BlockType,
    ContentBlock,
    DetectedPattern,
    ExternalSuggestion,
    PatternType,
    SuggestionSource,
    TransformationConfig,
    TransformationKind,
    TransformationResult,
    TransformationSuggestion,
)
from mystfmt.core.parse import (
    DIRECTIVE_END_RE as VERBATIM_END_RE,
    directive_start,
    fence_start,
    is_fence_end,
    is_prose,
    parse_content,
)
from mystfmt.core.patterns import detect_all_patterns, detect_language, fence_body
from mystfmt.core.transformers import format_code_block, set_fence_language, wrap_in_admonition
from mystfmt.core.utils.words import count_words
from mystfmt.core.verify import validate_transformation


logger = structlog.get_logger(__name__)

ADMONITION_FEATURES: tuple[str, ...] = tuple(t.value for t in AdmonitionType)

# Coarse feature ids -> fine-grained ids.
FEATURE_EXPANSIONS: dict[str, tuple[str, ...]] = {
    'admonitions': ADMONITION_FEATURES,
    'code-blocks': ('code-block', 'code-linenos', 'code-caption', 'code-emphasize', 'code-filename'),
    'figures':     ('figure',),
    'math':        ('inline-math', 'equation-block'),
    'tabs':        ('tab-set',),
    'dropdowns':   ('dropdown',),
    'cards':       ('card',),
}

# Fine-grained feature ids -> engine capabilities.
FEATURE_CAPABILITIES: dict[str, tuple[str, ...]] = {
    **{t: (f"admonition-{t}",) for t in ADMONITION_FEATURES},
    'code-block':        ('code-block', 'code-language'),
    'code-linenos':      ('code-linenos',),
    'code-caption':      ('code-caption',),
    'code-emphasize':    ('code-emphasize',),
    'code-filename':     ('code-filename',),
    'figure':            ('figure',),
    'margin':            ('margin',),
    'aside':             ('aside',),
    'dropdown':          ('dropdown',),
    'tab-set':           ('tabs',),
    'card':              ('card',),
    'mermaid-flowchart': ('mermaid',),
    'inline-math':       ('math-inline',),
    'equation-block':    ('math-block',),
}

WORD_LOSS_WARNING_RATIO = 0.95
QUICK_FORMAT_MIN_CONFIDENCE = 0.4


def expand_feature_ids(features: list[str]) -> list[str]:
    """Replace coarse ids (e.g. 'admonitions') with their fine ids; order-preserving, deduplicated."""
    expanded: dict[str, None] = {}
    for feature in features:
        for fine in FEATURE_EXPANSIONS.get(feature, (feature,)):
            expanded[fine] = None
    return list(expanded)


def get_enabled_capabilities(features: list[str]) -> set[str]:
    capabilities = {cap for f in features for cap in FEATURE_CAPABILITIES.get(f, ())}
    if any(f in ADMONITION_FEATURES for f in features):
        capabilities.add('admonitions')
    if any(f.startswith('code-') for f in features):
        capabilities.add('code-formatting')
    return capabilities


def get_enabled_admonition_types(features: list[str]) -> list[AdmonitionType]:
    """Enabled admonition types, in priority order."""
    return [t for t in TYPE_PRIORITY if t.value in features]


def _from_external(suggestions: list[ExternalSuggestion]) -> list[AdmonitionSuggestion]:
    """Convert external suggestions, dropping those naming an unknown admonition type."""
    converted = []
    for s in suggestions:
        if s.type not in ADMONITION_FEATURES:
            logger.debug("engine.external_suggestion_ignored", block_id=s.paragraph_id, type=s.type)
            continue
        converted.append(AdmonitionSuggestion(
            block_id=s.paragraph_id,
            type=AdmonitionType(s.type),
            confidence=s.confidence,
            reason=s.reason,
            suggested_title=s.title,
            source=SuggestionSource.external,
        ))
    return converted


# --- spacing ---

HEADING_LINE_RE   = re.compile(r'^#{1,6}\s')
DIRECTIVE_OPEN_RE = re.compile(r'^:{3,}\{')
DIRECTIVE_END_RE  = re.compile(r'^:{3,}\s*$')
MAX_BLANK_RUN     = 2


def _needs_gap(prev: str, line: str, opens_fence: bool, closed_fence: bool) -> bool:
    """Whether a blank line belongs between two adjacent non-empty lines."""
    if HEADING_LINE_RE.match(line) or DIRECTIVE_OPEN_RE.match(line) or opens_fence:
        return True
    if HEADING_LINE_RE.match(prev) and not line.startswith('#'):
        return True
    if DIRECTIVE_END_RE.match(prev) and not line.startswith(':'):
        return True
    return closed_fence and not line.startswith(('`', '~'))


def _verbatim_start(line: str) -> Optional[tuple[str, int, bool]]:
    """(char, length, exact) for a line opening a fence or a backtick directive.

    A backtick directive closes only on a bare run of exactly its own length.
    """
    directive = directive_start(line)
    if directive:
        return (directive[0], directive[1], True) if directive[0] == '`' else None
    opener = fence_start(line)
    return (opener[0], opener[1], False) if opener else None


def _closes(line: str, region: tuple[str, int, bool]) -> bool:
    char, length, exact = region
    if not exact:
        return is_fence_end(line, char, length)
    m = VERBATIM_END_RE.match(line.rstrip())
    return bool(m) and m.group(1) == char * length


def normalize_spacing(content: str) -> str:
    """Put blank lines around headings, code fences, and directives; cap blank runs at 2.

    Lines inside fenced code and backtick directives are never touched. The result is a
    fixed point: running it again returns the same text.
    """
    out: list[str] = []
    region: Optional[tuple[str, int, bool]] = None
    closed_fence = False
    blank_run = 0

    for line in content.split('\n'):
        if region is not None:
            out.append(line)
            if _closes(line, region):
                region, closed_fence = None, True
            continue

        if not line.strip():
            blank_run += 1
            if blank_run <= MAX_BLANK_RUN:
                out.append(line)
            closed_fence = False
            continue

        opener = _verbatim_start(line)
        if out and out[-1].strip() and _needs_gap(out[-1], line, opener is not None, closed_fence):
            out.append('')
        out.append(line)
        blank_run = 0
        closed_fence = False
        region = opener

    return '\n'.join(out)


# --- per-block transforms ---

def _applied(block: ContentBlock, kind: TransformationKind, description: str, transformed: str) -> AppliedTransformation:
    return AppliedTransformation(
        block_id=block.id,
        type=kind,
        description=description,
        original_content=block.content,
        transformed_content=transformed,
    )


def transform_block(
    block: ContentBlock,
    patterns: list[DetectedPattern],
    suggestion: Optional[AdmonitionSuggestion],
    capabilities: set[str],
    enabled_types: list[AdmonitionType],
    config: TransformationConfig,
    ) -> Optional[AppliedTransformation]:
    """Return the transformation for one block, or None to leave it as-is."""
    code_pattern = next(
        (p for p in patterns if p.block_id == block.id and p.pattern_type == PatternType.code
         and p.metadata.get("needs_formatting")),
        None,
    )

    if block.type == BlockType.code:
        if not ('code-language' in capabilities and config.enable_auto_language_detection):
            return None
        language = code_pattern.metadata.get("language") if code_pattern else None
        transformed = set_fence_language(block.content, language) if language else None
        if transformed is None:
            return None
        return _applied(block, TransformationKind.code_language, f"Added language: {language}", transformed)

    if not is_prose(block):
        return None

    if suggestion is not None and config.enable_admonitions and suggestion.type in enabled_types:
        transformed = wrap_in_admonition(block.content, suggestion.type, suggestion.suggested_title)
        reason = f" ({suggestion.reason})" if suggestion.reason else ''
        return _applied(
            block, TransformationKind.admonition,
            f"Wrapped in {suggestion.type.value} admonition{reason}", transformed,
        )

    if (code_pattern is not None and 'code-block' in capabilities and config.enable_code_blocks
            and code_pattern.confidence >= config.code_confidence_threshold):
        language = code_pattern.metadata.get("language") or 'text'
        transformed = format_code_block(block.content, language)
        return _applied(block, TransformationKind.code_block, f"Converted to {language} code block", transformed)

    return None


def _join(parts: list[str]) -> str:
    return '\n'.join(p[:-1] if p.endswith('\n') else p for p in parts)


def transform_content(raw: str, config: TransformationConfig = None) -> TransformationResult:
    """Apply rule-based (and externally suggested) MyST formatting to raw text.

    Never raises on malformed input; the worst case leaves a block untransformed.
    Word loss is reported as a soft warning only, hard checks belong to verification.
    """
    config = config or TransformationConfig()
    features = expand_feature_ids(config.selected_features)
    capabilities = get_enabled_capabilities(features)
    enabled_types = get_enabled_admonition_types(features)
    logger.info("transform.start", features=features, chars=len(raw))

    parsed = parse_content(raw)
    patterns = detect_all_patterns(parsed.blocks)

    rule_based: list[AdmonitionSuggestion] = []
    hints: list[AdmonitionSuggestion] = []
    if config.enable_admonitions and enabled_types:
        rule_based = detect_admonition_candidates(
            parsed.blocks,
            min_confidence=config.admonition_confidence_threshold,
            max_suggestions=config.max_suggestions,
            enabled_types=enabled_types,
        )
        hints = [
            s for s in detect_admonition_candidates(
                parsed.blocks,
                min_confidence=config.admonition_hint_threshold,
                max_suggestions=len(parsed.blocks),
                enabled_types=enabled_types,
            )
            if s.confidence < config.admonition_confidence_threshold
        ][:config.max_suggestions]

    # External suggestions claim their block even when their type is disabled;
    # transform_block then leaves that block alone.
    suggestions_by_block = merge_suggestions(rule_based, _from_external(config.external_suggestions))
    unmatched = set(suggestions_by_block) - {b.id for b in parsed.blocks}
    if unmatched:
        logger.debug("engine.external_suggestion_unmatched", block_ids=sorted(unmatched))

    warnings: list[str] = []
    applied: list[AppliedTransformation] = []
    parts: list[str] = []

    for block in parsed.blocks:
        change = transform_block(
            block, patterns, suggestions_by_block.get(block.id), capabilities, enabled_types, config,
        )
        if change is not None:
            ok, reason = validate_transformation(block.content, change.transformed_content)
            if not ok:
                warnings.append(f"Skipped {change.type.value} for {block.id}: {reason}")
                change = None
        if change is None:
            parts.append(block.content)
            continue
        applied.append(change)
        parts.append(change.transformed_content)

    formatted = normalize_spacing(_join(parts))
    original_words = count_words(raw)
    formatted_words = count_words(formatted)

    transformed_ids = {t.block_id for t in applied}
    suggestions = [
        TransformationSuggestion(
            block_id=p.block_id, type=p.pattern_type.value, suggestion=p.suggestion, confidence=p.confidence,
        )
        for p in patterns
        if p.suggestion and p.block_id not in transformed_ids
    ]
    suggestions += [
        TransformationSuggestion(
            block_id=s.block_id, type="admonition",
            suggestion=f"Consider a {s.type.value} admonition ({s.reason})", confidence=s.confidence,
        )
        for s in hints
        if s.block_id not in transformed_ids
    ]

    if formatted_words < original_words * WORD_LOSS_WARNING_RATIO:
        warnings.append(f"Word count decreased significantly: {original_words} -> {formatted_words}")
    if parsed.truncated_at_eof:
        warnings.append("Input ends inside an unterminated code fence, directive, or math block")

    logger.info(
        "transform.done",
        blocks=len(parsed.blocks), applied=len(applied), suggestions=len(suggestions),
        original_words=original_words, formatted_words=formatted_words, warnings=len(warnings),
    )
    return TransformationResult(
        formatted_content=formatted,
        original_word_count=original_words,
        formatted_word_count=formatted_words,
        applied_transformations=applied,
        suggestions=suggestions,
        warnings=warnings,
    )


def transform_content_with_log(raw: str, config: TransformationConfig = None) -> tuple[TransformationResult, list[str]]:
    """transform_content plus a human-readable list of the steps taken."""
    config = config or TransformationConfig()
    log = [
        "Starting transformation...",
        f"Input word count: {count_words(raw)}",
        f"Selected features: {', '.join(config.selected_features) or 'none'}",
    ]
    result = transform_content(raw, config)
    log.append(f"Applied {len(result.applied_transformations)} transformations")
    log.extend(f"  - {t.type.value}: {t.description}" for t in result.applied_transformations)
    log.append(f"Output word count: {result.formatted_word_count}")
    if result.warnings:
        log.append(f"Warnings: {', '.join(result.warnings)}")
    return result, log


def quick_format_code_blocks(content: str) -> str:
    """Only add detected languages to untagged fenced code blocks; everything else is untouched."""
    parts = []
    for block in parse_content(content).blocks:
        text = block.content
        if block.type == BlockType.code and not block.metadata.language:
            guess = detect_language(fence_body(text))
            if guess.language and guess.confidence >= QUICK_FORMAT_MIN_CONFIDENCE:
                text = set_fence_language(text, guess.language) or text
        parts.append(text)
    return _join(parts)


def format_with_features(content: str, features: list[str]) -> TransformationResult:
    return transform_content(content, TransformationConfig(selected_features=features))
