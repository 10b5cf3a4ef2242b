"""Whole-chapter analysis: sections, cross-block patterns, complexity, feature budget"""

import math
import re
from typing import Optional

from mystfmt.core.models import (
    BlockType,
    ChapterPatternType,
    ChapterSection,
    ChapterStructure,
    Complexity,
    ContentBlock,
    ContentPattern,
    FeatureDistribution,
)
from mystfmt.core.parse import parse_content
from mystfmt.core.utils.words import count_words


HEADING_MARK_RE = re.compile(r'^#+\s*')

PROSE_WPM = 200
CODE_WPM  = 50
WORDS_PER_FEATURE = 500

# Lower-cased substrings that mark a block as part of a chapter-level pattern.
EXPLANATION_CUES = ('this', 'the above', 'here', 'output', 'result')
WARNING_CUES     = ('warning', 'caution', 'danger', 'avoid', 'never', 'do not', "don't")
TIP_CUES         = ('tip', 'trick', 'shortcut', 'best practice', 'pro tip', 'recommend')
REFERENCE_CUES   = ('see also', 'learn more', 'further reading', 'for more information', 'reference')
EXAMPLE_CUES     = ('example', 'for instance', 'consider', "let's", 'following')


def _heading_title(block: ContentBlock) -> str:
    return HEADING_MARK_RE.sub('', block.content)


def _mentions(text: str, cues: tuple[str, ...]) -> bool:
    lowered = text.lower()
    return any(cue in lowered for cue in cues)


def _round(value: float) -> int:
    """Round half up."""
    return math.floor(value + 0.5)


def _extract_sections(blocks: list[ContentBlock]) -> list[ChapterSection]:
    """Split blocks at headings; content ahead of the first heading becomes 'Introduction'."""
    sections: list[ChapterSection] = []
    current: Optional[ChapterSection] = None

    def _close(section: ChapterSection, end: int) -> None:
        section.end_block_index = end
        section.word_count = sum(count_words(b.content) for b in section.blocks)
        sections.append(section)

    for i, block in enumerate(blocks):
        if block.type == BlockType.heading:
            if current is not None:
                _close(current, i - 1)
            current = ChapterSection(
                id=f"section-{len(sections) + 1}",
                title=_heading_title(block),
                level=block.metadata.heading_level or 1,
                start_block_index=i,
                end_block_index=i,
                blocks=[block],
            )
            continue

        if current is None:
            current = ChapterSection(
                id="section-1", title="Introduction", level=0,
                start_block_index=i, end_block_index=i,
            )
        current.blocks.append(block)
        current.has_code  = current.has_code or block.type == BlockType.code
        current.has_list  = current.has_list or block.type == BlockType.list
        current.has_quote = current.has_quote or block.type == BlockType.quote

    if current is not None:
        _close(current, len(blocks) - 1)
    return sections


def _detect_content_patterns(blocks: list[ContentBlock]) -> list[ContentPattern]:
    """Scan neighbouring blocks for cross-block patterns; blank lines are not neighbours."""
    blocks = [b for b in blocks if b.type != BlockType.empty]
    patterns: list[ContentPattern] = []

    for i, block in enumerate(blocks):
        following = blocks[i + 1] if i + 1 < len(blocks) else None

        if (block.type == BlockType.code and following is not None
                and following.type == BlockType.paragraph and _mentions(following.content, EXPLANATION_CUES)):
            patterns.append(ContentPattern(
                type=ChapterPatternType.code_explanation, block_ids=[block.id, following.id],
                confidence=0.7, description="Code block followed by explanation paragraph",
            ))

        if block.type != BlockType.paragraph:
            continue

        if _mentions(block.content, WARNING_CUES):
            patterns.append(ContentPattern(
                type=ChapterPatternType.warning_context, block_ids=[block.id],
                confidence=0.8, description="Paragraph contains warning-related keywords",
            ))
        if _mentions(block.content, TIP_CUES):
            patterns.append(ContentPattern(
                type=ChapterPatternType.tip_context, block_ids=[block.id],
                confidence=0.8, description="Paragraph contains tip-related keywords",
            ))
        if _mentions(block.content, REFERENCE_CUES):
            patterns.append(ContentPattern(
                type=ChapterPatternType.reference_section, block_ids=[block.id],
                confidence=0.75, description="Paragraph contains reference/see-also keywords",
            ))
        if (following is not None and following.type == BlockType.code
                and _mentions(block.content, EXAMPLE_CUES)):
            patterns.append(ContentPattern(
                type=ChapterPatternType.concept_example, block_ids=[block.id, following.id],
                confidence=0.7, description="Concept explanation followed by code example",
            ))

    return patterns


def _complexity(word_count: int, code_blocks: int, sections: int) -> Complexity:
    score = (
        (2 if word_count > 3000 else 1 if word_count > 1000 else 0)
        + (2 if code_blocks > 5 else 1 if code_blocks > 2 else 0)
        + (2 if sections > 5 else 1 if sections > 2 else 0)
    )
    if score >= 4:
        return Complexity.complex
    if score >= 2:
        return Complexity.moderate
    return Complexity.simple


def _feature_distribution(
    word_count: int,
    patterns: list[ContentPattern],
    complexity: Complexity,
    ) -> FeatureDistribution:
    """Suggested per-feature counts: roughly one feature per 500 words, boosted by patterns."""
    base = max(1, word_count // WORDS_PER_FEATURE)
    counts = {t: sum(1 for p in patterns if p.type == t) for t in ChapterPatternType}
    multiplier = {Complexity.complex: 1.5, Complexity.moderate: 1.2}.get(complexity, 1.0)

    warnings = counts[ChapterPatternType.warning_context]
    explanations = counts[ChapterPatternType.code_explanation]
    return FeatureDistribution(
        notes=max(1, _round(base * multiplier * 0.3) + explanations // 2),
        tips=_round(base * 0.2) + counts[ChapterPatternType.tip_context],
        warnings=warnings,
        important=_round(base * 0.1),
        cautions=warnings // 2,
        see_also=counts[ChapterPatternType.reference_section],
        cards=_round(base * 0.1),
        dropdowns=_round(explanations * 0.3),
    )


def analyze_chapter(content: str, chapter_title: str = None) -> ChapterStructure:
    """Summarize a chapter's structure and how many MyST features it can carry."""
    parsed = parse_content(content)
    blocks = parsed.blocks
    sections = _extract_sections(blocks)
    patterns = _detect_content_patterns(blocks)

    def _count(block_type: BlockType) -> int:
        return sum(1 for b in blocks if b.type == block_type)

    code_blocks = _count(BlockType.code)
    complexity = _complexity(parsed.word_count, code_blocks, len(sections))
    code_words = sum(count_words(b.content) for b in blocks if b.type == BlockType.code)
    reading_time = math.ceil((parsed.word_count - code_words) / PROSE_WPM + code_words / CODE_WPM)

    first_heading = next((b for b in blocks if b.type == BlockType.heading), None)
    title = chapter_title or (first_heading and _heading_title(first_heading)) or "Untitled Chapter"

    return ChapterStructure(
        title=title,
        total_word_count=parsed.word_count,
        total_blocks=len(blocks),
        sections=sections,
        patterns=patterns,
        code_block_count=code_blocks,
        list_count=_count(BlockType.list),
        paragraph_count=_count(BlockType.paragraph),
        heading_count=_count(BlockType.heading),
        estimated_reading_time=reading_time,
        complexity=complexity,
        suggested_feature_count=_feature_distribution(parsed.word_count, patterns, complexity),
    )


def create_chapter_summary(structure: ChapterStructure) -> str:
    """Render a ChapterStructure as a markdown outline."""
    lines = [
        f"# Chapter Analysis: {structure.title}",
        '',
        '**Overview:**',
        f"- Word count: {structure.total_word_count}",
        f"- Sections: {len(structure.sections)}",
        f"- Code blocks: {structure.code_block_count}",
        f"- Complexity: {structure.complexity.value}",
        f"- Est. reading time: {structure.estimated_reading_time} min",
        '',
        '**Section Outline:**',
    ]
    for section in structure.sections:
        indent = '  ' * max(0, section.level - 1)
        has = [name for name, flag in (('code', section.has_code), ('list', section.has_list),
                                       ('quote', section.has_quote)) if flag]
        extra = f", has: {', '.join(has)}" if has else ''
        lines.append(f"{indent}- {section.title} ({section.word_count} words{extra})")
    lines.append('')

    lines.append('**Detected Patterns:**')
    pattern_counts: dict[str, int] = {}
    for pattern in structure.patterns:
        pattern_counts[pattern.type.value] = pattern_counts.get(pattern.type.value, 0) + 1
    lines.extend(f"- {name}: {count} occurrences" for name, count in pattern_counts.items())
    lines.append('')

    dist = structure.suggested_feature_count
    lines += [
        '**Suggested Feature Distribution:**',
        f"- Notes: {dist.notes}",
        f"- Tips: {dist.tips}",
        f"- Warnings: {dist.warnings}",
        f"- Important: {dist.important}",
        f"- See Also: {dist.see_also}",
        f"- Cards: {dist.cards}",
        f"- Dropdowns: {dist.dropdowns}",
    ]
    return '\n'.join(lines)


def get_block_context(
    blocks: list[ContentBlock],
    block_id: str,
    context_size: int = 1,
    ) -> tuple[list[ContentBlock], Optional[ContentBlock], list[ContentBlock]]:
    """Return (before, current, after) around block_id; ([], None, []) when it is unknown."""
    index = next((i for i, b in enumerate(blocks) if b.id == block_id), None)
    if index is None:
        return [], None, []
    return blocks[max(0, index - context_size):index], blocks[index], blocks[index + 1:index + 1 + context_size]
