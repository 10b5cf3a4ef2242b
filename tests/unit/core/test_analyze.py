"""Unit tests for core/analyze.py"""

import pytest

from mystfmt.core.analyze import _complexity, analyze_chapter, create_chapter_summary, get_block_context
from mystfmt.core.models import ChapterPatternType, Complexity
from mystfmt.core.parse import parse_content


CHAPTER_MD = """\
Intro text before any heading.

# Chapter One

Let's look at the following example.

```python
print('hi')
```

This prints the output shown here.

## Details

Avoid editing generated files by hand.

- a
- b
"""


@pytest.fixture(name="structure")
def structure_fixture():
    return analyze_chapter(CHAPTER_MD)


def test_sections(structure):
    assert [(s.id, s.title, s.level) for s in structure.sections] == [
        ("section-1", "Introduction", 0),
        ("section-2", "Chapter One", 1),
        ("section-3", "Details", 2),
    ]
    assert structure.sections[0].word_count == 5
    assert structure.sections[1].has_code
    assert structure.sections[2].has_list
    assert structure.sections[2].end_block_index == structure.total_blocks - 1


def test_patterns_skip_blank_neighbours(structure):
    assert [p.type for p in structure.patterns] == [
        ChapterPatternType.concept_example,
        ChapterPatternType.code_explanation,
        ChapterPatternType.warning_context,
    ]
    assert structure.patterns[0].block_ids == ["block-5", "block-7"]


def test_counts(structure):
    assert structure.title == "Chapter One"
    assert structure.code_block_count == 1
    assert structure.list_count == 1
    assert structure.paragraph_count == 4
    assert structure.heading_count == 2
    assert structure.complexity == Complexity.simple
    assert structure.estimated_reading_time == 1


def test_feature_distribution(structure):
    dist = structure.suggested_feature_count
    assert (dist.notes, dist.tips, dist.warnings, dist.cautions, dist.dropdowns) == (1, 0, 1, 0, 0)


def test_explicit_title():
    assert analyze_chapter(CHAPTER_MD, "Custom").title == "Custom"
    assert analyze_chapter("just text").title == "Untitled Chapter"


@pytest.mark.parametrize("words, code, sections, expected", [
    (100, 0, 1, Complexity.simple),
    (1500, 3, 1, Complexity.moderate),
    (3500, 6, 6, Complexity.complex),
])
def test_complexity(words, code, sections, expected):
    assert _complexity(words, code, sections) == expected


def test_create_chapter_summary(structure):
    summary = create_chapter_summary(structure)
    assert summary.startswith("# Chapter Analysis: Chapter One")
    assert "- Introduction (5 words)" in summary
    assert "  - Details (" in summary
    assert "has: list" in summary
    assert "- warning-context: 1 occurrences" in summary
    assert "- Warnings: 1" in summary


def test_get_block_context():
    blocks = parse_content(CHAPTER_MD).blocks
    before, current, after = get_block_context(blocks, "block-5")
    assert [b.id for b in before] == ["block-4"]
    assert current.id == "block-5"
    assert [b.id for b in after] == ["block-6"]

    before, current, after = get_block_context(blocks, "block-1", context_size=2)
    assert before == []
    assert len(after) == 2


def test_get_block_context_unknown_id():
    assert get_block_context(parse_content(CHAPTER_MD).blocks, "nope") == ([], None, [])
