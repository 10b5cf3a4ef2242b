"""Unit tests for core/patterns.py"""

from mystfmt.core.models import ListType, PatternType
from mystfmt.core.parse import parse_content
from mystfmt.core.patterns import (
    code_indicator_count,
    detect_all_patterns,
    detect_code_blocks,
    detect_language,
    detect_links_and_images,
    detect_lists,
    detect_math,
    detect_quotes,
    detect_unformatted_code,
    fence_body,
)


PY_SNIPPET = "def check(x):\n    if x is None:\n        return False\n    return True"


def _blocks(raw: str):
    return parse_content(raw).blocks


# --- language detection ---

def test_detect_language_python():
    guess = detect_language("def f(x):\n    return x")
    assert guess.language == "python"
    assert guess.confidence == 0.6


def test_detect_language_sql():
    assert detect_language("SELECT name FROM users WHERE id = 1").language == "sql"


def test_detect_language_rejects_prose():
    assert detect_language("hello world") == ("", 0.0)


# --- unformatted code ---

def test_code_indicator_count_python():
    assert code_indicator_count(PY_SNIPPET) >= 2


def test_detect_unformatted_code_python():
    guess = detect_unformatted_code(PY_SNIPPET)
    assert guess.is_code
    assert guess.language == "python"
    assert guess.confidence == 1.0


def test_detect_unformatted_code_plain_prose():
    assert not detect_unformatted_code("This is just a sentence about cooking dinner.").is_code


def test_fence_body():
    assert fence_body("```\ndef f(x):\n    return x\n```\n") == "def f(x):\n    return x"
    assert fence_body("no fence here") == "no fence here"


def test_detect_code_blocks_untagged_fence():
    patterns = detect_code_blocks(_blocks("```\ndef f(x):\n    return x\n```"))
    assert len(patterns) == 1
    assert patterns[0].metadata["language"] == "python"
    assert patterns[0].suggestion == "Add language: python"


def test_detect_code_blocks_skips_tagged_fence():
    assert detect_code_blocks(_blocks("```python\nx = 1\n```")) == []


def test_detect_code_blocks_ignores_directives():
    """Directive regions are never scanned as prose code."""
    assert detect_code_blocks(_blocks(":::{note}\n" + PY_SNIPPET + "\n:::")) == []


def test_detect_code_blocks_prose_paragraph():
    patterns = detect_code_blocks(_blocks(PY_SNIPPET))
    assert [p.pattern_type for p in patterns] == [PatternType.code]
    assert patterns[0].metadata["needs_formatting"] is True


# --- lists, quotes, math ---

def test_detect_lists_markdown_list():
    patterns = detect_lists(_blocks("- a\n- b"))
    assert patterns[0].confidence == 1.0
    assert patterns[0].metadata["list_type"] == ListType.bullet


def test_detect_lists_unformatted_bullets():
    patterns = detect_lists(_blocks("• one\n• two\n• three"))
    assert len(patterns) == 1
    assert patterns[0].metadata["needs_formatting"] is True
    assert patterns[0].suggestion == "Convert to bullet list"


def test_detect_quotes_quoted_paragraph():
    patterns = detect_quotes(_blocks('"To be or not to be."'))
    assert [p.confidence for p in patterns] == [0.7]


def test_detect_quotes_blockquote():
    patterns = detect_quotes(_blocks("> quoted"))
    assert patterns[0].metadata["quote_depth"] == 1


def test_detect_math_inline():
    patterns = detect_math(_blocks("The area is $\\pi r^2$ here."))
    assert patterns[0].metadata["is_inline"] is True


def test_detect_math_block():
    patterns = detect_math(_blocks("$$\nx^2\n$$"))
    assert patterns[0].confidence == 1.0
    assert patterns[0].metadata["is_inline"] is False


# --- links, images, emphasis ---

def test_detect_links_and_images():
    patterns = detect_links_and_images(_blocks("See ![diagram](img.png) and https://example.com for details."))
    assert {p.pattern_type for p in patterns} == {PatternType.image, PatternType.link}


def test_linked_url_is_not_raw():
    patterns = detect_links_and_images(_blocks("Visit [https://example.com](https://example.com) today."))
    assert all(p.pattern_type != PatternType.link for p in patterns)


def test_detect_emphasis():
    patterns = detect_links_and_images(_blocks("This is **bold** text here."))
    assert [p.pattern_type for p in patterns] == [PatternType.emphasis]


def test_detect_all_patterns_is_deterministic(sample_blocks):
    first = [p.model_dump() for p in detect_all_patterns(sample_blocks)]
    second = [p.model_dump() for p in detect_all_patterns(sample_blocks)]
    assert first == second
