"""End-to-end formatting of a realistic chapter: parse -> detect -> transform -> verify"""

import pytest

from mystfmt.core.models import TransformationConfig
from mystfmt.core.parse import parse_content, reconstruct_content
from mystfmt.core.pipeline import format_content, smart_format


CHAPTER = """\
# Working with Files

Reading a file is the first thing most scripts do. The standard library covers
the common cases well.

Important: always close the file handle, or use a context manager instead.

```
with open(path) as f:
    for line in f:
        print(line)
```

Pro tip: iterate over the file object directly instead of calling readlines.

Danger: opening a file in write mode permanently deletes all of its contents.

def is_empty(path):
    if path is None:
        return True
    with open(path) as f:
        return f.read() == ""

## Summary

- Use context managers
- Stream large files

See also the chapter on paths for further reading.
"""


@pytest.fixture(name="config")
def config_fixture():
    return TransformationConfig(selected_features=["admonitions", "code-block"])


@pytest.fixture(name="result")
def result_fixture(config):
    return format_content(CHAPTER, config)


def test_chapter_is_preserved(result):
    verification = result.verification
    assert verification.is_preserved, verification.issues
    assert verification.sentence_preservation_rate == 100.0
    assert verification.word_count_difference == 0


def test_chapter_admonitions(result):
    text = result.formatted_content
    assert ":::{important}\nImportant: always close" in text
    assert ":::{tip} Pro Tip\nPro tip: iterate" in text
    assert ":::{danger}\nDanger: opening a file" in text
    assert ":::{seealso} See Also\nSee also the chapter" in text


def test_chapter_code(result):
    text = result.formatted_content
    assert "```python\nwith open(path) as f:" in text
    assert "```python\ndef is_empty(path):" in text


def test_chapter_structure_kept(result):
    """Headings and lists pass through untouched."""
    text = result.formatted_content
    assert "# Working with Files\n\n" in text
    assert "## Summary\n\n- Use context managers\n- Stream large files\n" in text


def test_formatting_twice_is_stable(result, config):
    """Wrapped blocks are directives on the second pass and are left alone."""
    again = format_content(result.formatted_content, config)
    assert again.formatted_content == result.formatted_content
    assert again.applied_transformations == []


def test_formatted_output_reconstructs(result):
    formatted = result.formatted_content
    assert reconstruct_content(parse_content(formatted).blocks) == formatted


def test_smart_format_plain_chapter(config):
    assert smart_format(CHAPTER, config).was_cleaned_first is False
