"""Unit tests for core/pipeline.py"""

import pytest

from mystfmt.core import pipeline
from mystfmt.core.models import TransformationConfig, TransformationResult
from mystfmt.core.pipeline import (
    PreservationError,
    clean_and_reformat,
    format_content,
    format_content_strict,
    has_myst_formatting,
    smart_format,
)


WARNING_LINE = "Warning: never delete the root directory."
WRAPPED = ":::{warning}\n" + WARNING_LINE + "\n:::"


@pytest.fixture(name="warning_config")
def warning_config_fixture():
    return TransformationConfig(selected_features=["warning"])


@pytest.fixture(name="lossy_transform")
def lossy_transform_fixture(monkeypatch):
    """Replace the engine with one that drops everything."""
    def _transform(content, config=None):
        return TransformationResult(formatted_content="", original_word_count=0, formatted_word_count=0)
    monkeypatch.setattr(pipeline, "transform_content", _transform)


def test_format_content_verifies(sample_md, formatted_md, config):
    result = format_content(sample_md, config)
    assert result.formatted_content == formatted_md
    assert result.verification.is_preserved
    assert result.was_cleaned_first is False


def test_format_content_strict_passes(warning_config):
    assert format_content_strict(WARNING_LINE, warning_config).formatted_content == WRAPPED


def test_format_content_strict_raises(lossy_transform):
    with pytest.raises(PreservationError, match="Content preservation failed") as exc:
        format_content_strict("Some words that the broken engine will drop entirely.")
    assert isinstance(exc.value, ValueError)
    assert not exc.value.result.verification.is_preserved


def test_format_content_reports_loss_without_raising(lossy_transform):
    result = format_content("Some words that the broken engine will drop entirely.")
    assert not result.verification.is_preserved


@pytest.mark.parametrize("content, expected", [
    (":::{note}\nx\n:::", True),
    ("```{code-cell} python\nx\n```", True),
    ("(sec-intro)=\n# Intro", True),
    ("See {ref}`sec-intro` for details.", True),
    ("Plain *markdown* with `code`.", False),
    ("```python\nx = 1\n```", False),
])
def test_has_myst_formatting(content, expected):
    assert has_myst_formatting(content) is expected


def test_clean_and_reformat(warning_config):
    result = clean_and_reformat(":::{note}\n" + WARNING_LINE + "\n:::", warning_config)
    assert result.formatted_content == WRAPPED
    assert result.verification.is_preserved


def test_smart_format_cleans_myst(warning_config):
    result = smart_format(":::{note}\n" + WARNING_LINE + "\n:::", warning_config)
    assert result.was_cleaned_first is True
    assert result.formatted_content == WRAPPED


def test_smart_format_plain(warning_config):
    result = smart_format(WARNING_LINE, warning_config)
    assert result.was_cleaned_first is False
    assert result.formatted_content == WRAPPED
