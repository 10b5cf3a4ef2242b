"""Unit tests for config.py"""

import pytest

from mystfmt.config import Settings, load_config
from mystfmt.core.models import ExternalSuggestion


def test_load_config_defaults():
    """Settings defaults apply when no config.yaml, env var, or CLI override exists."""
    settings = load_config()
    assert settings.features == ["admonitions", "code-block"]
    assert settings.admonition_threshold == 0.65
    assert settings.strict is False


def test_load_config_env_features_comma_separated(monkeypatch):
    """MYSTFMT_FEATURES is split on commas and trimmed."""
    monkeypatch.setenv("MYSTFMT_FEATURES", "note, warning ,code-block")
    assert load_config().features == ["note", "warning", "code-block"]


def test_load_config_env_threshold_coerced(monkeypatch):
    monkeypatch.setenv("MYSTFMT_ADMONITION_THRESHOLD", "0.5")
    assert load_config().admonition_threshold == 0.5


def test_load_config_env_strict(monkeypatch):
    monkeypatch.setenv("MYSTFMT_STRICT", "true")
    assert load_config().strict is True


def test_load_config_yaml(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "config.yaml").write_text("features: [tip, danger]\ncode_threshold: 0.9\n")
    settings = load_config()
    assert settings.features == ["tip", "danger"]
    assert settings.code_threshold == 0.9


def test_load_config_env_overrides_config_yaml(tmp_path, monkeypatch):
    """MYSTFMT_MAX_SUGGESTIONS takes precedence over config.yaml."""
    monkeypatch.chdir(tmp_path)
    (tmp_path / "config.yaml").write_text("max_suggestions: 4\n")
    monkeypatch.setenv("MYSTFMT_MAX_SUGGESTIONS", "2")
    assert load_config().max_suggestions == 2


def test_load_config_cli_overrides_env(monkeypatch):
    """A non-None CLI override beats the env var; None overrides are ignored."""
    monkeypatch.setenv("MYSTFMT_FEATURES", "note")
    settings = load_config(overrides={"features": "warning", "admonition_threshold": None})
    assert settings.features == ["warning"]
    assert settings.admonition_threshold == 0.65


def test_load_config_invalid_yaml(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "config.yaml").write_text("key: [unclosed\n")
    with pytest.raises(ValueError, match="Invalid config.yaml"):
        load_config()


def test_load_config_non_mapping_yaml(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "config.yaml").write_text("- just\n- a list\n")
    with pytest.raises(ValueError, match="expected a mapping"):
        load_config()


def test_load_config_empty_yaml(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "config.yaml").write_text("")
    assert load_config().max_suggestions == 20


def test_load_config_explicit_path(tmp_path):
    path = tmp_path / "book.yaml"
    path.write_text("hint_threshold: 0.3\n")
    assert load_config(path=str(path)).hint_threshold == 0.3


def test_load_config_ignores_empty_env(monkeypatch):
    monkeypatch.setenv("MYSTFMT_STRICT", "")
    assert load_config().strict is False


def test_load_config_out_of_range(monkeypatch):
    """Validation errors surface as ValueError for the CLI to report."""
    monkeypatch.setenv("MYSTFMT_OVERLAP_THRESHOLD", "1.5")
    with pytest.raises(ValueError):
        load_config()


def test_transformation_config():
    settings = Settings(features=["note"], admonition_threshold=0.8, hint_threshold=0.3, max_suggestions=3)
    external = [ExternalSuggestion(paragraph_id="block-1", type="note")]
    config = settings.transformation_config(external=external)
    assert config.selected_features == ["note"]
    assert config.admonition_confidence_threshold == 0.8
    assert config.admonition_hint_threshold == 0.3
    assert config.code_confidence_threshold == 0.7
    assert config.max_suggestions == 3
    assert config.external_suggestions == external
