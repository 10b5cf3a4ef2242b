"""Application configuration: settings schema and config.yaml loader"""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

from mystfmt.core.models import ExternalSuggestion, TransformationConfig


CONFIG_FILE = "config.yaml"
ENV_PREFIX  = "MYSTFMT_"


class Settings(BaseModel):
    app_name:             str = "mystfmt"
    features:             list[str] = Field(default_factory=lambda: ["admonitions", "code-block"],
                                            description="Feature ids to apply; comma-separated in env")
    admonition_threshold: float = Field(default=0.65, ge=0, le=1, description="Min confidence to wrap a paragraph")
    hint_threshold:       float = Field(default=0.4,  ge=0, le=1, description="Min confidence to report a hint")
    code_threshold:       float = Field(default=0.7,  ge=0, le=1, description="Min confidence to fence prose as code")
    max_suggestions:      int = Field(default=20, ge=0, description="Max rule-based admonitions per run")
    overlap_threshold:    float = Field(default=0.7,  ge=0, le=1, description="Word overlap that counts a sentence as kept")
    strict:               bool = Field(default=False, description="Fail when verification finds content loss")

    @field_validator("features", mode="before")
    @classmethod
    def _split_features(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [f.strip() for f in value.split(",") if f.strip()]
        return value

    def transformation_config(self, external: list[ExternalSuggestion] = None) -> TransformationConfig:
        return TransformationConfig(
            selected_features=list(self.features),
            admonition_confidence_threshold=self.admonition_threshold,
            admonition_hint_threshold=self.hint_threshold,
            code_confidence_threshold=self.code_threshold,
            max_suggestions=self.max_suggestions,
            external_suggestions=external or [],
        )


def _yaml_mapping(path: Path) -> dict[str, Any]:
    """Settings fields from a YAML file; an empty file yields no fields."""
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid {path.name}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid {path.name}: expected a mapping, got {type(data).__name__}")
    return data


def _env_fields(prefix: str = ENV_PREFIX) -> dict[str, str]:
    """Settings fields set (non-empty) as <prefix><FIELD> environment variables."""
    found = {}
    for name in Settings.model_fields:
        if value := os.environ.get(f"{prefix}{name.upper()}"):
            found[name] = value
    return found


def load_config(overrides: dict[str, Any] = None, path: str = CONFIG_FILE) -> Settings:
    """Layer config.yaml, MYSTFMT_<FIELD> env vars, and non-None CLI overrides; later layers win."""
    source = Path(path)
    data = _yaml_mapping(source) if source.exists() else {}
    data.update(_env_fields())
    data.update({k: v for k, v in (overrides or {}).items() if v is not None})
    return Settings(**data)
