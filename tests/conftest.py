"""Root test configuration: isolate tests from MYSTFMT_* variables and CLI logging setup"""

import os

import pytest
import structlog


ENV_PREFIX = "MYSTFMT_"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Drop inherited MYSTFMT_* env vars so every test starts from Settings defaults."""
    for name in list(os.environ):
        if name.startswith(ENV_PREFIX):
            monkeypatch.delenv(name)


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo structlog.configure calls made by the CLI callback."""
    yield
    structlog.reset_defaults()
