from __future__ import annotations

import pytest
from pydantic import ValidationError

from bizdoc.config import Settings


def test_defaults(monkeypatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    settings = Settings(_env_file=None)

    assert settings.openai_api_key is None
    assert settings.refine_by_default is False
    config = settings.analysis_config()
    assert config.pass_char_budget == 80_000
    assert config.evidence_char_budget == 12_000


def test_budgets_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("CHUNK_CHAR_BUDGET", "5000")
    monkeypatch.setenv("MAX_CHUNKS", "3")

    config = Settings(_env_file=None).analysis_config()

    assert config.pass_char_budget == 5000
    assert config.max_chunks == 3


def test_budget_floor_enforced(monkeypatch) -> None:
    monkeypatch.setenv("CHUNK_CHAR_BUDGET", "10")
    with pytest.raises(ValidationError):
        Settings(_env_file=None)
