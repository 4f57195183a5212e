from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from bizdoc.api.routes.analysis import get_engine
from bizdoc.domain.rules import AnalysisConfig
from bizdoc.main import app
from bizdoc.services.analyzer import DocumentAnalyzer
from bizdoc.services.engine import AnalysisEngine
from bizdoc.services.refine import IdentityRefiner

SCENARIO_TEXT = (
    "Revenue grew 15% to AED 2,500,000 with a 20% margin. "
    "Client: Acme Corp. Payment overdue."
)


@pytest.fixture
def config() -> AnalysisConfig:
    return AnalysisConfig()


@pytest.fixture
def analyzer(config: AnalysisConfig) -> DocumentAnalyzer:
    return DocumentAnalyzer(config)


@pytest.fixture
def scenario_text() -> str:
    return SCENARIO_TEXT


@pytest.fixture
def client() -> TestClient:
    """API client with a deterministic engine (identity refiner, default budgets)."""
    engine = AnalysisEngine(AnalysisConfig(), refiner=IdentityRefiner(), refine_timeout=5.0)
    app.dependency_overrides[get_engine] = lambda: engine
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
