# tests/conftest.py

"""
Pytest Fixtures - Shared test configurations and data for the scoring engine

SEED DATA ID REFERENCE:
- Schema 1 "Food Safety Checklist": sections 1 (Storage), 2 (Hygiene), 3 (Pest Control)
- Audit 5:  in progress, sections 1-3 (Scenario C)
- Audit 7:  in progress, Scenario B (section 1 = 8/10, section 2 = 4/10)
"""

from typing import List

import pytest
from fastapi.testclient import TestClient

from audit_engine.config import Settings
from audit_engine.core import dependencies
from audit_engine.main import app
from audit_engine.models.audit import ItemResponse
from audit_engine.services.audit_lifecycle_service import AuditLifecycleController
from audit_engine.services.exclusion_service import ExclusionLedger
from audit_engine.services.threshold_service import ThresholdResolver
from tests.fakes import (
    FakeAuditRepository,
    FakeExclusionRepository,
    FakeResponseRepository,
    FakeSectionScoreRepository,
    FakeThresholdRepository,
    InMemoryDatabase,
)

SECTION_NAMES = {1: "Storage", 2: "Hygiene", 3: "Pest Control"}


def make_responses(audit_id: int, section_id: int, choices: List[str], coefficient: int = 2) -> List[ItemResponse]:
    """One ItemResponse per choice, all in the same section."""
    return [
        ItemResponse(
            audit_id=audit_id,
            section_id=section_id,
            section_number=section_id,
            section_name=SECTION_NAMES.get(section_id, f"Section {section_id}"),
            item_id=section_id * 100 + i,
            reference_value=f"{section_id}.{i + 1}",
            coefficient=coefficient,
            selected_choice=choice,
        )
        for i, choice in enumerate(choices)
    ]


# =============================================================================
# SETTINGS
# =============================================================================

@pytest.fixture
def test_settings():
    """Settings independent of any local .env file."""
    return Settings(_env_file=None)


# =============================================================================
# IN-MEMORY STORE
# =============================================================================

@pytest.fixture
def db():
    database = InMemoryDatabase()
    database.add_schema(1, "Food Safety Checklist", [(sid, sid, name) for sid, name in SECTION_NAMES.items()])
    return database


@pytest.fixture
def scenario_c_audit(db):
    """Audit 5 with three scored sections and no exclusions."""
    responses = (
        make_responses(5, 1, ["Yes", "Yes", "No"])
        + make_responses(5, 2, ["Yes", "Partially"])
        + make_responses(5, 3, ["No", "Yes", "NA"])
    )
    return db.add_audit(5, responses)


@pytest.fixture
def scenario_b_audit(db):
    """Audit 7: section 1 earns 8/10, section 2 earns 4/10."""
    responses = (
        make_responses(7, 1, ["Yes", "Yes", "Yes", "Yes", "No"])
        + make_responses(7, 2, ["Yes", "Yes", "No", "No", "No"])
    )
    return db.add_audit(7, responses)


# =============================================================================
# REPOSITORY / SERVICE FIXTURES
# =============================================================================

@pytest.fixture
def audit_repo(db):
    return FakeAuditRepository(db)


@pytest.fixture
def response_repo(db):
    return FakeResponseRepository(db)


@pytest.fixture
def section_score_repo(db):
    return FakeSectionScoreRepository(db)


@pytest.fixture
def exclusion_repo(db):
    return FakeExclusionRepository(db)


@pytest.fixture
def threshold_repo(db):
    return FakeThresholdRepository(db)


@pytest.fixture
def threshold_resolver(threshold_repo, test_settings):
    return ThresholdResolver(threshold_repo, cache=None, settings=test_settings)


@pytest.fixture
def ledger(audit_repo, response_repo, section_score_repo, exclusion_repo, threshold_resolver, test_settings):
    return ExclusionLedger(
        audit_repo,
        response_repo,
        section_score_repo,
        exclusion_repo,
        threshold_resolver,
        settings=test_settings,
    )


@pytest.fixture
def controller(audit_repo, response_repo, section_score_repo, threshold_resolver):
    return AuditLifecycleController(audit_repo, response_repo, section_score_repo, threshold_resolver)


# =============================================================================
# FASTAPI TEST CLIENT FIXTURE
# =============================================================================

@pytest.fixture
def client(audit_repo, response_repo, section_score_repo, exclusion_repo, threshold_repo):
    """TestClient whose repositories are backed by the in-memory store."""
    app.dependency_overrides[dependencies.get_audit_repository] = lambda: audit_repo
    app.dependency_overrides[dependencies.get_response_repository] = lambda: response_repo
    app.dependency_overrides[dependencies.get_section_score_repository] = lambda: section_score_repo
    app.dependency_overrides[dependencies.get_exclusion_repository] = lambda: exclusion_repo
    app.dependency_overrides[dependencies.get_threshold_repository] = lambda: threshold_repo
    app.dependency_overrides[dependencies.get_redis_cache] = lambda: None

    yield TestClient(app)

    app.dependency_overrides.clear()
