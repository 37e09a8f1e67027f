"""
Shared fixtures for the ClearSpend Assistant tests.

Test strategy:
1. Unit tests for each query component (pure functions, fixed "today")
2. Service tests over in-memory fakes for the store and embedder
3. HTTP tests through FastAPI's TestClient with the service overridden
"""

import pytest

from clearspend.audit import AuditLogger
from clearspend.config import AssistantSettings
from clearspend.orchestrator import QueryResolutionService
from clearspend.queries import SearchExecutor
from tests.fakes import (
    REFERENCE_NOW,
    TENANT,
    FailingRecordStore,
    InMemoryRecordStore,
    make_receipts,
)


@pytest.fixture
def settings():
    return AssistantSettings(
        semantic_search_enabled=False,
        semantic_timeout_seconds=0.2,
        search_page_limit=50,
        default_tenant_id=TENANT,
    )


@pytest.fixture
def semantic_settings():
    return AssistantSettings(
        semantic_search_enabled=True,
        semantic_timeout_seconds=0.2,
        default_tenant_id=TENANT,
    )


@pytest.fixture
def audit_logger():
    return AuditLogger(logger_name="clearspend.tests")


@pytest.fixture
def store():
    receipts, vendors = make_receipts()
    return InMemoryRecordStore(receipts, vendors)


@pytest.fixture
def empty_store():
    return InMemoryRecordStore()


@pytest.fixture
def failing_store():
    return FailingRecordStore()


@pytest.fixture
def make_service(settings, audit_logger):
    """Build a QueryResolutionService over a given store with a fixed clock."""

    def _make(record_store, embedder=None, similarity_index=None, service_settings=None):
        service_settings = service_settings or settings
        executor = SearchExecutor(
            record_store,
            embedder=embedder,
            similarity_index=similarity_index,
            settings=service_settings,
            audit_logger=audit_logger,
        )
        return QueryResolutionService(
            executor,
            settings=service_settings,
            audit_logger=audit_logger,
            clock=lambda: REFERENCE_NOW,
        )

    return _make
