"""Shared fixtures for CaseDesk trash tests."""

from datetime import datetime, timedelta, timezone

import pytest

from casedesk.access_control import Actor
from casedesk.config import CaseDeskConfig
from casedesk.trash import AggregateCounter, TrashAPI, TrashService, create_store
from casedesk.trash.entities import (
    Case,
    CaseAction,
    CaseDocument,
    Invoice,
    OurCompany,
    Partner,
    User,
)


class FrozenClock:
    """Controllable clock handed to the trash service."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, days: int = 0, hours: int = 0) -> None:
        self.now = self.now + timedelta(days=days, hours=hours)


@pytest.fixture
def config():
    """Test configuration with default role policy."""
    return CaseDeskConfig(environment="test", purge_batch_size=2)


@pytest.fixture
def clock():
    return FrozenClock(datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def store():
    """In-memory SQLite store with foreign keys enforced."""
    entity_store = create_store("sqlite://")
    entity_store.init_schema()
    yield entity_store
    entity_store.engine.dispose()


@pytest.fixture
def service(store, config, clock):
    return TrashService(store, config=config, clock=clock)


@pytest.fixture
def counter(store, config):
    return AggregateCounter(store, config=config)


@pytest.fixture
def api(service, counter):
    return TrashAPI(service, counter)


@pytest.fixture
def admin():
    return Actor(id="user-admin", role="super_admin")


@pytest.fixture
def manager():
    return Actor(id="user-manager", role="manager")


@pytest.fixture
def assistant():
    return Actor(id="user-assistant", role="assistant")


@pytest.fixture
def add(store):
    """Insert ORM objects and return them (ids populated)."""

    def _add(*objects):
        with store.transaction("seed") as tx:
            tx.add_all(objects)
        return objects[0] if len(objects) == 1 else objects

    return _add


@pytest.fixture
def case_with_children(add):
    """A case with three actions and two documents."""
    case = add(Case(case_number="2026-001", patient_name="Jane Roe"))
    add(
        *[
            CaseAction(case_id=case.id, service_name=f"Service {i}", sort_order=i)
            for i in range(3)
        ]
    )
    add(
        CaseDocument(case_id=case.id, file_name="passport.pdf"),
        CaseDocument(case_id=case.id, file_name="report.pdf", document_type="medical"),
    )
    return case


@pytest.fixture
def seeded(add):
    """One row of every top-level kind plus a user per role."""
    add(
        User(id="user-admin", email="admin@example.com", role="super_admin"),
        User(id="user-assistant", email="assistant@example.com", role="assistant"),
    )
    return {
        "case": add(Case(case_number="2026-100", patient_name="John Doe")),
        "invoice": add(
            Invoice(invoice_number="INV-100", status="unpaid", total=125.5)
        ),
        "partner": add(Partner(name="Allianz Care")),
        "our_company": add(OurCompany(name="CaseDesk GmbH", legal_name="CD GmbH")),
    }
