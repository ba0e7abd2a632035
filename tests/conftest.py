"""Shared fixtures for the planner tests."""
import pytest
from werkzeug.security import generate_password_hash

from auth_server.gate import AuthGate
from planner_server.storage import MemoryStorage
from planner_server.store import PlannerStore

AUTHORIZED_EMAIL = "teacher@example.org"
PASSWORD = "correct horse battery staple"
TEST_SECRET = "test-secret-for-sign-in-links-0123456789"


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def store(storage: MemoryStorage) -> PlannerStore:
    planner = PlannerStore(storage)
    planner.hydrate()
    return planner


@pytest.fixture
def sent_links() -> list[tuple[str, str]]:
    """Collects (email, link) pairs instead of delivering them."""
    return []


@pytest.fixture
def gate(storage: MemoryStorage, sent_links: list[tuple[str, str]]) -> AuthGate:
    return AuthGate(
        storage,
        authorized_email=AUTHORIZED_EMAIL,
        password_hash=generate_password_hash(PASSWORD),
        secret=TEST_SECRET,
        continue_url="http://testserver/auth/complete",
        send_link=lambda email, link: sent_links.append((email, link)),
    )
