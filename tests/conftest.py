"""Shared test fixtures for the scheduler test suite."""

from pathlib import Path
from unittest.mock import Mock

import pytest
from dotenv import load_dotenv

# Load .env file BEFORE any other imports that might use env vars
load_dotenv(Path(__file__).parent.parent / ".env")

# Reset vault client singleton so no test sees secrets cached by another
import clients.vault_client as vault_module
vault_module._vault_client_instance = None
vault_module._secret_cache.clear()

from auth.config import AuthConfig
from auth.security_logger import SecurityLogger
from auth.service import AuthService
from auth.session import SessionManager
from auth.tokens import TokenService
from core.models import Appointment, CandidateAppointment
from fakes import FakeAppointmentDatabase, FakeAuthDatabase


# =============================================================================
# TEST CONSTANTS
# =============================================================================

TEST_SIGNING_KEY = "test-signing-key-0123456789abcdef0123456789abcdef"
TEST_EMAIL = "testuser@example.com"
TEST_PASSWORD = "correct horse battery staple"


# =============================================================================
# AUTH FIXTURES
# =============================================================================


@pytest.fixture
def auth_config() -> AuthConfig:
    return AuthConfig()


@pytest.fixture
def signing_key() -> str:
    return TEST_SIGNING_KEY


@pytest.fixture
def tokens(signing_key, auth_config) -> TokenService:
    return TokenService(signing_key, auth_config)


@pytest.fixture
def auth_db() -> FakeAuthDatabase:
    return FakeAuthDatabase()


@pytest.fixture
def security_logger():
    """Mock security logger - events are asserted, not stored."""
    return Mock(spec=SecurityLogger)


@pytest.fixture
def session_manager(auth_db, tokens, auth_config) -> SessionManager:
    return SessionManager(auth_db, tokens, auth_config)


@pytest.fixture
def auth_service(auth_config, auth_db, session_manager, tokens, security_logger) -> AuthService:
    return AuthService(
        config=auth_config,
        auth_db=auth_db,
        session_manager=session_manager,
        tokens=tokens,
        security_logger=security_logger,
    )


@pytest.fixture
def registered_user(auth_service, auth_db):
    """A registered user and the token pair returned by registration."""
    pair = auth_service.register(TEST_EMAIL, TEST_PASSWORD, "Test", "User")
    return auth_db.get_user_by_id(pair.user_id), pair


# =============================================================================
# APPOINTMENT FIXTURES
# =============================================================================


@pytest.fixture
def appointment_db() -> FakeAppointmentDatabase:
    return FakeAppointmentDatabase()


@pytest.fixture
def make_appointment():
    """Build a stored appointment with sensible defaults."""

    def _make(appointment_id=1, user_id=1, name="Existing", start=None, duration=60, notes=""):
        return Appointment(
            id=appointment_id,
            user_id=user_id,
            name=name,
            appointment_date=start,
            duration_minutes=duration,
            notes=notes,
        )

    return _make


@pytest.fixture
def make_candidate():
    """Build a candidate appointment with sensible defaults."""

    def _make(start=None, duration=30, name="Jane Doe", phone="5551234567", notes=""):
        return CandidateAppointment(
            name=name,
            phone=phone,
            appointment_date=start,
            duration_minutes=duration,
            notes=notes,
        )

    return _make
