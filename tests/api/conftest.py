"""API test fixtures - full application with a mocked appointment service."""

from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from core.services.appointment_service import AppointmentService
from main import create_app


@pytest.fixture
def appointment_service():
    return Mock(spec=AppointmentService)


@pytest.fixture
def app(auth_service, appointment_service, tokens):
    return create_app(auth_service, appointment_service, tokens)


@pytest.fixture
def client(app):
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


@pytest.fixture
def auth_headers(registered_user):
    """Bearer header for the registered test user."""
    _, pair = registered_user
    return {"Authorization": f"Bearer {pair.access_token}"}
