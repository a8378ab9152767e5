"""
Tests for Connector Factory and Base Connector
"""
import pytest
from datetime import datetime, timedelta, timezone

from dialdesk.infrastructure.connectors.base import (
    BaseConnector,
    ConnectorCapability,
    ConnectorFactory,
)
from dialdesk.infrastructure.connectors.calendar import GoogleCalendarConnector


class MockConnector(BaseConnector):
    @property
    def provider_name(self) -> str:
        return "mock_provider"

    @property
    def connector_type(self) -> str:
        return "mock"

    @property
    def capabilities(self):
        return [ConnectorCapability.LIST_EVENTS]


class TestConnectorFactory:
    """Tests for connector factory pattern"""

    def test_register_and_create(self):
        """Registered connectors can be created"""
        ConnectorFactory.register("mock_test", MockConnector)

        connector = ConnectorFactory.create("mock_test", owner="owner@example.com", timeout=5.0)

        assert isinstance(connector, MockConnector)
        assert connector.owner == "owner@example.com"
        assert connector.timeout == 5.0
        assert ConnectorFactory.is_registered("mock_test")

    def test_unknown_provider_raises(self):
        """Unknown provider raises ValueError"""
        with pytest.raises(ValueError) as exc_info:
            ConnectorFactory.create("totally_unknown_provider", owner="owner@example.com")

        assert "Unknown connector provider" in str(exc_info.value)

    def test_google_registered_on_import(self):
        """Importing the calendar package registers Google"""
        assert "google" in ConnectorFactory.list_providers()
        connector = ConnectorFactory.create("google", owner="owner@example.com")
        assert isinstance(connector, GoogleCalendarConnector)
        assert connector.connector_type == "calendar"
        assert connector.has_capability(ConnectorCapability.GET_AVAILABILITY)


class TestBaseConnector:
    """Tests for token handling on BaseConnector"""

    def test_owner_required(self):
        """Connectors must be bound to an owner"""
        with pytest.raises(ValueError):
            MockConnector(owner="")

    def test_auth_headers_need_token(self):
        """Headers are unavailable until a token is set"""
        connector = MockConnector(owner="owner@example.com")

        with pytest.raises(ValueError):
            connector._get_auth_headers()

        connector.set_access_token("abc")
        assert connector._get_auth_headers() == {"Authorization": "Bearer abc"}

    def test_token_expiry(self):
        """Expiry is strict and unknown expiry never expires"""
        now = datetime(2025, 3, 1, tzinfo=timezone.utc)
        connector = MockConnector(owner="owner@example.com")

        connector.set_access_token("abc")
        assert not connector.is_token_expired(now)

        connector.set_access_token("abc", now)
        assert not connector.is_token_expired(now)

        connector.set_access_token("abc", now - timedelta(seconds=1))
        assert connector.is_token_expired(now)
