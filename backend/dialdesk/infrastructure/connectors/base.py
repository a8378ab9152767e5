"""
Connector Base Classes and Factory
Abstract base class for third-party account connectors with a registry-based factory.
"""
from abc import ABC, abstractmethod
from typing import Optional, Dict, Any, List, Type
from enum import Enum
from datetime import datetime
import logging

import httpx

from dialdesk.utils.time_utils import utc_now

logger = logging.getLogger(__name__)


class ConnectorCapability(str, Enum):
    """Actions a connector can perform"""
    CREATE_EVENT = "create_event"
    LIST_EVENTS = "list_events"
    GET_AVAILABILITY = "get_availability"


class BaseConnector(ABC):
    """
    Abstract base class for all connectors.

    All connectors must:
    - Be bound to the account owner they act for
    - Receive a stored access token before making API calls
    - Declare their capabilities
    """

    def __init__(
        self,
        owner: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize connector with owner binding.

        Args:
            owner: Account identity the stored credential belongs to (email)
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests)
        """
        if not owner:
            raise ValueError("owner is required for connector initialization")

        self.owner = owner
        self.timeout = timeout
        self._transport = transport
        self._access_token: Optional[str] = None
        self._token_expires_at: Optional[datetime] = None
        logger.info(f"Initialized {self.provider_name} connector for {owner[:3]}...")

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (e.g., 'google')."""
        pass

    @property
    @abstractmethod
    def connector_type(self) -> str:
        """Connector type (calendar)."""
        pass

    @property
    @abstractmethod
    def capabilities(self) -> List[ConnectorCapability]:
        """List of supported capabilities for this connector."""
        pass

    def set_access_token(
        self,
        token: str,
        expires_at: Optional[datetime] = None
    ) -> None:
        """
        Set the access token for API calls.

        Args:
            token: Valid access token
            expires_at: Token expiration time
        """
        self._access_token = token
        self._token_expires_at = expires_at
        logger.debug(f"Access token set for {self.provider_name}")

    def is_token_expired(self, now: Optional[datetime] = None) -> bool:
        """True once the stored expiry is in the past. Unknown expiry never expires."""
        if not self._token_expires_at:
            return False
        return self._token_expires_at < (now or utc_now())

    def has_capability(self, capability: ConnectorCapability) -> bool:
        """Check if connector supports a capability."""
        return capability in self.capabilities

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    def _get_auth_headers(self) -> Dict[str, str]:
        """Get authorization headers for API requests."""
        if not self._access_token:
            raise ValueError("Access token not set. Call set_access_token() first.")
        return {"Authorization": f"Bearer {self._access_token}"}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(owner={self.owner[:3]}..., type={self.connector_type})"


class ConnectorFactory:
    """
    Factory for creating connector instances.

    All connectors must be registered before use.
    """

    _connectors: Dict[str, Type[BaseConnector]] = {}

    @classmethod
    def register(cls, provider: str, connector_class: Type[BaseConnector]) -> None:
        """
        Register a connector class for a provider.

        Args:
            provider: Provider name (e.g., 'google')
            connector_class: Class implementing BaseConnector
        """
        cls._connectors[provider] = connector_class
        logger.info(f"Registered connector: {provider}")

    @classmethod
    def create(cls, provider: str, owner: str, **options: Any) -> BaseConnector:
        """
        Create a connector instance.

        Args:
            provider: Provider name (e.g., 'google')
            owner: Account identity the connector acts for
            **options: Passed to the connector constructor

        Raises:
            ValueError: If provider is not registered
        """
        if provider not in cls._connectors:
            available = ", ".join(cls._connectors.keys()) if cls._connectors else "None"
            raise ValueError(
                f"Unknown connector provider: {provider}. "
                f"Available: {available}"
            )

        connector_class = cls._connectors[provider]
        return connector_class(owner=owner, **options)

    @classmethod
    def list_providers(cls) -> List[str]:
        """List all registered provider names."""
        return list(cls._connectors.keys())

    @classmethod
    def is_registered(cls, provider: str) -> bool:
        """Check if a provider is registered."""
        return provider in cls._connectors
