"""
Connector Infrastructure Package
Connectors for third-party accounts owned by our users
"""
from dialdesk.infrastructure.connectors.base import (
    BaseConnector,
    ConnectorFactory,
    ConnectorCapability
)
from dialdesk.infrastructure.connectors.encryption import (
    TokenEncryptionService,
    TokenEncryptionError
)

__all__ = [
    "BaseConnector",
    "ConnectorFactory",
    "ConnectorCapability",
    "TokenEncryptionService",
    "TokenEncryptionError"
]
