"""Mock implementations for testing."""

from tests.sqlquest.mocks.config import make_config
from tests.sqlquest.mocks.driver import MockBackendDriver, MockRowSource, MockTransaction
from tests.sqlquest.mocks.permissions import MockPermissionChecker

__all__ = [
    "MockBackendDriver",
    "MockPermissionChecker",
    "MockRowSource",
    "MockTransaction",
    "make_config",
]
