import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from common.core.exceptions import GatewayError


@pytest.fixture
def mock_span():
    """Create a mock span instance for testing telemetry."""
    span = MagicMock()
    span.__enter__ = MagicMock(return_value=span)
    span.__exit__ = MagicMock(return_value=None)
    span.__aenter__ = AsyncMock(return_value=span)
    span.__aexit__ = AsyncMock(return_value=None)
    return span


@pytest.fixture
def mock_start_span(mock_span):
    """Create a mock start_span function that returns mock_span."""
    with patch(
        "common.core.otel_axiom_exporter.axiom_tracer.start_as_current_span",
        return_value=mock_span,
    ) as mock:
        yield mock


@pytest.fixture
def failing_gateway():
    """Gateway double whose every call is rejected by the provider."""
    gateway = AsyncMock()
    gateway.update_subscription = AsyncMock(
        side_effect=GatewayError("Your card was declined.")
    )
    gateway.get_subscription = AsyncMock(side_effect=GatewayError("unavailable"))
    gateway.cancel_subscription = AsyncMock(side_effect=GatewayError("unavailable"))
    gateway.health_check = AsyncMock(return_value=False)
    return gateway
