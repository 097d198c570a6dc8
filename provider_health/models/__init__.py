"""API request and response models."""

from provider_health.models.requests import (
    AddEndpointRequest,
    ProbeEndpointsRequest,
    RefreshEndpointsRequest,
)
from provider_health.models.responses import ApiResponse, ok

__all__ = [
    "AddEndpointRequest",
    "ApiResponse",
    "ProbeEndpointsRequest",
    "RefreshEndpointsRequest",
    "ok",
]
