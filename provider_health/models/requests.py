"""Pydantic request bodies for the endpoint API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class AddEndpointRequest(BaseModel):
    url: str


class ProbeEndpointsRequest(BaseModel):
    """Probe request. Omitting ``urls`` probes every registered endpoint."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    urls: list[str] | None = None
    timeout_secs: int | None = Field(default=None)


class RefreshEndpointsRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    relay_address: str | None = None
