"""Endpoint registry records and probe results."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel


class EndpointRecord(BaseModel):
    """One entry of the persisted endpoint registry.

    ``last_test_speed`` is the latency in milliseconds of the most recent
    successful probe, ``None`` when the latest probe failed or none ran yet.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    url: str
    last_test_time: int | None = None  # Unix seconds
    last_test_speed: int | None = Field(default=None, ge=0)


class EndpointLatency(BaseModel):
    """Outcome of probing a single URL."""

    url: str
    latency: int | None = None  # milliseconds, None on failure
    status: int | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


endpoint_records_adapter = TypeAdapter(list[EndpointRecord])
