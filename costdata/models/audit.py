"""
Request Log Models for Cost Data

Every resolver call leaves one request log entry behind. This provides:
1. Latency tracking per lookup
2. A record of which source answered (cache, live API, estimator)
3. Debugging information when every source fails

DESIGN DECISION: Request logs are append-only. We never delete or modify them.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator

from costdata.models.location import LookupKind, utc_now


class RequestLogEntry(BaseModel):
    """
    A single resolver lookup.

    Written once at the end of `resolve_country` / `resolve_city`.
    """

    # Identity
    entry_id: UUID = Field(
        default_factory=uuid4,
        description="Unique entry identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the lookup finished (UTC)"
    )

    # What was looked up
    endpoint: LookupKind = Field(
        ...,
        description="Which resolver operation ran"
    )
    country_code: str = Field(
        ...,
        max_length=2,
        description="Country code looked up"
    )
    city_name: Optional[str] = Field(
        default=None,
        max_length=200,
        description="City name (city lookups only)"
    )

    # Outcome
    success: bool = Field(
        ...,
        description="Whether the caller received data"
    )
    response_time_ms: int = Field(
        ...,
        ge=0,
        description="Wall-clock latency of the lookup"
    )
    data_source: Optional[str] = Field(
        default=None,
        description="'cache', a source name, or None when nothing answered"
    )
    error_message: Optional[str] = Field(
        default=None,
        max_length=500,
    )

    @field_validator("timestamp")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @property
    def key(self) -> str:
        """Human-readable lookup key, e.g. 'ID' or 'Ubud, ID'."""
        if self.city_name:
            return f"{self.city_name}, {self.country_code}"
        return self.country_code

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "entry_id": str(self.entry_id),
            "timestamp": self.timestamp.isoformat(),
            "endpoint": self.endpoint.value,
            "key": self.key,
            "success": self.success,
            "response_time_ms": self.response_time_ms,
            "data_source": self.data_source,
            "error_message": self.error_message,
        }


class RequestLogBuilder:
    """
    Helper class to build request log entries with common patterns.

    Usage:
        entry = RequestLogBuilder.cache_hit(LookupKind.COUNTRY, "ID", None, 3)
        entry = RequestLogBuilder.not_found(LookupKind.CITY, "ID", "Ubud", 812)
    """

    @staticmethod
    def cache_hit(
        endpoint: LookupKind,
        country_code: str,
        city_name: Optional[str],
        response_time_ms: int,
    ) -> RequestLogEntry:
        return RequestLogEntry(
            endpoint=endpoint,
            country_code=country_code,
            city_name=city_name,
            success=True,
            response_time_ms=response_time_ms,
            data_source="cache",
        )

    @staticmethod
    def refreshed(
        endpoint: LookupKind,
        country_code: str,
        city_name: Optional[str],
        data_source: str,
        response_time_ms: int,
    ) -> RequestLogEntry:
        return RequestLogEntry(
            endpoint=endpoint,
            country_code=country_code,
            city_name=city_name,
            success=True,
            response_time_ms=response_time_ms,
            data_source=data_source,
        )

    @staticmethod
    def served_stale(
        endpoint: LookupKind,
        country_code: str,
        city_name: Optional[str],
        response_time_ms: int,
    ) -> RequestLogEntry:
        return RequestLogEntry(
            endpoint=endpoint,
            country_code=country_code,
            city_name=city_name,
            success=True,
            response_time_ms=response_time_ms,
            data_source="cache",
            error_message="All sources failed, served stale cache",
        )

    @staticmethod
    def not_found(
        endpoint: LookupKind,
        country_code: str,
        city_name: Optional[str],
        response_time_ms: int,
        error_message: str = "No data found",
    ) -> RequestLogEntry:
        return RequestLogEntry(
            endpoint=endpoint,
            country_code=country_code,
            city_name=city_name,
            success=False,
            response_time_ms=response_time_ms,
            error_message=error_message[:500],
        )
