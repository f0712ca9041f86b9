"""
Request Logger

DESIGN DECISION: Every resolver lookup is logged.
This provides:
1. Latency tracking per lookup
2. Visibility into which source answered
3. A trail to debug "why is this country estimated?"

The request logger:
- Always writes a structured local log line
- Persists to storage when a storage backend is configured
- Gracefully handles failures (a lookup never fails because logging did)
"""

import logging
import sys
from typing import Optional

import structlog

from costdata.models.audit import RequestLogEntry
from costdata.services.storage import RequestLogStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """
    Route structlog output through the stdlib root logger at `level`.

    Call once from the hosting process.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )
    logging.getLogger().setLevel(level)


class RequestLogger:
    """
    Central request logging service.

    Logs entries both to:
    1. Structured local log (for debugging)
    2. The request log store (for monitoring)
    """

    def __init__(
        self,
        storage: Optional[RequestLogStorageInterface] = None,
    ):
        """
        Initialize request logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("costdata.requests")

    async def log(self, entry: RequestLogEntry) -> bool:
        """
        Log a request entry.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = entry.to_log_dict()

        if entry.success:
            self._logger.info("resolver_request", **log_dict)
        else:
            self._logger.warning("resolver_request", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_entry(entry)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "request_log_storage_failed",
                    error=str(e),
                    entry_id=str(entry.entry_id),
                )
                return False

        return True
