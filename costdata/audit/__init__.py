"""Request logging package."""

from costdata.audit.logger import RequestLogger, configure_logging

__all__ = ["RequestLogger", "configure_logging"]
