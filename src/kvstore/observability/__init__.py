"""Observability helpers for kvstore."""

from kvstore.observability.logging import get_logger, setup_logging

__all__ = ["get_logger", "setup_logging"]
