"""Shared utilities for stackup."""

from ._logging import LogFormatType, create_supervisor_logger, get_log_level

__all__ = ["LogFormatType", "create_supervisor_logger", "get_log_level"]
