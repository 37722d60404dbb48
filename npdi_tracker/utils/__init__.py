"""Utilities - logging, identity tokens, ids, time and nested-document helpers"""
from .logger import get_logger, setup_logging, get_correlation_id, set_correlation_id
from .jwt import get_current_user
from .idgen import generate_ticket_id, format_ticket_number
from .time import utc_now, coerce_datetime
from .paths import get_path, set_path, right_merge

__all__ = [
    "get_logger",
    "setup_logging",
    "get_correlation_id",
    "set_correlation_id",
    "get_current_user",
    "generate_ticket_id",
    "format_ticket_number",
    "utc_now",
    "coerce_datetime",
    "get_path",
    "set_path",
    "right_merge",
]
