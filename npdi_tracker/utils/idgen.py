"""ID Generation Utilities"""
import uuid
from datetime import datetime, timezone
from typing import Optional


def generate_id(prefix: Optional[str] = None) -> str:
    """
    Generate a unique ID with optional prefix

    Examples:
        >>> generate_id('TKT')
        'TKT-a1b2c3d4e5f6'
    """
    unique_part = uuid.uuid4().hex[:12]

    if prefix:
        return f"{prefix}-{unique_part}"
    return unique_part


def generate_ticket_id() -> str:
    """Generate internal ticket ID"""
    return generate_id("TKT")


def generate_preferences_id() -> str:
    """Generate user preferences document ID"""
    return generate_id("PREF")


def format_ticket_number(prefix: str, year: int, sequence: int) -> str:
    """
    Human-readable ticket number

    >>> format_ticket_number("NPDI", 2025, 7)
    'NPDI-2025-0007'
    """
    return f"{prefix}-{year}-{sequence:04d}"


def generate_correlation_id() -> str:
    """Generate a correlation ID for request tracing"""
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
    unique_part = uuid.uuid4().hex[:8]
    return f"COR-{timestamp}-{unique_part}"
