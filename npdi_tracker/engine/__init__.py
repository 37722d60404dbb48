"""Ticket engine - audit history"""
from .audit_writer import AuditWriter, describe_significant_changes

__all__ = [
    "AuditWriter",
    "describe_significant_changes",
]
