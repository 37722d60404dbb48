"""API module - Routes and dependencies"""
from .deps import get_current_user_dep

__all__ = ["get_current_user_dep"]
