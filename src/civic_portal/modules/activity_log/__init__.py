"""
Activity log module - append-only record of approval decisions.
"""

from .models import ActionType, ActivityLog

__all__ = ["ActionType", "ActivityLog"]
