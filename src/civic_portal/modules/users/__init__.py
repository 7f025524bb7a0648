"""
Users module - identities and profiles.
"""

from civic_portal.modules.users.models import User, UserProfile, UserRole
from civic_portal.modules.users.repository import UserRepository

__all__ = ["User", "UserProfile", "UserRole", "UserRepository"]
