"""
Roles module - field agent and organization records.
"""

from civic_portal.modules.roles.models import FieldAgent, Organization
from civic_portal.modules.roles.repository import RoleRecordRepository

__all__ = ["FieldAgent", "Organization", "RoleRecordRepository"]
