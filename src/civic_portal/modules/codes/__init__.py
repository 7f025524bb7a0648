"""
Codes module - one-time verification and activation codes.
"""

from civic_portal.modules.codes.models import CodePurpose, CodeRecord
from civic_portal.modules.codes.router import router

__all__ = ["CodePurpose", "CodeRecord", "router"]
