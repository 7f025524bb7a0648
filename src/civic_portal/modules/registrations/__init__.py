"""
Registrations Module

Handles the registration approval workflow:
1. Public submission (one pending request per email)
2. Admin notification with signed approve/reject links
3. Approval: provisioning plus a 4-digit activation code
4. Rejection with a reason

API Endpoints:
- POST /registrations - Submit a registration request
- GET /registrations/quick-action - Decide from an email link
- /admin/registrations/... - Admin review (see admin_router)

Activation codes are redeemed through the codes module
(POST /codes/verify with purpose approval_activation).
"""

from .router import router

__all__ = ["router"]
