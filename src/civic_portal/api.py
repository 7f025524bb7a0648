from fastapi import APIRouter

from civic_portal.modules.activity_log.router import router as activity_log_router
from civic_portal.modules.auth import router as auth_router
from civic_portal.modules.codes import router as codes_router
from civic_portal.modules.registrations import router as registrations_router
from civic_portal.modules.registrations.admin_router import router as admin_registrations_router

api_router = APIRouter()

api_router.include_router(auth_router, prefix="/auth", tags=["Authentication"])

api_router.include_router(registrations_router, prefix="/registrations", tags=["Registrations"])

api_router.include_router(codes_router, prefix="/codes", tags=["Verification Codes"])

api_router.include_router(
    admin_registrations_router,
    prefix="/admin/registrations",
    tags=["Admin - Registrations"],
)

api_router.include_router(
    activity_log_router,
    prefix="/admin/activity-logs",
    tags=["Admin - Activity Log"],
)
