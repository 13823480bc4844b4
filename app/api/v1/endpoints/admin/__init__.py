"""
Admin API endpoints for the moderation dashboard.
All endpoints require an account whose role can moderate (admin or superadmin).
"""
from fastapi import APIRouter

from app.api.v1.endpoints.admin import applications, requests, users, dashboard

admin_router = APIRouter(prefix="/admin", tags=["Admin Dashboard"])

# Include all admin sub-routers
admin_router.include_router(applications.router, prefix="/applications", tags=["Admin Applications"])
admin_router.include_router(requests.router, prefix="/requests", tags=["Admin Requests"])
admin_router.include_router(users.router, tags=["Admin Users"])
admin_router.include_router(dashboard.router, tags=["Admin Dashboard"])
