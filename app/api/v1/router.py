from fastapi import APIRouter
from app.api.v1.endpoints import auth, verification, projects, requests, notifications, health
from app.api.v1.endpoints.admin import admin_router

api_router = APIRouter()

api_router.include_router(health.router)

api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(verification.router, prefix="/verification", tags=["Verification"])
api_router.include_router(projects.router, prefix="/projects", tags=["Projects"])
api_router.include_router(requests.router, prefix="/requests", tags=["Requests"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])

# Admin dashboard
api_router.include_router(admin_router)
