# API endpoints
from . import auth, verification, projects, requests, notifications, health

__all__ = ["auth", "verification", "projects", "requests", "notifications", "health"]
