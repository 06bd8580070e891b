# grm/api/router.py
from fastapi import APIRouter
from grm.api.routes import auth, users, departments, requests, metrics, reports, notifications

api_router = APIRouter(prefix="/api")
api_router.include_router(auth.router, tags=["auth"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(departments.router, tags=["departments"])
api_router.include_router(requests.router, prefix="/requests", tags=["requests"])
api_router.include_router(metrics.router, tags=["metrics"])
api_router.include_router(reports.router, tags=["reports"])
api_router.include_router(notifications.router, tags=["notifications"])
