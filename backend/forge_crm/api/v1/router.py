from fastapi import APIRouter

from forge_crm.api.v1 import alert_settings, auth, cron, dashboard, users

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"])
api_router.include_router(alert_settings.router, prefix="/settings/alerts", tags=["alerts"])
api_router.include_router(cron.router, prefix="/cron", tags=["cron"])
