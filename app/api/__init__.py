from fastapi import APIRouter
from app.api.endpoints import follow, social, settings, comments, notifications

api_router = APIRouter()

# Include all endpoint routers
api_router.include_router(follow.router, prefix="/follow", tags=["Follow"])
api_router.include_router(social.router, prefix="/social", tags=["Social"])
api_router.include_router(settings.router, prefix="/settings", tags=["Settings"])
api_router.include_router(comments.router, prefix="/comments", tags=["Comments"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])
