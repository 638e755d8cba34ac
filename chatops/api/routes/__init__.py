from fastapi import APIRouter
from chatops.api.routes import chat, channels, health

api_router = APIRouter()

# Include all route modules
api_router.include_router(health.router)
api_router.include_router(chat.router)
api_router.include_router(channels.router)
