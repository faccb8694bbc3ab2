from fastapi import APIRouter

from .v1 import chat, runway, storyboard

api_router = APIRouter()
api_router.include_router(chat.router, prefix="/v1")
api_router.include_router(storyboard.router, prefix="/v1")
api_router.include_router(runway.router, prefix="/v1")
