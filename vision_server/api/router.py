"""
Главный роутер API
Объединяет все handlers
"""
from fastapi import APIRouter

from vision_server.api.handlers import analyze_handler, health_handler

api_router = APIRouter()

api_router.include_router(analyze_handler.router)
api_router.include_router(health_handler.router)
