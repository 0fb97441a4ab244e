from fastapi import APIRouter
from agriconnect.api import auth, chat, health

api_router = APIRouter(prefix='/api')

api_router.include_router(health.router, tags=['health'])
api_router.include_router(auth.router)

socket_router = APIRouter()
socket_router.include_router(chat.router, tags=['chat'])
