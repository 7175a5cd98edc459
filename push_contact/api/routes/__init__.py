from fastapi import APIRouter

from . import contacts, health, messages

api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(contacts.router)
api_router.include_router(messages.router)
