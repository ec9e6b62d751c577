from fastapi import APIRouter

from leaveflow.api.ai import ai_router
from leaveflow.api.auth import auth_router
from leaveflow.api.gmail import gmail_router
from leaveflow.api.leaves import leaves_router
from leaveflow.api.users import users_router

api_router = APIRouter()
api_router.include_router(auth_router)
api_router.include_router(users_router)
api_router.include_router(leaves_router)
api_router.include_router(ai_router)
api_router.include_router(gmail_router)
