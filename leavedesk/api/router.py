from fastapi import APIRouter

from leavedesk.api.balances import adjustment_router, user_balance_router
from leavedesk.api.leave_types import router as leave_types_router
from leavedesk.api.requests import router as requests_router

api_router = APIRouter()
api_router.include_router(leave_types_router)
api_router.include_router(requests_router)
api_router.include_router(user_balance_router)
api_router.include_router(adjustment_router)
