from fastapi import APIRouter

from app.schemas.auth import GuardLoginRequest, GuardTokenResponse
from app.services.auth_service import guard_login

router = APIRouter()


@router.post("/guard-login", response_model=GuardTokenResponse)
def login_guard(payload: GuardLoginRequest):
    return guard_login(payload.username, payload.password)
