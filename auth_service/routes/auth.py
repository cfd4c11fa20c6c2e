import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from auth_service.models import LoginFailure, LoginRequest, LoginResponse
from auth_service.services.auth_service import AuthService, SigningKeyMissing

logger = logging.getLogger(__name__)

router = APIRouter()
auth_service = AuthService()
if not auth_service.can_sign_tokens:
    logger.warning("No JWT signing key configured; logins will be refused with 503")


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={401: {"model": LoginFailure}, 503: {"model": LoginFailure}},
)
async def login(credentials: LoginRequest):
    logger.info(f"Login attempt: {credentials.username}")
    try:
        result = await auth_service.login_user(credentials.username, credentials.password)
    except SigningKeyMissing as exc:
        logger.error(f"Cannot issue token for {credentials.username}: {exc}")
        return JSONResponse(
            status_code=503,
            content=LoginFailure(message="Token signing is not configured").model_dump(),
        )
    if result is None:
        logger.info(f"Login failed: {credentials.username}")
        return JSONResponse(status_code=401, content=LoginFailure().model_dump())
    logger.info(f"Login successful: {credentials.username}")
    return result
