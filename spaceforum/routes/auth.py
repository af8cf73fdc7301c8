import logging

from fastapi import APIRouter, Depends, status

from .. import schemas
from ..auth import AuthService, get_auth_service
from ..errors import StoreError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])

ERROR_RESPONSES = {
    400: {"model": schemas.ErrorResponse},
    500: {"model": schemas.ErrorResponse},
}


@router.post(
    "/register",
    response_model=schemas.MessageResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
)
def register(
    payload: schemas.RegisterRequest,
    auth: AuthService = Depends(get_auth_service),
):
    try:
        auth.register(payload.username, payload.email, payload.password)
    except StoreError as exc:
        logger.exception("Registration error")
        raise StoreError("Failed to register user") from exc
    return {"message": "User registered!"}


@router.post(
    "/login",
    response_model=schemas.LoginResponse,
    responses={**ERROR_RESPONSES, 401: {"model": schemas.ErrorResponse}},
)
def login(
    payload: schemas.LoginRequest,
    auth: AuthService = Depends(get_auth_service),
):
    """Exchange credentials for a bearer token.

    A 401 carries ``field`` ("username" or "password") so the form can mark
    the input that was wrong.
    """
    try:
        result = auth.login(payload.username, payload.password)
    except StoreError as exc:
        logger.exception("Login error")
        raise StoreError("Server error during login") from exc
    return {"message": result.message, "token": result.token, "user": result.user}
