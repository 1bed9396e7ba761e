from fastapi import APIRouter, Depends, HTTPException, Request, status

from app.api.dependencies import UnitOfWork, get_current_user, get_uow
from app.api.openapi_responses import (
    ErrorExample,
    error_responses,
    rate_limited_response,
    unauthorized_response,
)
from app.api.schemas import (
    AccessTokenResponse,
    LoginUserRequest,
    RegisterUserRequest,
    UpdateProfileRequest,
    UserResponse,
)
from app.core.auth import create_access_token
from app.core.errors import build_http_error
from app.core.rate_limit import (
    AUTH_LOGIN_RATE_LIMIT,
    AUTH_REGISTER_RATE_LIMIT,
    limit,
    rate_limit_ip_key,
)
from app.db.models.user import User
from app.services.auth_service import (
    AuthenticationError,
    InvalidCredentialsError,
    PasswordTooLongError,
)

router = APIRouter()

_PASSWORD_TOO_LONG = ErrorExample(
    status_code=422,
    error="password_too_long",
    message="Password must not exceed 72 bytes when UTF-8 encoded",
    description="Invalid input",
    summary="Password too long",
)


def _status_for(error: AuthenticationError) -> int:
    if isinstance(error, InvalidCredentialsError):
        return status.HTTP_401_UNAUTHORIZED
    if isinstance(error, PasswordTooLongError):
        return 422
    return status.HTTP_400_BAD_REQUEST


def _auth_http_error(error: AuthenticationError) -> HTTPException:
    status_code = _status_for(error)
    headers = (
        {"WWW-Authenticate": "Bearer"} if status_code == status.HTTP_401_UNAUTHORIZED else None
    )
    return build_http_error(
        status_code=status_code,
        error=error.error_code,
        message=str(error),
        headers=headers,
    )


@router.post(
    "/register",
    summary="Register user",
    description="Create a new user account with email and password.",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        **error_responses(
            ErrorExample(
                status_code=status.HTTP_400_BAD_REQUEST,
                error="user_exists",
                message="Email already registered",
                description="Email already registered",
                summary="User already exists",
            ),
            _PASSWORD_TOO_LONG,
        ),
        **rate_limited_response(),
    },
)
@limit(AUTH_REGISTER_RATE_LIMIT, key_func=rate_limit_ip_key)
async def register(
    request: Request,
    user_data: RegisterUserRequest,
    uow: UnitOfWork = Depends(get_uow),
) -> UserResponse:
    """Register a new user."""
    try:
        new_user = await uow.auth_service.register_user(
            user_data.email,
            user_data.password,
            first_name=user_data.first_name,
            last_name=user_data.last_name,
        )
    except AuthenticationError as e:
        raise _auth_http_error(e) from e
    return UserResponse.model_validate(new_user)


@router.post(
    "/login",
    summary="Log in",
    description="Authenticate credentials and return a bearer access token with the user.",
    response_model=AccessTokenResponse,
    responses={
        **error_responses(
            ErrorExample(
                status_code=status.HTTP_401_UNAUTHORIZED,
                error="invalid_credentials",
                message="Incorrect email or password",
                description="Invalid credentials",
                summary="Invalid email or password",
            ),
            _PASSWORD_TOO_LONG,
        ),
        **rate_limited_response(),
    },
)
@limit(AUTH_LOGIN_RATE_LIMIT, key_func=rate_limit_ip_key)
async def login(
    request: Request,
    credentials: LoginUserRequest,
    uow: UnitOfWork = Depends(get_uow),
) -> AccessTokenResponse:
    """Authenticate user and return JWT token."""
    try:
        user = await uow.auth_service.authenticate_user(credentials.email, credentials.password)
    except AuthenticationError as e:
        raise _auth_http_error(e) from e

    access_token = create_access_token(data={"sub": user.id, "role": user.role})
    return AccessTokenResponse(access_token=access_token, user=UserResponse.model_validate(user))


@router.get(
    "/me",
    summary="Get current user",
    description="Return the user for the provided bearer token.",
    response_model=UserResponse,
    responses={**unauthorized_response(), **rate_limited_response()},
)
async def get_me(
    request: Request,
    current_user: User = Depends(get_current_user),
) -> UserResponse:
    """Get current authenticated user information."""
    return UserResponse.model_validate(current_user)


@router.patch(
    "/me",
    summary="Update current user",
    description="Update the first and last name of the current user.",
    response_model=UserResponse,
    responses={**unauthorized_response(), **rate_limited_response()},
)
async def update_me(
    request: Request,
    profile: UpdateProfileRequest,
    current_user: User = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_uow),
) -> UserResponse:
    updated = await uow.auth_service.update_profile(
        current_user, first_name=profile.first_name, last_name=profile.last_name
    )
    return UserResponse.model_validate(updated)
