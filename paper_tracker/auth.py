import hmac
from typing import Optional

from fastapi import Depends, HTTPException, Request
from itsdangerous import BadSignature, URLSafeTimedSerializer

from . import config
from .config import get_settings

AUTH_COOKIE = "paper-tracker-auth-cookie"


def _serializer(settings: config.Settings) -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(settings.secret_key, salt=b"paper-tracker")


def issue_token(settings: config.Settings, subject: str = "owner") -> str:
    return _serializer(settings).dumps({"sub": subject})


def verify_token(settings: config.Settings, token: str) -> bool:
    try:
        _serializer(settings).loads(token, max_age=settings.token_max_age)
    except BadSignature:
        # also covers SignatureExpired
        return False
    return True


def check_password(settings: config.Settings, password: str) -> bool:
    if not settings.auth_password:
        return False
    return hmac.compare_digest(settings.auth_password.encode(), password.encode())


def token_from_request(request: Request) -> Optional[str]:
    authorization = request.headers.get("Authorization")
    if authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() == "bearer" and token:
            return token
    return request.cookies.get(AUTH_COOKIE)


def is_authenticated(request: Request, settings: config.Settings) -> bool:
    if not settings.auth_enabled:
        return True
    token = token_from_request(request)
    return token is not None and verify_token(settings, token)


async def require_auth(
    request: Request,
    settings: config.Settings = Depends(get_settings),
) -> None:
    if not is_authenticated(request, settings):
        raise HTTPException(
            status_code=401,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
