import logging
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from shared.auth.config import AuthSettings
from shared.constants import Role
from shared.models.user import CurrentUser

logger = logging.getLogger(__name__)

http_bearer = HTTPBearer(auto_error=False)


def get_auth_settings() -> AuthSettings:
    return AuthSettings()


def _decode_token(token: str, settings: AuthSettings) -> dict:
    return jwt.decode(
        token,
        settings.secret,
        algorithms=[settings.algorithm],
        issuer=settings.issuer,
        audience=settings.audience,
    )


def _payload_to_user(payload: dict) -> CurrentUser:
    user_id = payload.get("sub")
    if not user_id:
        raise ValueError("Missing sub in token")
    roles: list[Role] = []
    for raw in payload.get("roles") or []:
        try:
            roles.append(Role(raw))
        except ValueError:
            # Roles minted for other services are not meaningful here
            logger.debug("Ignoring unknown role %r in token", raw)
    return CurrentUser(
        id=UUID(user_id),
        email=payload.get("email") or "",
        name=payload.get("name") or "",
        roles=roles,
    )


async def get_current_user_optional(
    credentials: HTTPAuthorizationCredentials | None = Depends(http_bearer),
    settings: AuthSettings = Depends(get_auth_settings),
) -> CurrentUser | None:
    if not credentials or not credentials.credentials:
        return None
    try:
        payload = _decode_token(credentials.credentials, settings)
        return _payload_to_user(payload)
    except (JWTError, ValueError, KeyError):
        return None


async def get_current_user_required(
    user: CurrentUser | None = Depends(get_current_user_optional),
) -> CurrentUser:
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def require_roles(*allowed: Role):
    """Dependency factory: 403 unless the caller holds one of ``allowed``."""

    async def _guard(
        user: CurrentUser = Depends(get_current_user_required),
    ) -> CurrentUser:
        if not any(role in user.roles for role in allowed):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient role",
            )
        return user

    return _guard
