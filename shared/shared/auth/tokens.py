"""Access-token minting.

Production tokens come from the identity provider; this helper is used by
dev tooling (seed script) and the test suite to produce tokens the
``shared.auth.dependencies`` guards accept.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

from jose import jwt

from shared.auth.config import AuthSettings
from shared.constants import Role

ACCESS_TOKEN_EXPIRE_SECONDS = 15 * 60


def create_access_token(
    user_id: uuid.UUID,
    email: str,
    roles: list[Role],
    settings: AuthSettings,
    *,
    name: str = "",
    expire_seconds: int = ACCESS_TOKEN_EXPIRE_SECONDS,
) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "email": email,
        "name": name,
        "roles": [role.value for role in roles],
        "iat": now,
        "exp": now + timedelta(seconds=expire_seconds),
        "iss": settings.issuer,
        "aud": settings.audience,
    }
    return jwt.encode(payload, settings.secret, algorithm=settings.algorithm)
