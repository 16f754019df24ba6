from fastapi import HTTPException, Depends, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from datetime import datetime, timedelta, timezone

from voicebatch.config import settings
from voicebatch.models.schemas import TenantContext

security = HTTPBearer()

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 120


def _secret_key() -> str:
    if not settings.JWT_SECRET:
        raise RuntimeError("JWT_SECRET is not set in environment variables")
    return settings.JWT_SECRET


def create_token(tenant_id: str, user_id: str = None, role: str = None):
    expire = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {
        "type": "access",
        "tenant_id": tenant_id,
        "exp": expire
    }
    # jose rejects a non-string "sub" on decode
    if user_id is not None:
        payload["sub"] = str(user_id)
    if role is not None:
        payload["role"] = role
    return jwt.encode(payload, _secret_key(), algorithm=ALGORITHM)


def verify_token(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> TenantContext:
    """Resolve the caller's tenant context. Role checks belong to the caller."""
    token = credentials.credentials

    try:
        payload = jwt.decode(token, _secret_key(), algorithms=[ALGORITHM])

    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if payload.get("type") != "access" or not payload.get("tenant_id"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return TenantContext(
        tenant_id=str(payload["tenant_id"]),
        user_id=payload.get("sub"),
        role=payload.get("role"),
    )
