"""FastAPI dependencies for authentication."""
from dataclasses import dataclass
from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from horizon.auth.utils import decode_access_token

# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class TenantContext:
    """Identity of the caller: the tenant it acts for and the user behind it."""
    tenant_id: str
    user_id: Optional[str] = None


async def get_current_tenant(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> TenantContext:
    """
    Dependency to resolve the caller's tenant from the bearer token.

    Raises 401 if not authenticated, the token is invalid or it carries
    no tenant.
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_access_token(credentials.credentials)

    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    tenant_id = payload.get("tenant_id")
    if not tenant_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has no tenant",
        )

    return TenantContext(tenant_id=tenant_id, user_id=payload.get("sub"))
