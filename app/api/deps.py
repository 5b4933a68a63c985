"""
FastAPI Dependencies

Provides dependency injection for database sessions, authentication,
and the order execution collaborators.

SECURITY NOTES:
- JWT payloads are never logged
- Tokens are issued by the managed backend; this service only verifies them
- Bearer token is the only auth method (SPA-friendly, no CSRF needed)
"""

from typing import Annotated
from functools import lru_cache
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from jose import JWTError, jwt
from datetime import datetime, timedelta
import logging

from app.database import get_db, async_session_maker
from app.config import settings
from app.schemas.auth import TokenData
from app.services.closure_motive_catalog import ClosureMotiveCatalog
from app.services.evidence_store import EvidenceStore, SQLAlchemyEvidenceStore
from app.services.order_execution.sessions import ExecutionSessionManager
from app.services.order_store import OrderStore, SQLAlchemyOrderStore
from app.services.rest_order_store import RestOrderStore

logger = logging.getLogger(__name__)


# HTTP Bearer for JWT
security = HTTPBearer(auto_error=False)


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Create a JWT access token (used by tooling and tests)."""
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return encoded_jwt


async def get_current_agent(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)] = None,
) -> TokenData:
    """
    Get the current agent from the bearer token.

    SECURITY:
    - JWT payloads are NOT logged to prevent credential leakage
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if not credentials:
        raise credentials_exception

    try:
        payload = jwt.decode(credentials.credentials, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        sub = payload.get("sub")
        if sub is None:
            raise credentials_exception
        token_data = TokenData(
            agent_id=str(sub),
            email=payload.get("email"),
            role=payload.get("role", "agent"),
        )
    except JWTError:
        # SECURITY: Don't log token decode errors with details
        logger.warning("JWT validation failed")
        raise credentials_exception
    except ValueError:
        logger.warning("Invalid token claims")
        raise credentials_exception

    logger.debug("Agent authenticated", extra={"agent_id": token_data.agent_id})
    return token_data


def build_order_store() -> OrderStore:
    """Order store for the configured backend."""
    if settings.ORDER_STORE_BACKEND == "rest":
        return RestOrderStore(
            settings.ORDER_STORE_URL,
            settings.ORDER_STORE_API_KEY,
            timeout=settings.ORDER_STORE_TIMEOUT_SECONDS,
        )
    return SQLAlchemyOrderStore(async_session_maker)


@lru_cache()
def get_session_manager() -> ExecutionSessionManager:
    """Process-wide registry of open execution sessions."""
    return ExecutionSessionManager(build_order_store())


def get_evidence_store() -> EvidenceStore:
    return SQLAlchemyEvidenceStore(async_session_maker)


def get_closure_motive_catalog() -> ClosureMotiveCatalog:
    return ClosureMotiveCatalog(async_session_maker)


def get_location_session_factory():
    """Session factory used for last-known agent location lookups."""
    return async_session_maker


# Type aliases for dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db)]
CurrentAgent = Annotated[TokenData, Depends(get_current_agent)]
SessionManager = Annotated[ExecutionSessionManager, Depends(get_session_manager)]
Evidence = Annotated[EvidenceStore, Depends(get_evidence_store)]
MotiveCatalog = Annotated[ClosureMotiveCatalog, Depends(get_closure_motive_catalog)]
LocationSessionFactory = Annotated[object, Depends(get_location_session_factory)]
