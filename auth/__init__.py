"""Authentication module for bearer tokens and webhook API keys.

This module provides:
1. JWT creation and verification; the ``sub`` claim carries the user id
2. Constant-time API key checks for settlement webhooks
3. FastAPI dependencies for protecting routes

Any failure to authenticate answers 403 "Not authenticated".
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Request, HTTPException, Security, status
from fastapi.security import APIKeyHeader, HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt

# Configure logging
logger = logging.getLogger(__name__)

# Constants
TOKEN_EXPIRY_DAYS = 30
API_KEY_HEADER = "x-api-key"
NOT_AUTHENTICATED = "Not authenticated"

class AuthError(Exception):
    """Base exception for authentication errors."""
    pass

class SessionExpiredError(AuthError):
    """Raised when a token has expired."""
    pass

class AuthManager:
    """Issues and verifies bearer tokens and checks webhook keys."""

    def __init__(self, secret: str, algorithm: str = "HS256", api_key: str = ""):
        """Initialize auth manager.

        Args:
            secret: Key used to sign and verify tokens
            algorithm: JWT signing algorithm
            api_key: Key expected on webhook calls; empty refuses every call
        """
        self.secret = secret
        self.algorithm = algorithm
        self.api_key = api_key

    @classmethod
    def from_settings(cls, settings) -> 'AuthManager':
        return cls(
            settings['jwt_secret'],
            settings.get('jwt_algorithm', 'HS256'),
            settings.get('api_key', '')
        )

    def create_token(self, user_id: str, expires_in: Optional[timedelta] = None) -> str:
        """Create a signed token for a user.

        Args:
            user_id: Identity placed in the ``sub`` claim
            expires_in: Token lifetime, defaults to TOKEN_EXPIRY_DAYS

        Returns:
            Encoded JWT
        """
        expires_at = datetime.now(timezone.utc) + (expires_in or timedelta(days=TOKEN_EXPIRY_DAYS))
        return jwt.encode(
            {'sub': user_id, 'exp': int(expires_at.timestamp())},
            self.secret,
            algorithm=self.algorithm
        )

    def verify_token(self, token: str) -> str:
        """Verify a token and return its user id.

        Raises:
            SessionExpiredError: If the token has expired
            AuthError: For any other verification failure
        """
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            raise SessionExpiredError("Token has expired")
        except jwt.JWTError as e:
            raise AuthError(f"Invalid token: {str(e)}")

        user_id = payload.get('sub')
        if not isinstance(user_id, str) or not user_id:
            raise AuthError("Token has no subject")
        return user_id

    def verify_api_key(self, key: Optional[str]) -> bool:
        """Check a webhook key against the configured one."""
        if not self.api_key or not key:
            return False
        return secrets.compare_digest(key.encode(), self.api_key.encode())

# FastAPI security schemes; failures are reported as 403 below
auth_scheme = HTTPBearer(
    auto_error=False,
    description="JWT Bearer token required"
)

api_key_scheme = APIKeyHeader(
    name=API_KEY_HEADER,
    auto_error=False,
    description="Webhook API key"
)

def _forbidden() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail=NOT_AUTHENTICATED
    )

async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(auth_scheme)
) -> str:
    """FastAPI dependency for getting the authenticated user id.

    Raises:
        HTTPException: 403 if the token is missing or fails verification
    """
    if credentials is None:
        raise _forbidden()

    try:
        return request.app.state.auth.verify_token(credentials.credentials)
    except AuthError as e:
        logger.warning(f"Rejected bearer token: {e}")
        raise _forbidden()

async def require_api_key(
    request: Request,
    key: Optional[str] = Security(api_key_scheme)
) -> None:
    """FastAPI dependency guarding the settlement webhooks.

    Raises:
        HTTPException: 403 if the key is missing or does not match
    """
    if not request.app.state.auth.verify_api_key(key):
        logger.warning("Rejected webhook call with missing or invalid API key")
        raise _forbidden()

# Export public interface
__all__ = [
    'AuthManager',
    'get_current_user',
    'require_api_key',
    'AuthError',
    'SessionExpiredError',
    'API_KEY_HEADER'
]
