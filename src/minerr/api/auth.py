"""Bearer token authentication boundary.

Tokens are issued elsewhere; this module only verifies them. The signing
secret comes from configuration and the verifier is built once at
startup by ``init_auth``.
"""

import logging
from typing import Annotated

import jwt
from fastapi import Depends, Request
from pydantic import BaseModel

from minerr.api.errors import UnauthorizedError
from minerr.config import AuthConfig
from minerr.logging_schema import LogEvent

logger = logging.getLogger(__name__)

ACCESS_TOKEN_QUERY_PARAM = "access_token"


class AuthenticatedUser(BaseModel):
    """Verified identity attached to a request."""

    id: str
    username: str | None = None


class TokenVerifier:
    """Verifies signed access tokens."""

    def __init__(self, secret: str, algorithm: str = "HS256") -> None:
        if not secret:
            raise ValueError("JWT secret must not be empty")
        self._secret = secret
        self._algorithms = [algorithm]

    def verify(self, token: str) -> AuthenticatedUser:
        """Decode and validate a token.

        Raises:
            UnauthorizedError: Invalid signature, expired, or missing subject.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=self._algorithms,
                options={"require": ["sub"]},
            )
        except jwt.InvalidTokenError as e:
            logger.info(
                "Rejected token",
                extra={"event": LogEvent.AUTH_REJECTED, "reason": str(e)},
            )
            raise UnauthorizedError("Token expired or invalid") from e
        return AuthenticatedUser(id=str(payload["sub"]), username=payload.get("username"))


# Singleton verifier
_verifier: TokenVerifier | None = None


def init_auth(config: AuthConfig) -> None:
    """Build the token verifier from configuration.

    Must be called during app startup.

    Raises:
        ValueError: No signing secret configured.
    """
    global _verifier
    _verifier = TokenVerifier(config.jwt_secret.get_secret_value(), config.jwt_algorithm)


def get_token_verifier() -> TokenVerifier:
    """Get verifier singleton.

    Raises:
        RuntimeError: If called before init_auth().
    """
    if _verifier is None:
        raise RuntimeError("Auth not initialized. Call init_auth() first.")
    return _verifier


def reset_auth() -> None:
    """Reset verifier singleton (for testing)."""
    global _verifier
    _verifier = None


def _bearer_token(request: Request) -> str | None:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def _authenticate(request: Request, verifier: TokenVerifier, token: str | None) -> AuthenticatedUser:
    if not token:
        raise UnauthorizedError("No token provided")
    user = verifier.verify(token)
    request.state.user = user
    return user


def require_user(
    request: Request,
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> AuthenticatedUser:
    """Require a valid bearer token in the Authorization header."""
    return _authenticate(request, verifier, _bearer_token(request))


def require_stream_user(
    request: Request,
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> AuthenticatedUser:
    """Like require_user, also accepting ``?access_token=``.

    EventSource clients cannot set request headers.
    """
    token = _bearer_token(request) or request.query_params.get(ACCESS_TOKEN_QUERY_PARAM)
    return _authenticate(request, verifier, token)


CurrentUser = Annotated[AuthenticatedUser, Depends(require_user)]
StreamUser = Annotated[AuthenticatedUser, Depends(require_stream_user)]
