"""Stateless admin authentication with signed bearer tokens."""

import hmac
import logging
from datetime import datetime, timedelta, timezone

import jwt
from jwt import InvalidTokenError

from baluflix.errors import AuthError
from baluflix.models import AuthToken, Principal

logger = logging.getLogger(__name__)


class AuthGate:
    """Issues and validates JWTs for the single configured admin.

    Nothing is stored server-side: a token is valid exactly when its
    signature verifies and its embedded expiry has not passed.
    Secrets are passed in by the caller, never read from the environment here.
    """

    def __init__(
        self,
        admin_username: str,
        admin_password: str,
        secret: str,
        algorithm: str = "HS256",
        token_ttl: timedelta = timedelta(hours=12),
    ) -> None:
        if not secret:
            raise ValueError("A signing secret is required")
        self._username = admin_username
        self._password = admin_password
        self._secret = secret
        self._algorithm = algorithm
        self._ttl = token_ttl

    def login(self, username: str, password: str) -> AuthToken:
        """Exchange admin credentials for a signed token.

        Raises:
            AuthError: If the credentials do not match the admin principal.
        """
        user_ok = hmac.compare_digest((username or "").encode(), self._username.encode())
        pass_ok = hmac.compare_digest((password or "").encode(), self._password.encode())
        if not (user_ok and pass_ok):
            logger.warning("Failed login for %r", username)
            raise AuthError("invalid credentials")

        now = datetime.now(timezone.utc)
        expires_at = now + self._ttl
        token = jwt.encode(
            {"sub": username, "iat": now, "exp": expires_at},
            self._secret,
            algorithm=self._algorithm,
        )
        logger.info("Issued token for %s (expires %s)", username, expires_at.isoformat())
        return AuthToken(access_token=token, expires_at=expires_at)

    def authorize(self, token: str | None) -> Principal:
        """Validate a token and return the principal it names.

        Raises:
            AuthError: "missing" when no token is given, "invalid/expired"
                when the signature, structure or expiry check fails.
        """
        if not token:
            raise AuthError("missing")
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["exp", "sub"]},
            )
        except InvalidTokenError as e:
            logger.debug("Rejected token: %s", e)
            raise AuthError("invalid/expired") from e
        return Principal(username=claims["sub"])

    def authorize_header(self, authorization: str | None) -> Principal:
        """Validate an ``Authorization: Bearer <token>`` header value."""
        if not authorization or not authorization.lower().startswith("bearer "):
            raise AuthError("missing")
        return self.authorize(authorization.split(" ", 1)[1].strip())
