"""
Authentication utilities for the e-bike tracker.

Provides:
- Identity providers that resolve a request to a user
  (static credentials with signed bearer tokens, or an OAuth session)
- Password hashing helpers for APP_PASSWORD
- Secret key generation
"""

import hmac
import logging
import secrets
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from flask import session
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from werkzeug.security import check_password_hash, generate_password_hash

from ebike_tracker.config import Config
from ebike_tracker.exceptions import AuthenticationError, ConfigurationError

logger = logging.getLogger(__name__)

TOKEN_SALT = "ebike-auth-token"
STATIC_USER_ID = "1"
HASHED_PASSWORD_PREFIXES = ("pbkdf2:", "scrypt:")


@dataclass(frozen=True)
class Identity:
    """The user a request was resolved to."""

    user_id: str
    username: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        # Keep the wire shape of the login response: {id, username}
        data["id"] = data.pop("user_id")
        return data


def generate_secret_key(length: int = 32) -> str:
    """
    Generate a secure Flask SECRET_KEY.

    Args:
        length: Length in bytes (default: 32)

    Returns:
        Hex-encoded random secret key
    """
    return secrets.token_hex(length)


def hash_password(password: str, method: str = "pbkdf2:sha256") -> str:
    """
    Hash a password for APP_PASSWORD.

    Example:
        >>> hashed = hash_password("my-secret")
        >>> hashed.startswith("pbkdf2:sha256")
        True
    """
    return generate_password_hash(password, method=method)


def verify_password(password: str, configured: str) -> bool:
    """
    Check a password against the configured value.

    The configured value may be a werkzeug hash or plain text.
    """
    if not configured or password is None:
        return False
    if configured.startswith(HASHED_PASSWORD_PREFIXES):
        return check_password_hash(configured, password)
    return hmac.compare_digest(password.encode(), configured.encode())


def extract_bearer_token(request) -> Optional[str]:
    """Return the token from an 'Authorization: Bearer <token>' header."""
    header = request.headers.get("Authorization", "")
    parts = header.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1]
    return None


class IdentityProvider:
    """Resolves an inbound request to an Identity."""

    name = "base"
    supports_login = False

    def resolve(self, request) -> Identity:
        """
        Resolve the request's user.

        Raises:
            AuthenticationError: 401 when credentials are missing, 403 when invalid
        """
        raise NotImplementedError

    def login(self, username: str, password: str) -> Dict[str, Any]:
        raise AuthenticationError("Login is not supported", status_code=404, strategy=self.name)

    def logout(self) -> None:
        """Forget any server-side login state."""
        session.pop("user", None)


class StaticCredentialProvider(IdentityProvider):
    """
    Single configured user, authenticated by a signed bearer token.

    Tokens are issued by login() and carry {id, username}; they are
    signed with SECRET_KEY and expire after max_age seconds.
    """

    name = "static"
    supports_login = True

    def __init__(self, secret_key: str, username: str, password: str, max_age: int = 2592000):
        self.serializer = URLSafeTimedSerializer(secret_key, salt=TOKEN_SALT)
        self.username = username
        self.password = password
        self.max_age = max_age

    def issue_token(self, identity: Identity) -> str:
        return self.serializer.dumps(identity.to_dict())

    def login(self, username: str, password: str) -> Dict[str, Any]:
        """
        Check credentials and issue a token.

        Returns:
            {"token": ..., "user": {"id": ..., "username": ...}}
        """
        if not self.password:
            logger.warning("Login attempted but APP_PASSWORD is not configured")
            raise AuthenticationError("Invalid username or password", status_code=401, strategy=self.name)

        username_ok = hmac.compare_digest((username or "").encode(), (self.username or "").encode())
        password_ok = verify_password(password, self.password)
        if not (username_ok and password_ok):
            logger.warning(f"Failed login for username {username!r}")
            raise AuthenticationError("Invalid username or password", status_code=401, strategy=self.name)

        identity = Identity(user_id=STATIC_USER_ID, username=self.username)
        logger.info(f"User {self.username} logged in")
        return {"token": self.issue_token(identity), "user": identity.to_dict()}

    def resolve(self, request) -> Identity:
        token = extract_bearer_token(request)
        if token is None:
            raise AuthenticationError("Missing bearer token", status_code=401, strategy=self.name)

        try:
            payload = self.serializer.loads(token, max_age=self.max_age)
        except SignatureExpired:
            raise AuthenticationError("Token expired", status_code=403, strategy=self.name)
        except BadSignature:
            raise AuthenticationError("Invalid token", status_code=403, strategy=self.name)

        if not isinstance(payload, dict) or not payload.get("id"):
            raise AuthenticationError("Invalid token", status_code=403, strategy=self.name)

        return Identity(user_id=str(payload["id"]), username=payload.get("username"))


class OAuthSessionProvider(IdentityProvider):
    """
    User placed in the Flask session by an external OAuth flow.

    The OAuth callback is expected to store session["user"] = {"id": ..., "username": ...}.
    """

    name = "oauth"

    def resolve(self, request) -> Identity:
        user = session.get("user")
        if not user:
            raise AuthenticationError("Not logged in", status_code=401, strategy=self.name)
        if not isinstance(user, dict) or not user.get("id"):
            raise AuthenticationError("Invalid session", status_code=403, strategy=self.name)
        return Identity(user_id=str(user["id"]), username=user.get("username") or user.get("name"))


def get_identity_provider(config=Config) -> IdentityProvider:
    """
    Build the identity provider named by AUTH_STRATEGY.

    Raises:
        ConfigurationError: If the strategy is unknown
    """
    if isinstance(config, dict):
        def getter(key):
            return config.get(key, getattr(Config, key))
    else:
        def getter(key):
            return getattr(config, key)

    strategy = (getter("AUTH_STRATEGY") or "").lower()
    if strategy == "static":
        return StaticCredentialProvider(
            secret_key=getter("SECRET_KEY"),
            username=getter("APP_USERNAME"),
            password=getter("APP_PASSWORD"),
            max_age=int(getter("TOKEN_MAX_AGE_SECONDS")),
        )
    if strategy == "oauth":
        return OAuthSessionProvider()

    raise ConfigurationError(f"Unknown auth strategy: {strategy!r}", config_key="AUTH_STRATEGY")
