"""
Tests for authentication utilities.

Tests identity resolution including:
- Password hashing and verification
- Static-credential login and signed bearer tokens
- OAuth session identities
- Provider selection from configuration
"""

import pytest
from flask import Flask, request, session

from ebike_tracker.exceptions import AuthenticationError, ConfigurationError
from ebike_tracker.utils.auth_utils import (
    Identity,
    OAuthSessionProvider,
    StaticCredentialProvider,
    extract_bearer_token,
    generate_secret_key,
    get_identity_provider,
    hash_password,
    verify_password,
)


@pytest.fixture
def flask_app():
    app = Flask(__name__)
    app.config["SECRET_KEY"] = "test-secret-key"
    return app


@pytest.fixture
def provider():
    return StaticCredentialProvider(
        secret_key="test-secret-key",
        username="rider",
        password="correct-horse",
        max_age=3600,
    )


class TestPasswords:
    """Tests for password helpers."""

    def test_generate_secret_key(self):
        """Secret keys are 64 hex chars and unique."""
        keys = {generate_secret_key() for _ in range(5)}

        assert len(keys) == 5
        assert all(len(key) == 64 for key in keys)

    def test_plain_password(self):
        assert verify_password("correct-horse", "correct-horse") is True
        assert verify_password("wrong", "correct-horse") is False

    def test_hashed_password(self):
        """Werkzeug hashes are checked as hashes."""
        hashed = hash_password("correct-horse")

        assert hashed.startswith("pbkdf2:sha256")
        assert verify_password("correct-horse", hashed) is True
        assert verify_password(hashed, hashed) is False

    def test_unconfigured_password_never_matches(self):
        assert verify_password("", "") is False
        assert verify_password(None, "secret") is False


class TestBearerToken:
    """Tests for Authorization header parsing."""

    def test_extracts_token(self, flask_app):
        with flask_app.test_request_context(headers={"Authorization": "Bearer abc.def"}):
            assert extract_bearer_token(request) == "abc.def"

    def test_missing_header(self, flask_app):
        with flask_app.test_request_context():
            assert extract_bearer_token(request) is None

    def test_wrong_scheme(self, flask_app):
        with flask_app.test_request_context(headers={"Authorization": "Basic cmlkZXI6cHc="}):
            assert extract_bearer_token(request) is None


class TestStaticCredentialProvider:
    """Tests for static-credential login and tokens."""

    def test_login_returns_token_and_user(self, provider):
        result = provider.login("rider", "correct-horse")

        assert result["user"] == {"id": "1", "username": "rider"}
        assert result["token"]

    def test_login_wrong_password(self, provider):
        with pytest.raises(AuthenticationError) as exc_info:
            provider.login("rider", "nope")

        assert exc_info.value.status_code == 401

    def test_login_wrong_username(self, provider):
        with pytest.raises(AuthenticationError):
            provider.login("someone", "correct-horse")

    def test_login_rejected_without_configured_password(self):
        provider = StaticCredentialProvider("key", "rider", "")

        with pytest.raises(AuthenticationError):
            provider.login("rider", "")

    def test_token_resolves_to_identity(self, provider, flask_app):
        token = provider.login("rider", "correct-horse")["token"]

        with flask_app.test_request_context(headers={"Authorization": f"Bearer {token}"}):
            identity = provider.resolve(request)

        assert identity == Identity(user_id="1", username="rider")

    def test_missing_token_is_401(self, provider, flask_app):
        with flask_app.test_request_context():
            with pytest.raises(AuthenticationError) as exc_info:
                provider.resolve(request)

        assert exc_info.value.status_code == 401

    def test_tampered_token_is_403(self, provider, flask_app):
        token = provider.login("rider", "correct-horse")["token"]

        with flask_app.test_request_context(headers={"Authorization": f"Bearer {token}x"}):
            with pytest.raises(AuthenticationError) as exc_info:
                provider.resolve(request)

        assert exc_info.value.status_code == 403

    def test_token_from_other_secret_is_403(self, provider, flask_app):
        other = StaticCredentialProvider("other-secret", "rider", "correct-horse")
        token = other.login("rider", "correct-horse")["token"]

        with flask_app.test_request_context(headers={"Authorization": f"Bearer {token}"}):
            with pytest.raises(AuthenticationError) as exc_info:
                provider.resolve(request)

        assert exc_info.value.status_code == 403

    def test_expired_token_is_403(self, flask_app):
        provider = StaticCredentialProvider("test-secret-key", "rider", "correct-horse", max_age=-1)
        token = provider.issue_token(Identity(user_id="1", username="rider"))

        with flask_app.test_request_context(headers={"Authorization": f"Bearer {token}"}):
            with pytest.raises(AuthenticationError) as exc_info:
                provider.resolve(request)

        assert exc_info.value.status_code == 403
        assert "expired" in exc_info.value.message.lower()


class TestOAuthSessionProvider:
    """Tests for identities placed in the session by an OAuth flow."""

    def test_session_user_resolves(self, flask_app):
        provider = OAuthSessionProvider()

        with flask_app.test_request_context():
            session["user"] = {"id": 4242, "name": "Rider"}
            identity = provider.resolve(request)

        assert identity == Identity(user_id="4242", username="Rider")

    def test_no_session_is_401(self, flask_app):
        provider = OAuthSessionProvider()

        with flask_app.test_request_context():
            with pytest.raises(AuthenticationError) as exc_info:
                provider.resolve(request)

        assert exc_info.value.status_code == 401

    def test_session_without_id_is_403(self, flask_app):
        provider = OAuthSessionProvider()

        with flask_app.test_request_context():
            session["user"] = {"name": "Rider"}
            with pytest.raises(AuthenticationError) as exc_info:
                provider.resolve(request)

        assert exc_info.value.status_code == 403

    def test_login_not_supported(self):
        provider = OAuthSessionProvider()

        assert provider.supports_login is False
        with pytest.raises(AuthenticationError) as exc_info:
            provider.login("rider", "pw")

        assert exc_info.value.status_code == 404

    def test_logout_clears_session(self, flask_app):
        provider = OAuthSessionProvider()

        with flask_app.test_request_context():
            session["user"] = {"id": "1"}
            provider.logout()
            assert "user" not in session


class TestGetIdentityProvider:
    """Tests for provider selection."""

    def test_static_strategy(self):
        provider = get_identity_provider({
            "AUTH_STRATEGY": "static",
            "SECRET_KEY": "k",
            "APP_USERNAME": "rider",
            "APP_PASSWORD": "pw",
            "TOKEN_MAX_AGE_SECONDS": 60,
        })

        assert isinstance(provider, StaticCredentialProvider)
        assert provider.max_age == 60

    def test_oauth_strategy(self):
        assert isinstance(get_identity_provider({"AUTH_STRATEGY": "OAuth"}), OAuthSessionProvider)

    def test_unknown_strategy(self):
        with pytest.raises(ConfigurationError) as exc_info:
            get_identity_provider({"AUTH_STRATEGY": "ldap"})

        assert exc_info.value.config_key == "AUTH_STRATEGY"
