"""
Unit tests for identity token verification.
"""

import pytest
from jose import JWTError, jwt

from opsportal.config import settings
from opsportal.core.exceptions import AuthenticationError
from opsportal.core.security import decode_token, get_identity_subject
from tests.factories import make_token


@pytest.mark.unit
class TestIdentityTokens:

    def test_subject_of_valid_token(self):
        token = make_token("profile-123")
        assert get_identity_subject(token) == "profile-123"

    def test_decode_returns_payload(self):
        payload = decode_token(make_token("profile-123"))

        assert payload["sub"] == "profile-123"
        assert payload["type"] == "access"

    def test_expired_token(self):
        token = make_token("profile-123", expires_in=-60)

        with pytest.raises(JWTError):
            decode_token(token)
        with pytest.raises(AuthenticationError):
            get_identity_subject(token)

    def test_refresh_token_rejected(self):
        with pytest.raises(AuthenticationError):
            get_identity_subject(make_token("profile-123", token_type="refresh"))

    def test_wrong_signature(self):
        token = jwt.encode({"sub": "profile-123"}, "not-the-secret", algorithm=settings.algorithm)

        with pytest.raises(AuthenticationError):
            get_identity_subject(token)

    def test_missing_subject(self):
        token = jwt.encode({"type": "access"}, settings.secret_key, algorithm=settings.algorithm)

        with pytest.raises(AuthenticationError):
            get_identity_subject(token)
