"""
Unit Tests for Security Module
Tests for: password hashing, JWT tokens, default passwords
"""
import pytest
from datetime import timedelta
from types import SimpleNamespace
from jose import jwt

from feedback_app.core.config import settings
from feedback_app.core.exceptions import InvalidTokenError
from feedback_app.core.security import (
    create_access_token,
    create_user_token,
    decode_token,
    default_password_for_role,
    get_password_hash,
    hash_if_plain,
    looks_hashed,
    verify_password,
)
from feedback_app.models.user import UserRole


class TestPasswordHashing:
    """Test password hashing functions"""

    def test_hash_differs_from_password(self):
        hashed = get_password_hash("testpassword123")

        assert hashed != "testpassword123"
        assert looks_hashed(hashed)

    def test_hash_different_each_time(self):
        # Bcrypt generates different salts
        assert get_password_hash("same") != get_password_hash("same")

    def test_verify_password(self):
        hashed = get_password_hash("testpassword123")

        assert verify_password("testpassword123", hashed) is True
        assert verify_password("wrongpassword", hashed) is False

    def test_verify_against_non_hash(self):
        assert verify_password("plain", "plain") is False

    def test_long_password_truncated(self):
        # Bcrypt has 72 byte limit
        hashed = get_password_hash("a" * 100)

        assert verify_password("a" * 72, hashed) is True

    def test_hash_if_plain_keeps_existing_hash(self):
        hashed = get_password_hash("secret1")

        assert hash_if_plain(hashed) == hashed
        assert verify_password("secret1", hash_if_plain("secret1"))


class TestDefaultPasswords:

    @pytest.mark.parametrize("role,expected", [
        (UserRole.STUDENT, "student@123"),
        (UserRole.FACULTY, "faculty@123"),
        (UserRole.HOD, "hod@123"),
        (UserRole.DEAN, "dean@123"),
        ("student", "student@123"),
        (UserRole.ADMIN, "default@123"),
    ])
    def test_default_password_for_role(self, role, expected):
        assert default_password_for_role(role) == expected


class TestTokens:

    def test_round_trip(self):
        token = create_access_token({"sub": "abc"})

        payload = decode_token(token)

        assert payload["sub"] == "abc"
        assert payload["type"] == "access"

    def test_user_token_claims(self):
        user = SimpleNamespace(id="1b4e28ba-2fa1-11d2-883f-0016d3cca427", role=UserRole.HOD)

        payload = decode_token(create_user_token(user))

        assert payload["sub"] == user.id
        assert payload["id"] == user.id
        assert payload["role"] == "hod"

    def test_expired_token(self):
        token = create_access_token({"sub": "abc"}, expires_delta=timedelta(seconds=-1))

        with pytest.raises(InvalidTokenError):
            decode_token(token)

    def test_wrong_secret(self):
        token = jwt.encode({"sub": "abc", "type": "access"}, "another-secret", algorithm=settings.JWT_ALGORITHM)

        with pytest.raises(InvalidTokenError):
            decode_token(token)

    def test_wrong_token_type(self):
        token = jwt.encode({"sub": "abc", "type": "refresh"}, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)

        with pytest.raises(InvalidTokenError):
            decode_token(token)

    def test_default_expiry_is_thirty_days(self):
        assert settings.ACCESS_TOKEN_EXPIRE_MINUTES == 30 * 24 * 60
