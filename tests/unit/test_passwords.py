"""Tests for password hashing and validation."""

import pytest

from plank.auth.password import (
    PasswordStrengthError,
    check_needs_rehash,
    hash_password,
    validate_password_strength,
    verify_password,
)


class TestPasswordHashing:
    def test_hash_and_verify(self):
        password = "SecureP@ss1"
        hashed = hash_password(password)
        assert verify_password(password, hashed) is True

    def test_wrong_password_rejected(self):
        hashed = hash_password("CorrectP@ss1")
        assert verify_password("WrongP@ss1", hashed) is False

    def test_missing_hash_rejected(self):
        assert verify_password("anything1", None) is False

    def test_garbage_hash_rejected(self):
        assert verify_password("anything1", "not-an-argon2-hash") is False

    def test_fresh_hash_needs_no_rehash(self):
        assert check_needs_rehash(hash_password("SecureP@ss1")) is False


class TestPasswordStrength:
    def test_valid_password(self):
        validate_password_strength("plank2026")  # Should not raise

    def test_empty_password_rejected(self):
        with pytest.raises(PasswordStrengthError):
            validate_password_strength("")

    def test_whitespace_password_rejected(self):
        with pytest.raises(PasswordStrengthError):
            validate_password_strength("          ")

    def test_short_password_rejected(self):
        with pytest.raises(PasswordStrengthError):
            validate_password_strength("Short1")

    def test_no_digit_rejected(self):
        with pytest.raises(PasswordStrengthError):
            validate_password_strength("NoDigitHere")

    def test_no_letter_rejected(self):
        with pytest.raises(PasswordStrengthError):
            validate_password_strength("1234567890")

    def test_too_long_password_rejected(self):
        with pytest.raises(PasswordStrengthError):
            validate_password_strength("a" * 128 + "1")

    def test_strength_error_is_value_error(self):
        assert issubclass(PasswordStrengthError, ValueError)
