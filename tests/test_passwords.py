"""Unit tests for auth/passwords.py -- bcrypt hashing and comparison.

Covers:
- hashes are salted: same password, two different hashes, both verify
- wrong password is a plain False
- malformed stored hash raises MalformedHashError, never False
- compare() resolves asynchronously to the same answer as verify_password()
"""

from __future__ import annotations

import asyncio

import pytest

from auth.passwords import MalformedHashError, compare, hash_password, verify_password


def test_hash_is_not_plaintext():
    hashed = hash_password("secret1")
    assert hashed != "secret1"
    assert hashed.startswith("$2")


def test_same_password_hashes_differently_and_both_verify():
    first = hash_password("secret1")
    second = hash_password("secret1")
    assert first != second
    assert asyncio.run(compare("secret1", first)) is True
    assert asyncio.run(compare("secret1", second)) is True


def test_wrong_password_is_false():
    hashed = hash_password("secret1")
    assert verify_password("wrong", hashed) is False
    assert asyncio.run(compare("wrong", hashed)) is False


def test_empty_password_does_not_match():
    assert verify_password("", hash_password("secret1")) is False


def test_malformed_hash_raises():
    with pytest.raises(MalformedHashError):
        verify_password("secret1", "not-a-bcrypt-hash")


def test_malformed_hash_raises_through_compare():
    with pytest.raises(MalformedHashError):
        asyncio.run(compare("secret1", "not-a-bcrypt-hash"))


def test_long_password_round_trips():
    long_password = "a1" * 60  # 120 bytes, past bcrypt's 72-byte window
    hashed = hash_password(long_password)
    assert verify_password(long_password, hashed) is True
