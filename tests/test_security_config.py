"""Unit tests for settings parsing, password hashing, JWTs and the rate limiter."""

import unittest
from datetime import timedelta

import jwt
from pydantic import ValidationError

from couponx.core.config import Settings, parse_duration
from couponx.core.rate_limit import RateLimiter
from couponx.core.security import (
    REFRESH_TOKEN_TYPE,
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    hash_token,
    verify_password,
)


class TestParseDuration(unittest.TestCase):
    def test_units(self) -> None:
        self.assertEqual(parse_duration("1h"), timedelta(hours=1))
        self.assertEqual(parse_duration("7d"), timedelta(days=7))
        self.assertEqual(parse_duration("15m"), timedelta(minutes=15))
        self.assertEqual(parse_duration("30"), timedelta(seconds=30))
        self.assertEqual(parse_duration(90), timedelta(seconds=90))

    def test_invalid(self) -> None:
        with self.assertRaises(ValueError):
            parse_duration("one hour")


class TestSettings(unittest.TestCase):
    def test_expiry_strings_are_parsed(self) -> None:
        settings = Settings(DATABASE_URL="sqlite://", JWT_ACCESS_EXPIRY="30m", JWT_REFRESH_EXPIRY="14d")
        self.assertEqual(settings.JWT_ACCESS_EXPIRY, timedelta(minutes=30))
        self.assertEqual(settings.JWT_REFRESH_EXPIRY, timedelta(days=14))

    def test_prod_requires_long_secret(self) -> None:
        with self.assertRaises(ValidationError):
            Settings(APP_ENV="prod", DATABASE_URL="sqlite://", JWT_SECRET="short")
        settings = Settings(APP_ENV="prod", DATABASE_URL="sqlite://", JWT_SECRET="x" * 32)
        self.assertEqual(settings.APP_ENV, "prod")

    def test_rejects_unsupported_database(self) -> None:
        with self.assertRaises(ValidationError):
            Settings(DATABASE_URL="mongodb://localhost:27017/couponx")

    def test_cors_origins_split(self) -> None:
        settings = Settings(DATABASE_URL="sqlite://", CORS_ORIGIN="https://a.example, https://b.example,")
        self.assertEqual(settings.cors_origins, ["https://a.example", "https://b.example"])


class TestPasswords(unittest.TestCase):
    def test_hash_and_verify(self) -> None:
        hashed = hash_password("Passw0rd")
        self.assertNotEqual(hashed, "Passw0rd")
        self.assertTrue(verify_password("Passw0rd", hashed))
        self.assertFalse(verify_password("passw0rd", hashed))

    def test_missing_hash_is_false(self) -> None:
        self.assertFalse(verify_password("Passw0rd", None))

    def test_malformed_hash_is_false(self) -> None:
        self.assertFalse(verify_password("Passw0rd", "not-a-bcrypt-hash"))

    def test_token_hash_is_stable(self) -> None:
        self.assertEqual(hash_token("abc"), hash_token("abc"))
        self.assertEqual(len(hash_token("abc")), 64)


class TestJwt(unittest.TestCase):
    def test_access_token_claims(self) -> None:
        payload = decode_token(create_access_token(7, "admin", version=3))
        self.assertEqual(payload["sub"], "7")
        self.assertEqual(payload["role"], "admin")
        self.assertEqual(payload["ver"], 3)
        self.assertEqual(payload["type"], "access")

    def test_refresh_tokens_are_unique(self) -> None:
        first, _ = create_refresh_token(7)
        second, expires_at = create_refresh_token(7)
        self.assertNotEqual(first, second)
        self.assertEqual(decode_token(second, expected_type=REFRESH_TOKEN_TYPE)["sub"], "7")
        self.assertIsNotNone(expires_at.tzinfo)

    def test_wrong_type_is_rejected(self) -> None:
        refresh, _ = create_refresh_token(7)
        with self.assertRaises(jwt.InvalidTokenError):
            decode_token(refresh)

    def test_foreign_signature_is_rejected(self) -> None:
        forged = jwt.encode({"sub": "7", "type": "access", "exp": 9999999999}, "other-secret", algorithm="HS256")
        with self.assertRaises(jwt.InvalidTokenError):
            decode_token(forged)


class _Clock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestRateLimiter(unittest.TestCase):
    def test_fixed_window(self) -> None:
        clock = _Clock()
        limiter = RateLimiter("test", lambda s: 2, clock=clock)
        self.assertTrue(limiter.hit("1.2.3.4", 2, 60)[0])
        self.assertTrue(limiter.hit("1.2.3.4", 2, 60)[0])
        allowed, retry_after = limiter.hit("1.2.3.4", 2, 60)
        self.assertFalse(allowed)
        self.assertEqual(retry_after, 60)
        # Other clients have their own counter.
        self.assertTrue(limiter.hit("5.6.7.8", 2, 60)[0])

        clock.now += 61
        self.assertTrue(limiter.hit("1.2.3.4", 2, 60)[0])

    def test_reset(self) -> None:
        limiter = RateLimiter("test", lambda s: 1, clock=_Clock())
        limiter.hit("k", 1, 60)
        self.assertFalse(limiter.hit("k", 1, 60)[0])
        limiter.reset()
        self.assertTrue(limiter.hit("k", 1, 60)[0])

    def test_expired_windows_are_dropped(self) -> None:
        clock = _Clock()
        limiter = RateLimiter("test", lambda s: 5, clock=clock)
        for i in range(100):
            limiter.hit(f"10.0.0.{i}", 5, 60)
        self.assertEqual(limiter.tracked_clients(), 100)

        clock.now += 61
        limiter.hit("10.0.1.1", 5, 60)
        self.assertEqual(limiter.tracked_clients(), 1)

    def test_live_windows_survive_a_sweep(self) -> None:
        clock = _Clock()
        limiter = RateLimiter("test", lambda s: 1, clock=clock)
        limiter.hit("old", 1, 60)
        clock.now += 30
        limiter.hit("recent", 1, 60)
        clock.now += 31
        # "old" has expired, "recent" is still counting.
        limiter.hit("other", 1, 60)
        self.assertEqual(limiter.tracked_clients(), 2)
        self.assertFalse(limiter.hit("recent", 1, 60)[0])


if __name__ == "__main__":
    unittest.main()
