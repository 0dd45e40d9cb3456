"""Tests for bearer token helpers."""

from lanwake.auth.token import generate_secret, make_token, verify_token


class TestGenerateSecret:
    def test_returns_64_char_hex(self) -> None:
        s = generate_secret()
        assert len(s) == 64
        assert all(c in "0123456789abcdef" for c in s)

    def test_each_call_unique(self) -> None:
        assert generate_secret() != generate_secret()


class TestToken:
    def test_roundtrip_returns_principal(self) -> None:
        secret = generate_secret()
        token = make_token(secret, "alice")
        assert verify_token(token, secret) == "alice"

    def test_default_principal(self) -> None:
        secret = generate_secret()
        assert verify_token(make_token(secret), secret) == "admin"

    def test_wrong_secret_fails(self) -> None:
        token = make_token(generate_secret())
        assert verify_token(token, generate_secret()) is None

    def test_tampered_token_fails(self) -> None:
        secret = generate_secret()
        token = make_token(secret)
        assert verify_token(token + "x", secret) is None

    def test_expired_token_fails(self) -> None:
        secret = generate_secret()
        token = make_token(secret)
        # max_age=-1 → always expired (0 fails due to 1-second timestamp granularity)
        assert verify_token(token, secret, max_age=-1) is None

    def test_no_max_age_never_expires(self) -> None:
        secret = generate_secret()
        assert verify_token(make_token(secret), secret, max_age=None) == "admin"

    def test_empty_token_fails(self) -> None:
        assert verify_token("", generate_secret()) is None

    def test_empty_secret_fails(self) -> None:
        assert verify_token(make_token(generate_secret()), "") is None
