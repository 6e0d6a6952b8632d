import threading
from datetime import datetime, timedelta, timezone

import jwt
import pytest

from todo_api import auth as todo_auth
from todo_api.auth import Authenticator, parse_authorization_header
from todo_api.errors import NotFound, Unauthorized
from todo_api.nonces import NonceIssuer
from todo_api.security import hash_password, verify_password
from todo_api.tokens import TokenStore
from todo_api.users import InMemoryUserDirectory

SECRET = "unit-test-signing-secret-0123456789abcdef"


class FakeClock:
    def __init__(self, start=None):
        self.now = start or datetime.now(timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def users():
    directory = InMemoryUserDirectory()
    directory.add_user("alice", "wonderland")
    return directory


@pytest.fixture
def nonces():
    return NonceIssuer(ttl_seconds=300)


@pytest.fixture
def tokens():
    return TokenStore(secret=SECRET, ttl_minutes=5)


@pytest.fixture
def authenticator(users, nonces, tokens):
    return Authenticator(users, nonces, tokens)


class TestPasswords:
    def test_hash_verifies(self):
        encoded = hash_password("hunter2")
        assert encoded.startswith("pbkdf2_sha256$")
        assert "hunter2" not in encoded
        assert verify_password("hunter2", encoded)
        assert not verify_password("hunter3", encoded)

    def test_salted(self):
        assert hash_password("same") != hash_password("same")

    def test_malformed_hash_never_verifies(self):
        assert not verify_password("x", "plain-text")
        assert not verify_password("x", "md5$1$salt$abc")


class TestUserDirectory:
    def test_find_by_username(self, users):
        user = users.find_by_username("alice")
        assert user["username"] == "alice"
        assert user["id"] == 1
        assert verify_password("wonderland", user["password_hash"])

    def test_unknown_user(self, users):
        with pytest.raises(NotFound) as exc:
            users.find_by_username("bob")
        assert exc.value.message == "User not found!"

    def test_lookup_is_case_sensitive(self, users):
        with pytest.raises(NotFound):
            users.find_by_username("Alice")

    def test_duplicate_username_rejected(self, users):
        with pytest.raises(ValueError):
            users.add_user("alice", "other")


class TestNonceIssuer:
    def test_issue_and_consume_once(self, nonces):
        nonce = nonces.issue()
        assert nonce["consumed"] is False
        assert nonces.pending_count() == 1
        assert nonces.consume(nonce["value"]) is True
        assert nonces.consume(nonce["value"]) is False
        assert nonces.is_consumed(nonce["value"])
        assert nonces.pending_count() == 0

    def test_unknown_or_empty(self, nonces):
        assert nonces.consume("made-up") is False
        assert nonces.consume("") is False

    def test_expired_nonce_rejected(self):
        clock = FakeClock()
        issuer = NonceIssuer(ttl_seconds=60, clock=clock)
        nonce = issuer.issue()
        clock.advance(seconds=61)
        assert issuer.consume(nonce["value"]) is False

    def test_expired_nonces_pruned_on_issue(self):
        clock = FakeClock()
        issuer = NonceIssuer(ttl_seconds=60, clock=clock)
        old = issuer.issue()
        clock.advance(seconds=120)
        issuer.issue()
        assert issuer.pending_count() == 1
        assert not issuer.is_consumed(old["value"])

    def test_concurrent_consume_has_single_winner(self, nonces):
        nonce = nonces.issue()["value"]
        barrier = threading.Barrier(16)
        results = []
        lock = threading.Lock()

        def attempt():
            barrier.wait()
            ok = nonces.consume(nonce)
            with lock:
                results.append(ok)

        threads = [threading.Thread(target=attempt) for _ in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert results.count(True) == 1


class TestTokenStore:
    def test_issue_and_resolve(self, users, tokens):
        user = users.find_by_username("alice")
        token = tokens.issue(user)
        resolved = tokens.resolve(token["value"])
        assert resolved["subject"] == user["id"]
        assert resolved["username"] == "alice"
        assert resolved["jti"] == token["jti"]

        claims = jwt.decode(token["value"], SECRET, algorithms=["HS256"])
        assert claims["sub"] == str(user["id"])

    def test_expired_token_rejected(self, users):
        clock = FakeClock(datetime.now(timezone.utc) - timedelta(hours=2))
        store = TokenStore(secret=SECRET, ttl_minutes=60, clock=clock)
        token = store.issue(users.find_by_username("alice"))
        with pytest.raises(Unauthorized) as exc:
            store.resolve(token["value"])
        assert exc.value.message == "Access token expired"

    def test_token_from_other_store_rejected(self, users, tokens):
        other = TokenStore(secret=SECRET, ttl_minutes=5)
        token = other.issue(users.find_by_username("alice"))
        with pytest.raises(Unauthorized):
            tokens.resolve(token["value"])

    def test_wrong_signature_rejected(self, users, tokens):
        token = tokens.issue(users.find_by_username("alice"))
        claims = jwt.decode(token["value"], SECRET, algorithms=["HS256"])
        tampered = jwt.encode(claims, "another-secret-0123456789abcdef0123456789", algorithm="HS256")
        with pytest.raises(Unauthorized):
            tokens.resolve(tampered)

    def test_only_hs256(self):
        with pytest.raises(ValueError):
            TokenStore(secret=SECRET, algorithm="RS256")


class TestAuthenticator:
    def test_sign_in(self, authenticator, nonces, tokens):
        nonce = nonces.issue()["value"]
        token = authenticator.sign_in("alice", "wonderland", nonce)
        assert tokens.resolve(token["value"])["username"] == "alice"

    def test_nonce_replay(self, authenticator, nonces):
        nonce = nonces.issue()["value"]
        authenticator.sign_in("alice", "wonderland", nonce)
        with pytest.raises(Unauthorized):
            authenticator.sign_in("alice", "wonderland", nonce)

    @pytest.mark.parametrize("username,password", [("alice", "wrong"), ("mallory", "wonderland")])
    def test_bad_credentials_spend_nonce(self, authenticator, nonces, username, password):
        nonce = nonces.issue()["value"]
        with pytest.raises(Unauthorized) as exc:
            authenticator.sign_in(username, password, nonce)
        assert exc.value.message == "Invalid credentials or nonce"
        assert nonces.is_consumed(nonce)

    @pytest.mark.parametrize("username,password", [("alice", "wrong"), ("mallory", "wonderland")])
    def test_password_hash_checked_for_every_failure(self, authenticator, nonces, monkeypatch, username, password):
        calls = []

        def recording_verify(candidate, encoded):
            calls.append((candidate, encoded))
            return verify_password(candidate, encoded)

        monkeypatch.setattr(todo_auth, "verify_password", recording_verify)
        with pytest.raises(Unauthorized):
            authenticator.sign_in(username, password, nonces.issue()["value"])
        assert len(calls) == 1
        candidate, encoded = calls[0]
        assert candidate == password
        assert encoded.startswith("pbkdf2_sha256$260000$")

    def test_unissued_nonce(self, authenticator):
        with pytest.raises(Unauthorized):
            authenticator.sign_in("alice", "wonderland", "forged-nonce")


class TestAuthorizationHeader:
    @pytest.mark.parametrize(
        "header,expected",
        [("abc.def.ghi", "abc.def.ghi"), ("Bearer abc.def.ghi", "abc.def.ghi"), ("bearer  tok ", "tok")],
    )
    def test_parses(self, header, expected):
        assert parse_authorization_header(header) == expected

    @pytest.mark.parametrize("header", [None, "", "   ", "Bearer", "Bearer   "])
    def test_rejects(self, header):
        with pytest.raises(Unauthorized):
            parse_authorization_header(header)
