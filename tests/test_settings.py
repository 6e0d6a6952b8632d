import pytest

from todo_api.settings import get_settings


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "PERSISTENCE_BACKEND",
        "SQLITE_DB_PATH",
        "CORS_ALLOW_ORIGINS",
        "JWT_SECRET",
        "JWT_ALGORITHM",
        "ACCESS_TOKEN_TTL_MINUTES",
        "NONCE_TTL_SECONDS",
        "SEED_USERNAME",
        "SEED_PASSWORD",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    settings = get_settings()
    assert settings.persistence_backend == "memory"
    assert settings.sqlite_db_path == "./data/todos.db"
    assert settings.cors_allow_origins == ["*"]
    assert settings.jwt_algorithm == "HS256"
    assert len(settings.jwt_secret) >= 32
    assert settings.access_token_ttl_minutes == 60
    assert settings.nonce_ttl_seconds == 300
    assert settings.seed_username is None and settings.seed_password is None
    assert settings.log_level == "INFO"


def test_overrides(clean_env):
    clean_env.setenv("PERSISTENCE_BACKEND", "SQLite")
    clean_env.setenv("CORS_ALLOW_ORIGINS", "http://a.test, http://b.test,")
    clean_env.setenv("ACCESS_TOKEN_TTL_MINUTES", "15")
    clean_env.setenv("NONCE_TTL_SECONDS", "30")
    clean_env.setenv("SEED_USERNAME", "admin")
    clean_env.setenv("SEED_PASSWORD", "pw")
    clean_env.setenv("JWT_SECRET", "configured")
    settings = get_settings()
    assert settings.persistence_backend == "sqlite"
    assert settings.cors_allow_origins == ["http://a.test", "http://b.test"]
    assert settings.access_token_ttl_minutes == 15
    assert settings.nonce_ttl_seconds == 30
    assert (settings.seed_username, settings.seed_password) == ("admin", "pw")
    assert settings.jwt_secret == "configured"


def test_invalid_values_fall_back(clean_env):
    clean_env.setenv("PERSISTENCE_BACKEND", "postgres")
    clean_env.setenv("ACCESS_TOKEN_TTL_MINUTES", "soon")
    clean_env.setenv("NONCE_TTL_SECONDS", "-5")
    settings = get_settings()
    assert settings.persistence_backend == "memory"
    assert settings.access_token_ttl_minutes == 60
    assert settings.nonce_ttl_seconds == 300


def test_seed_user_needs_both_values(clean_env):
    clean_env.setenv("SEED_USERNAME", "admin")
    settings = get_settings()
    assert settings.seed_username is None


def test_rejects_other_algorithms(clean_env):
    clean_env.setenv("JWT_ALGORITHM", "RS256")
    with pytest.raises(ValueError):
        get_settings()
