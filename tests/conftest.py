import os

# Configure the default app before any test module imports todo_api.main
os.environ.setdefault("PERSISTENCE_BACKEND", "memory")
os.environ.setdefault("SEED_USERNAME", "test-user")
os.environ.setdefault("SEED_PASSWORD", "test-password")
os.environ.setdefault("JWT_SECRET", "test-signing-secret-0123456789abcdef0123456789")
