# lucia_toolkit/utils/security.py
import secrets

# 128 bits of randomness for session ids, user ids and OAuth state values
RANDOM_TOKEN_BYTES = 16


def generate_random_token(nbytes: int = RANDOM_TOKEN_BYTES) -> str:
    """Generates a cryptographically secure, URL-safe base64 token."""
    return secrets.token_urlsafe(nbytes)


def generate_state() -> str:
    """Generates an opaque OAuth state value for CSRF protection."""
    return generate_random_token()


def generate_id() -> str:
    """Generates an opaque identifier for users and sessions."""
    return generate_random_token()


def constant_time_equals(left: str, right: str) -> bool:
    """Compares two secrets without leaking timing information."""
    return secrets.compare_digest(left.encode("utf-8"), right.encode("utf-8"))
