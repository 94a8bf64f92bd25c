"""Security utilities: session tokens and password hashing."""

import secrets

import bcrypt

from crm.core.config import settings


# =============================================================================
# Session / invite tokens
# =============================================================================

def generate_token(nbytes: int | None = None) -> str:
    """Cryptographically random hex token (32 bytes -> 64 hex chars by default)."""
    return secrets.token_hex(nbytes or settings.SESSION_TOKEN_BYTES)


# =============================================================================
# Passwords
# =============================================================================

def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=10)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False
