import bcrypt

BCRYPT_MAX_BYTES = 72


def _truncate_to_72(password: str) -> bytes:
    """Encode and cut to bcrypt's 72-byte limit without splitting a UTF-8 character."""
    pw_bytes = (password or "").encode("utf-8")
    if len(pw_bytes) <= BCRYPT_MAX_BYTES:
        return pw_bytes
    return pw_bytes[:BCRYPT_MAX_BYTES].decode("utf-8", errors="ignore").encode("utf-8")


def hash_password(password: str) -> str:
    return bcrypt.hashpw(_truncate_to_72(password), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed: str | None) -> bool:
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(_truncate_to_72(password), hashed.encode("utf-8"))
    except ValueError:
        # Not a bcrypt digest
        return False
