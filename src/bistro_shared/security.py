"""
Password hashing helpers.
"""

from werkzeug.security import check_password_hash, generate_password_hash


def hash_password(password: str) -> str:
    """Salted hash suitable for the ``staff.password_hash`` column."""
    return generate_password_hash(password)


def verify_password(password: str | None, stored_hash: str | None) -> bool:
    if not password or not stored_hash:
        return False
    return check_password_hash(stored_hash, password)
