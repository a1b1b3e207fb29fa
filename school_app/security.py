from werkzeug.security import check_password_hash, generate_password_hash


def hash_password(plaintext: str, method: str = None) -> str:
    """Salted one-way hash in werkzeug's ``method$salt$hash`` format.

    A fresh random salt is drawn on every call, so hashing the same password
    twice gives two different stored values.
    """
    if method:
        return generate_password_hash(plaintext, method=method)
    return generate_password_hash(plaintext)


def verify_password(plaintext: str, stored_hash: str) -> bool:
    """Constant-time check of ``plaintext`` against a stored hash.

    Corrupted or unknown-format hashes fail closed instead of raising.
    """
    if not stored_hash or plaintext is None:
        return False
    try:
        return check_password_hash(stored_hash, plaintext)
    except (ValueError, TypeError):
        return False
