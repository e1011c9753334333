from passlib.hash import pbkdf2_sha256

MIN_PASSWORD_LENGTH = 6


def hash_password(plain: str) -> str:
    return pbkdf2_sha256.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    if not isinstance(plain, str) or not plain or not hashed:
        return False
    return pbkdf2_sha256.verify(plain, hashed)
