# utils/passwords.py
import secrets
from typing import Optional

import bcrypt

import config

# no 0/O, 1/l/I
UPPER = "ABCDEFGHJKLMNPQRSTUVWXYZ"
LOWER = "abcdefghijkmnpqrstuvwxyz"
DIGITS = "23456789"
ALPHABET = UPPER + LOWER + DIGITS


def generate_password(length: Optional[int] = None) -> str:
    """Random alphanumeric password with at least one upper, one lower and one digit."""
    length = max(3, length or config.PASSWORD_LENGTH)
    chars = [secrets.choice(UPPER), secrets.choice(LOWER), secrets.choice(DIGITS)]
    chars += [secrets.choice(ALPHABET) for _ in range(length - 3)]
    secrets.SystemRandom().shuffle(chars)
    return "".join(chars)


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=config.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: Optional[str], password_hash: Optional[str]) -> bool:
    if not password or not password_hash:
        return False
    raw = password.encode("utf-8")
    # bcrypt only takes 72 bytes; generated passwords are far shorter
    if len(raw) > 72:
        return False
    return bcrypt.checkpw(raw, password_hash.encode("utf-8"))
