import secrets
from typing import Callable

# Uppercase letters and digits without look-alikes (0/O, 1/I/L)
DOCTOR_ID_ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"
DOCTOR_ID_PREFIX = "DR"
DOCTOR_ID_LENGTH = 6


class IdentifierExhausted(Exception):
    pass


def generate_code(length: int = DOCTOR_ID_LENGTH) -> str:
    """Return a short random code such as ``DR7KQ2MX``."""
    body = "".join(secrets.choice(DOCTOR_ID_ALPHABET) for _ in range(length))
    return f"{DOCTOR_ID_PREFIX}{body}"


def generate_unique_code(exists: Callable[[str], bool], max_attempts: int = 5) -> str:
    """Draw codes until ``exists`` reports one as free."""
    for _ in range(max_attempts):
        code = generate_code()
        if not exists(code):
            return code
    raise IdentifierExhausted(f"No free identifier after {max_attempts} attempts")
