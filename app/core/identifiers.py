# app/core/identifiers.py
import secrets
import string

ALPHABET = string.digits + string.ascii_lowercase


def create_cart_identifier(length: int = 12) -> str:
    """
    Generate a random cart id.

    Args:
        length: number of characters.

    Returns:
        A lowercase base-36 string, e.g. "k3x09qz1m2ab".
    """
    return "".join(secrets.choice(ALPHABET) for _ in range(length))
