import secrets
import string

ALPHABET = string.ascii_letters + string.digits

def generate_random_code(length: int = 6) -> str:
    return "".join(secrets.choice(ALPHABET) for _ in range(length))
