import os, base64, hashlib
from cryptography.hazmat.primitives import constant_time

from errors import RandomSourceError

PBKDF2_ALG = "sha256"
PBKDF2_ITERS = 100_000
SALT_COMPONENT_LEN = 32
KEY_LEN = 32  # SHA-256 output size

def hex_upper(b: bytes) -> str:
    return base64.b16encode(b).decode("ascii")

def new_salt_component() -> str:
    """32 random bytes from the OS CSPRNG as 64 uppercase hex chars."""
    try:
        raw = os.urandom(SALT_COMPONENT_LEN)
    except (OSError, NotImplementedError) as e:
        raise RandomSourceError(f"Secure random source unavailable: {e}") from e
    return hex_upper(raw)

def compose_salt(salt_component: str, identifier: str) -> bytes:
    """Full salt = salt component || identifier (UTF-8, in that order)."""
    return salt_component.encode("utf-8") + identifier.encode("utf-8")

def derive_credential(salt_component: str, identifier: str, password: str) -> str:
    """PBKDF2-HMAC-SHA256 over the password with the composed salt, as uppercase hex."""
    salt = compose_salt(salt_component, identifier)
    key = hashlib.pbkdf2_hmac(PBKDF2_ALG, password.encode("utf-8"), salt, PBKDF2_ITERS, KEY_LEN)
    return hex_upper(key)

def credentials_match(derived_hex: str, stored_hex: str) -> bool:
    """Constant-time comparison of a derived hash with a stored one.

    The stored value is upper-cased first; hashes written by other tools may be lowercase.
    """
    return constant_time.bytes_eq(derived_hex.encode("ascii"), stored_hex.strip().upper().encode("ascii", "replace"))
