import hashlib
import hmac
from typing import Union

EMPTY_SHA256_HASH = 'e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855'
UNSIGNED_PAYLOAD = 'UNSIGNED-PAYLOAD'


def _to_bytes(data: Union[str, bytes]) -> bytes:
    if isinstance(data, str):
        return data.encode('utf-8')
    return bytes(data)


def sha256_hex(data: Union[str, bytes]) -> str:
    """Lowercase hex SHA-256 digest of ``data`` (strings are UTF-8 encoded)."""
    return hashlib.sha256(_to_bytes(data)).hexdigest()


def hmac_sha256(key: bytes, message: Union[str, bytes]) -> bytes:
    """Raw 32-byte HMAC-SHA256 of ``message`` under ``key``."""
    return hmac.new(key, _to_bytes(message), hashlib.sha256).digest()
