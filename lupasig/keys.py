import re
import threading
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .exceptions import ConfigurationError, EncodingError
from .hashing import hmac_sha256

SCOPE_TERMINATOR = 'aws4_request'

_DATE_STAMP_RE = re.compile(r'[0-9]{8}')
_NAME_RE = re.compile(r'[a-z0-9][a-z0-9-]*')
_ACCESS_KEY_RE = re.compile(r'[^\s/,]+')


def validate_region(region: str) -> str:
    if not region or not _NAME_RE.fullmatch(region):
        raise ConfigurationError(f"Invalid region: {region!r}")
    return region


def validate_service(service: str) -> str:
    if not service or not _NAME_RE.fullmatch(service):
        raise ConfigurationError(f"Invalid service name: {service!r}")
    return service


def validate_access_key(access_key: str) -> str:
    if not access_key or not _ACCESS_KEY_RE.fullmatch(access_key):
        raise ConfigurationError(f"Invalid access key: {access_key!r}")
    return access_key


@dataclass(frozen=True)
class CredentialScope:
    """The ``date/region/service/aws4_request`` tuple a signing key is bound to."""

    date_stamp: str
    region: str
    service: str

    def __post_init__(self) -> None:
        if not _DATE_STAMP_RE.fullmatch(self.date_stamp):
            raise ConfigurationError(f"Date stamp must be YYYYMMDD, got {self.date_stamp!r}")
        validate_region(self.region)
        validate_service(self.service)

    def __str__(self) -> str:
        return f"{self.date_stamp}/{self.region}/{self.service}/{SCOPE_TERMINATOR}"

    @classmethod
    def parse(cls, value: str) -> 'CredentialScope':
        parts = value.split('/')
        if len(parts) != 4 or parts[3] != SCOPE_TERMINATOR:
            raise EncodingError(f"Malformed credential scope: {value!r}")
        try:
            return cls(parts[0], parts[1], parts[2])
        except ConfigurationError as e:
            raise EncodingError(f"Malformed credential scope: {value!r}") from e


def derive_signing_key(secret_key: str, scope: CredentialScope) -> bytes:
    k_date = hmac_sha256(f"AWS4{secret_key}".encode('utf-8'), scope.date_stamp)
    k_region = hmac_sha256(k_date, scope.region)
    k_service = hmac_sha256(k_region, scope.service)
    return hmac_sha256(k_service, SCOPE_TERMINATOR)


class SigningKeyCache:
    """
    Keeps derived signing keys for the current UTC day.

    A key only depends on the secret and the credential scope, so it can be reused
    for every request signed on the same day. Asking for a newer date stamp drops
    everything cached for older days.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._date_stamp: Optional[str] = None
        self._keys: Dict[Tuple[str, str, str], bytes] = {}

    def __len__(self) -> int:
        return len(self._keys)

    def get(self, secret_key: str, scope: CredentialScope) -> bytes:
        cache_key = (secret_key, scope.region, scope.service)
        with self._lock:
            if self._date_stamp is None or scope.date_stamp > self._date_stamp:
                self._keys.clear()
                self._date_stamp = scope.date_stamp
            elif scope.date_stamp < self._date_stamp:
                # Late request for a previous day, don't pollute the cache.
                return derive_signing_key(secret_key, scope)

            key = self._keys.get(cache_key)
            if key is None:
                key = derive_signing_key(secret_key, scope)
                self._keys[cache_key] = key
            return key

    def clear(self) -> None:
        with self._lock:
            self._keys.clear()
            self._date_stamp = None
