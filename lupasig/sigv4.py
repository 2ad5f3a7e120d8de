"""
AWS Signature Version 4 request signing.

Pipeline for every request, all driven by a single captured instant:

1. hash the payload
2. build the canonical request (see ``lupasig.canonical``)
3. build the string-to-sign from the timestamp, credential scope and the hash of
   the canonical request
4. derive the signing key for the scope and HMAC the string-to-sign with it
5. assemble the ``Authorization`` header
"""

import logging
import re
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional, Union
from urllib.parse import parse_qsl, urlsplit

from .canonical import (
    SigningRequest,
    build_canonical_request,
    headers_to_sign,
    normalize_path,
    signed_headers,
    uri_encode,
)
from .exceptions import ConfigurationError, EncodingError
from .hashing import hmac_sha256, sha256_hex
from .keys import (
    CredentialScope,
    SigningKeyCache,
    derive_signing_key,
    validate_access_key,
    validate_region,
    validate_service,
)

logger = logging.getLogger(__name__)

Headers = Dict[str, str]

ALGORITHM = 'AWS4-HMAC-SHA256'
AMZ_DATE_FORMAT = '%Y%m%dT%H%M%SZ'
DATE_STAMP_FORMAT = '%Y%m%d'

_DEFAULT_PORTS = {'http': 80, 'https': 443}

_AUTH_HEADER_RE = re.compile(
    r'^AWS4-HMAC-SHA256\s+'
    r'Credential=(?P<access_key>[^/]+)/(?P<scope>[^,]+),\s*'
    r'SignedHeaders=(?P<signed_headers>[^,]+),\s*'
    r'Signature=(?P<signature>[0-9a-f]{64})$'
)

# Headers the signer owns; stale copies from a previous attempt are replaced.
_SIGNER_HEADERS = frozenset({'authorization', 'x-amz-date', 'x-amz-security-token'})


class Service(str, Enum):
    S3 = 's3'
    REKOGNITION = 'rekognition'
    IAM = 'iam'
    STS = 'sts'


@dataclass(frozen=True)
class SignatureResult:
    authorization: str
    amz_date: str
    signed_headers: str
    signature: str
    canonical_request: str
    string_to_sign: str
    security_token: Optional[str] = None

    def as_headers(self) -> Headers:
        """Headers to merge into the outgoing request."""
        headers = {
            'Authorization': self.authorization,
            'X-Amz-Date': self.amz_date,
        }
        if self.security_token:
            headers['X-Amz-Security-Token'] = self.security_token
        return headers


@dataclass(frozen=True)
class ParsedAuthorization:
    access_key: str
    scope: CredentialScope
    signed_headers: str
    signature: str


def to_utc(timestamp: Optional[datetime] = None) -> datetime:
    """Current UTC instant, or ``timestamp`` in UTC (naive values are taken as UTC)."""
    if timestamp is None:
        return datetime.now(timezone.utc)
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(timezone.utc)


def string_to_sign(amz_date: str, scope: CredentialScope, canonical_request: str) -> str:
    sts = '\n'.join([
        ALGORITHM,
        amz_date,
        str(scope),
        sha256_hex(canonical_request),
    ])
    logger.debug("StringToSign:\n%s", sts)
    return sts


def build_authorization_header(
        access_key: str,
        scope: CredentialScope,
        signed_headers_value: str,
        signature: str
) -> str:
    return (
        f"{ALGORITHM} Credential={access_key}/{scope}, "
        f"SignedHeaders={signed_headers_value}, "
        f"Signature={signature}"
    )


def parse_authorization_header(value: str) -> Optional[ParsedAuthorization]:
    """Split a SigV4 ``Authorization`` header value; None if it isn't one."""
    match = _AUTH_HEADER_RE.match(value.strip())
    if not match:
        return None
    return ParsedAuthorization(
        access_key=match.group('access_key'),
        scope=CredentialScope.parse(match.group('scope')),
        signed_headers=match.group('signed_headers'),
        signature=match.group('signature'),
    )


def host_from_url(url: str) -> str:
    """Value for the ``host`` header: lower-case, no userinfo, no default port."""
    parts = urlsplit(url)
    host = parts.hostname
    if not host:
        raise EncodingError(f"URL has no host: {url!r}")
    if ':' in host:
        host = f'[{host}]'
    if parts.port is not None and parts.port != _DEFAULT_PORTS.get(parts.scheme):
        host = f'{host}:{parts.port}'
    return host


class SigV4Signer:
    """
    Signs requests for one access key, region and service.

    Instances hold no per-request state and can be shared between threads.
    """

    def __init__(
            self,
            access_key: str,
            secret_key: str,
            region: str,
            service: Union[str, Service],
            token: Optional[str] = None,
            key_cache: Optional[SigningKeyCache] = None
    ):
        if not secret_key:
            raise ConfigurationError("Secret key must not be empty")
        self.access_key = validate_access_key(access_key)
        self.region = validate_region(region)
        self.service = validate_service(service.value if isinstance(service, Service) else service)
        self._secret_key = secret_key
        self._token = token
        self._key_cache = key_cache

    def __repr__(self) -> str:
        return f"SigV4Signer(access_key={self.access_key!r}, region={self.region!r}, service={self.service!r})"

    def scope(self, timestamp: datetime) -> CredentialScope:
        return CredentialScope(to_utc(timestamp).strftime(DATE_STAMP_FORMAT), self.region, self.service)

    def signing_key(self, scope: CredentialScope) -> bytes:
        if self._key_cache is not None:
            return self._key_cache.get(self._secret_key, scope)
        return derive_signing_key(self._secret_key, scope)

    def sign(
            self,
            request: SigningRequest,
            timestamp: Optional[datetime] = None,
            payload_hash: Optional[str] = None
    ) -> SignatureResult:
        """
        Sign ``request`` at ``timestamp`` (now, if omitted).

        The request must carry a ``host`` header. ``x-amz-date`` and, when a session
        token is configured, ``x-amz-security-token`` are added before signing.
        """
        now = to_utc(timestamp)
        amz_date = now.strftime(AMZ_DATE_FORMAT)
        scope = self.scope(now)

        headers = {
            name: value for name, value in request.headers.items()
            if name.lower() not in _SIGNER_HEADERS
        }
        if not any(name.lower() == 'host' for name in headers):
            raise EncodingError("Request has no host header")
        headers['x-amz-date'] = amz_date
        if self._token:
            headers['x-amz-security-token'] = self._token

        if payload_hash is None:
            payload_hash = sha256_hex(request.body)

        canonical_request = build_canonical_request(replace(request, headers=headers), payload_hash)
        sts = string_to_sign(amz_date, scope, canonical_request)
        signature = hmac_sha256(self.signing_key(scope), sts).hex()
        signed = signed_headers(headers_to_sign(headers))

        return SignatureResult(
            authorization=build_authorization_header(self.access_key, scope, signed, signature),
            amz_date=amz_date,
            signed_headers=signed,
            signature=signature,
            canonical_request=canonical_request,
            string_to_sign=sts,
            security_token=self._token,
        )

    def create_headers(
            self,
            method: str,
            url: str,
            headers: Optional[Headers] = None,
            body: Optional[Union[str, bytes]] = None
    ) -> Headers:
        """
        Sign a request described by its URL and return the headers to send.

        Paths are normalized for every service except S3, which signs the path
        exactly as it appears in the URL. For S3 the payload hash is also sent as
        ``X-Amz-Content-SHA256``.
        """
        if isinstance(body, str):
            body = body.encode('utf-8')
        body = body or b''

        parts = urlsplit(url)
        is_s3 = self.service == Service.S3.value
        if is_s3:
            path = parts.path or '/'
        else:
            path = uri_encode(normalize_path(parts.path), encode_slash=False)

        result_headers = {
            name: value for name, value in (headers or {}).items()
            if name.lower() not in _SIGNER_HEADERS
        }
        to_sign = dict(result_headers)
        if not any(name.lower() == 'host' for name in to_sign):
            to_sign['host'] = host_from_url(url)

        payload_hash = sha256_hex(body)
        if is_s3:
            for name in [n for n in result_headers if n.lower() == 'x-amz-content-sha256']:
                del result_headers[name]
                del to_sign[name]
            result_headers['X-Amz-Content-SHA256'] = payload_hash
            to_sign['x-amz-content-sha256'] = payload_hash

        request = SigningRequest(
            method=method,
            uri=path,
            headers=to_sign,
            body=body,
            query=parse_qsl(parts.query, keep_blank_values=True),
        )
        result = self.sign(request, payload_hash=payload_hash)
        result_headers.update(result.as_headers())
        return result_headers
