"""
Canonical request construction for AWS Signature Version 4.

The canonical request is the newline-joined normalization of a request that gets
hashed into the string-to-sign:

    <Method>
    <CanonicalURI>
    <CanonicalQueryString>
    <CanonicalHeaders>
    <SignedHeaders>
    <HashedPayload>

Headers are always emitted in alphabetical order, and the same order is used for
the signed headers list.
"""

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple

from .exceptions import EncodingError

logger = logging.getLogger(__name__)

Headers = Mapping[str, str]
QueryParams = Sequence[Tuple[str, str]]

_UNRESERVED = frozenset(
    'ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_.~'
)

# Never part of the signature; proxies and clients are free to rewrite them.
EXCLUDED_HEADERS = frozenset({
    'authorization',
    'expect',
    'transfer-encoding',
    'user-agent',
    'x-amzn-trace-id',
})


@dataclass(frozen=True)
class SigningRequest:
    """Normalized description of one outgoing request."""

    method: str
    uri: str
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b''
    query: QueryParams = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, 'method', self.method.upper())
        object.__setattr__(self, 'headers', MappingProxyType(dict(self.headers)))
        object.__setattr__(self, 'query', tuple(self.query))
        if not self.uri.startswith('/'):
            raise EncodingError(f"Canonical URI must be absolute, got {self.uri!r}")


def uri_encode(value: str, encode_slash: bool = True) -> str:
    """
    Percent-encode ``value`` the way SigV4 expects.

    Unreserved characters stay as-is, everything else becomes %XX over its
    UTF-8 bytes with uppercase hex. ``/`` is kept when ``encode_slash`` is False.
    """
    try:
        raw = value.encode('utf-8')
    except UnicodeEncodeError as e:
        raise EncodingError(f"Cannot encode {value!r} as UTF-8: {e.reason}") from e

    result = []
    for byte in raw:
        ch = chr(byte)
        if ch in _UNRESERVED or (ch == '/' and not encode_slash):
            result.append(ch)
        else:
            result.append(f'%{byte:02X}')
    return ''.join(result)


def normalize_path(path: str) -> str:
    """Remove dot segments and repeated slashes (RFC 3986, section 5.2.4)."""
    if not path:
        return '/'

    segments: List[str] = []
    for segment in path.split('/'):
        if not segment or segment == '.':
            continue
        if segment == '..':
            if segments:
                segments.pop()
        else:
            segments.append(segment)

    normalized = '/' + '/'.join(segments)
    if path.endswith('/') and segments:
        normalized += '/'
    return normalized


def canonical_query_string(params: Iterable[Tuple[str, str]]) -> str:
    pairs = sorted(
        (uri_encode(str(key)), uri_encode(str(value))) for key, value in params
    )
    return '&'.join(f'{key}={value}' for key, value in pairs)


def _trim(value: str) -> str:
    return ' '.join(str(value).split())


def headers_to_sign(headers: Headers) -> Dict[str, str]:
    """
    Lower-case, trim and merge the headers that take part in the signature.

    Repeated names (differing only in case) are comma-joined in the order given.
    """
    merged: Dict[str, List[str]] = {}
    for name, value in headers.items():
        lname = name.strip().lower()
        if lname in EXCLUDED_HEADERS:
            continue
        merged.setdefault(lname, []).append(_trim(value))
    return {name: ','.join(values) for name, values in merged.items()}


def canonical_headers(headers: Headers) -> str:
    lines = []
    for name in sorted(headers):
        line = f'{name}:{headers[name]}\n'
        try:
            line.encode('utf-8')
        except UnicodeEncodeError as e:
            raise EncodingError(f"Header {name!r} cannot be encoded as UTF-8") from e
        lines.append(line)
    return ''.join(lines)


def signed_headers(headers: Headers) -> str:
    return ';'.join(sorted(headers))


def build_canonical_request(request: SigningRequest, payload_hash: str) -> str:
    signable = headers_to_sign(request.headers)
    canonical = '\n'.join([
        request.method,
        request.uri,
        canonical_query_string(request.query),
        canonical_headers(signable),
        signed_headers(signable),
        payload_hash,
    ])
    logger.debug("CanonicalRequest:\n%s", canonical)
    return canonical
