"""Object storage (S3) request signing and a small upload/fetch client."""

import logging
import posixpath
from datetime import datetime
from typing import Dict, Optional

import requests

from .canonical import SigningRequest, uri_encode
from .credentials import Credentials
from .exceptions import EncodingError
from .hashing import sha256_hex
from .keys import SigningKeyCache
from .prepared import PreparedRequest, send
from .schemas import ProcessedResult, decode
from .sigv4 import SigV4Signer, Service

logger = logging.getLogger(__name__)

RESULTS_PREFIX = 'results/'


class ObjectStorageAdapter:
    """
    Knows how to address and sign requests for one bucket.

    Objects are addressed virtual-hosted style, ``https://<bucket>.s3.<region>.amazonaws.com/<key>``,
    unless ``endpoint`` names another host serving the bucket.
    """

    def __init__(
            self,
            credentials: Credentials,
            bucket: str,
            endpoint: Optional[str] = None,
            scheme: str = 'https',
            key_cache: Optional[SigningKeyCache] = None
    ):
        if not bucket:
            raise EncodingError("Bucket name must not be empty")
        self.credentials = credentials
        self.bucket = bucket
        self.host = endpoint or f"{bucket}.s3.{credentials.region}.amazonaws.com"
        self.scheme = scheme
        self._signer = SigV4Signer(
            credentials.access_key,
            credentials.secret_key,
            credentials.region,
            Service.S3,
            credentials.session_token,
            key_cache,
        )

    @staticmethod
    def object_uri(key: str) -> str:
        if not key:
            raise EncodingError("Object key must not be empty")
        return '/' + uri_encode(key, encode_slash=False)

    def object_url(self, key: str) -> str:
        """
        URL to send for ``key``.

        ``.`` and ``..`` segments are escaped so HTTP clients don't collapse them;
        requests unescapes them again after normalizing, so the path on the wire
        equals ``object_uri(key)``.
        """
        segments = [
            segment.replace('.', '%2E') if segment in ('.', '..') else segment
            for segment in self.object_uri(key).split('/')
        ]
        return f"{self.scheme}://{self.host}{'/'.join(segments)}"

    def _prepare(
            self,
            method: str,
            key: str,
            body: bytes,
            extra_headers: Optional[Dict[str, str]],
            timestamp: Optional[datetime]
    ) -> PreparedRequest:
        uri = self.object_uri(key)
        payload_hash = sha256_hex(body)
        headers = dict(extra_headers or {})
        headers['x-amz-content-sha256'] = payload_hash

        result = self._signer.sign(
            SigningRequest(method, uri, dict(headers, host=self.host), body),
            timestamp=timestamp,
            payload_hash=payload_hash,
        )
        headers.update(result.as_headers())
        return PreparedRequest(method, self.object_url(key), headers, body)

    def sign_put(
            self,
            key: str,
            data: bytes,
            content_type: Optional[str] = None,
            extra_headers: Optional[Dict[str, str]] = None,
            timestamp: Optional[datetime] = None
    ) -> PreparedRequest:
        headers = dict(extra_headers or {})
        if content_type:
            headers['Content-Type'] = content_type
        return self._prepare('PUT', key, data, headers, timestamp)

    def sign_get(
            self,
            key: str,
            extra_headers: Optional[Dict[str, str]] = None,
            timestamp: Optional[datetime] = None
    ) -> PreparedRequest:
        return self._prepare('GET', key, b'', extra_headers, timestamp)


def result_key_for(image_key: str) -> str:
    """``captures/a.jpg`` -> ``results/captures/a.json``"""
    root, _ = posixpath.splitext(image_key)
    return f"{RESULTS_PREFIX}{root}.json"


class ObjectStorageClient:
    def __init__(
            self,
            adapter: ObjectStorageAdapter,
            session: Optional[requests.Session] = None,
            timeout: Optional[float] = 30.0
    ):
        self.adapter = adapter
        self._session = session or requests.Session()
        self._timeout = timeout

    def upload_object(self, key: str, data: bytes, content_type: str = 'image/jpeg') -> str:
        prepared = self.adapter.sign_put(key, data, content_type=content_type)
        send(self._session, prepared, self._timeout)
        logger.info("Uploaded %d bytes to s3://%s/%s", len(data), self.adapter.bucket, key)
        return key

    def fetch_object(self, key: str) -> bytes:
        prepared = self.adapter.sign_get(key)
        return send(self._session, prepared, self._timeout).content

    def fetch_processed_result(self, image_key: str) -> ProcessedResult:
        return decode(ProcessedResult, self.fetch_object(result_key_for(image_key)))

    def close(self) -> None:
        self._session.close()
