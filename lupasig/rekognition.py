"""Face recognition (Rekognition) request signing and JSON API client."""

import base64
import json
import logging
from datetime import datetime
from typing import Any, Dict, Optional, Sequence

import requests

from .canonical import SigningRequest
from .credentials import Credentials
from .exceptions import ConfigurationError
from .keys import SigningKeyCache
from .prepared import PreparedRequest, send
from .schemas import IndexFacesResponse, SearchFacesByImageResponse, SearchFacesResponse, decode
from .sigv4 import SigV4Signer, Service

logger = logging.getLogger(__name__)

CONTENT_TYPE = 'application/x-amz-json-1.1'
TARGET_PREFIX = 'RekognitionService.'


class RecognitionAdapter:
    """Signs JSON-RPC style ``POST /`` calls to the regional recognition endpoint."""

    def __init__(
            self,
            credentials: Credentials,
            scheme: str = 'https',
            key_cache: Optional[SigningKeyCache] = None
    ):
        self.credentials = credentials
        self.host = f"{Service.REKOGNITION.value}.{credentials.region}.amazonaws.com"
        self.scheme = scheme
        self._signer = SigV4Signer(
            credentials.access_key,
            credentials.secret_key,
            credentials.region,
            Service.REKOGNITION,
            credentials.session_token,
            key_cache,
        )

    @property
    def url(self) -> str:
        return f"{self.scheme}://{self.host}/"

    @staticmethod
    def target(operation: str) -> str:
        if not operation:
            raise ConfigurationError("Operation name must not be empty")
        if operation.startswith(TARGET_PREFIX):
            return operation
        return TARGET_PREFIX + operation

    def sign_operation(
            self,
            operation: str,
            payload: bytes,
            timestamp: Optional[datetime] = None
    ) -> PreparedRequest:
        headers = {
            'Content-Type': CONTENT_TYPE,
            'X-Amz-Target': self.target(operation),
        }
        result = self._signer.sign(
            SigningRequest('POST', '/', dict(headers, host=self.host), payload),
            timestamp=timestamp,
        )
        headers.update(result.as_headers())
        return PreparedRequest('POST', self.url, headers, payload)


class RecognitionClient:
    def __init__(
            self,
            adapter: RecognitionAdapter,
            session: Optional[requests.Session] = None,
            timeout: Optional[float] = 30.0
    ):
        self.adapter = adapter
        self._session = session or requests.Session()
        self._timeout = timeout

    def _call(self, operation: str, body: Dict[str, Any]) -> bytes:
        payload = json.dumps(body).encode('utf-8')
        prepared = self.adapter.sign_operation(operation, payload)
        return send(self._session, prepared, self._timeout).content

    def index_faces(
            self,
            collection_id: str,
            image_bytes: bytes,
            external_image_id: str,
            max_faces: int = 100,
            quality_filter: str = 'AUTO',
            detection_attributes: Sequence[str] = ('ALL',)
    ) -> IndexFacesResponse:
        body = {
            'CollectionId': collection_id,
            'Image': {'Bytes': base64.b64encode(image_bytes).decode('ascii')},
            'ExternalImageId': external_image_id,
            'MaxFaces': max_faces,
            'QualityFilter': quality_filter,
            'DetectionAttributes': list(detection_attributes),
        }
        response = decode(IndexFacesResponse, self._call('IndexFaces', body))
        logger.debug("Indexed %d face(s) from %s", len(response.face_records), external_image_id)
        return response

    def search_faces(
            self,
            collection_id: str,
            face_id: str,
            max_faces: int = 10,
            face_match_threshold: float = 80.0
    ) -> SearchFacesResponse:
        body = {
            'CollectionId': collection_id,
            'FaceId': face_id,
            'MaxFaces': max_faces,
            'FaceMatchThreshold': face_match_threshold,
        }
        return decode(SearchFacesResponse, self._call('SearchFaces', body))

    def search_faces_by_image(
            self,
            collection_id: str,
            image_bytes: bytes,
            max_faces: int = 10,
            face_match_threshold: float = 80.0
    ) -> SearchFacesByImageResponse:
        body = {
            'CollectionId': collection_id,
            'Image': {'Bytes': base64.b64encode(image_bytes).decode('ascii')},
            'MaxFaces': max_faces,
            'FaceMatchThreshold': face_match_threshold,
        }
        return decode(SearchFacesByImageResponse, self._call('SearchFacesByImage', body))

    def close(self) -> None:
        self._session.close()
