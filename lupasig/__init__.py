"""
AWS Signature Version 4 - Standalone Implementation

This package signs object storage and face recognition requests with AWS
Signature Version 4 without depending on botocore, and provides small clients
that send the signed requests through ``requests``.
"""

import logging

from .canonical import SigningRequest
from .credentials import Credentials, SigningSettings
from .exceptions import ConfigurationError, EncodingError, SchemaError, SigningError
from .hashing import EMPTY_SHA256_HASH, UNSIGNED_PAYLOAD, hmac_sha256, sha256_hex
from .keys import CredentialScope, SigningKeyCache, derive_signing_key
from .rekognition import RecognitionAdapter, RecognitionClient
from .s3 import ObjectStorageAdapter, ObjectStorageClient
from .sigv4 import Headers, Service, SignatureResult, SigV4Signer, parse_authorization_header

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"
__all__ = [
    "SigV4Signer",
    "SignatureResult",
    "SigningRequest",
    "Service",
    "Headers",
    "UNSIGNED_PAYLOAD",
    "EMPTY_SHA256_HASH",
    "sha256_hex",
    "hmac_sha256",
    "CredentialScope",
    "SigningKeyCache",
    "derive_signing_key",
    "parse_authorization_header",
    "Credentials",
    "SigningSettings",
    "ObjectStorageAdapter",
    "ObjectStorageClient",
    "RecognitionAdapter",
    "RecognitionClient",
    "SigningError",
    "EncodingError",
    "ConfigurationError",
    "SchemaError",
]
