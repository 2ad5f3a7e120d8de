"""Credentials and environment-backed settings."""

from dataclasses import dataclass
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError
from .keys import validate_access_key, validate_region


@dataclass(frozen=True)
class Credentials:
    """Access key pair plus the region every request is scoped to."""

    access_key: str
    secret_key: str
    region: str
    session_token: Optional[str] = None

    def __post_init__(self) -> None:
        validate_access_key(self.access_key)
        if not self.secret_key:
            raise ConfigurationError("Secret key must not be empty")
        validate_region(self.region)

    def __repr__(self) -> str:
        return f"Credentials(access_key={self.access_key!r}, region={self.region!r})"


class SigningSettings(BaseSettings):
    """Settings read from ``LUPASIG_*`` environment variables or a ``.env`` file."""

    model_config = SettingsConfigDict(
        env_prefix="LUPASIG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    access_key: str = Field(..., description="AWS access key id")
    secret_key: str = Field(..., description="AWS secret access key")
    region: str = Field(default="us-east-1", description="AWS region")
    session_token: Optional[str] = Field(default=None, description="Temporary session token")
    bucket: Optional[str] = Field(default=None, description="Bucket for captured images")
    collection_id: Optional[str] = Field(default=None, description="Face collection id")
    s3_endpoint: Optional[str] = Field(
        default=None,
        description="Host serving the bucket, e.g. examplebucket.s3.amazonaws.com",
    )

    def to_credentials(self) -> Credentials:
        return Credentials(
            access_key=self.access_key,
            secret_key=self.secret_key,
            region=self.region,
            session_token=self.session_token,
        )
