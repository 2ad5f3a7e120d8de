import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

import requests

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PreparedRequest:
    """A signed request ready to be handed to an HTTP client."""

    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b''


def send(
        session: requests.Session,
        prepared: PreparedRequest,
        timeout: Optional[float] = None
) -> requests.Response:
    """Dispatch ``prepared`` and raise ``requests.HTTPError`` on a non-2xx answer."""
    logger.debug("%s %s", prepared.method, prepared.url)
    response = session.request(
        prepared.method,
        prepared.url,
        headers=prepared.headers,
        data=prepared.body or None,
        timeout=timeout,
    )
    response.raise_for_status()
    return response
