import logging
from functools import lru_cache
from typing import Any, Dict, List, Optional, Tuple

import requests

from config import settings

logger = logging.getLogger(__name__)


class UpstreamError(Exception):
    """The upstream backend could not be reached."""


class LaravelClient:
    """Thin passthrough to the external news backend.

    Responses are handed back untouched; callers relay status and body.
    """

    def __init__(self, base_url: str, timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.api_url = f"{base_url.rstrip('/')}/api"
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()

    def forward(
        self,
        method: str,
        path: str,
        token: str,
        params: Optional[List[Tuple[str, str]]] = None,
        json: Any = None,
        data: Optional[List[Tuple[str, str]]] = None,
        files: Optional[List[Tuple[str, Tuple]]] = None,
    ) -> requests.Response:
        url = f"{self.api_url}/{path.lstrip('/')}"
        headers: Dict[str, str] = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        }
        # requests sets the multipart boundary itself
        if json is not None:
            headers["Content-Type"] = "application/json"

        logger.info(f"Proxying {method} {url}")
        try:
            response = self.session.request(
                method,
                url,
                headers=headers,
                params=params,
                json=json,
                data=data,
                files=files,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            logger.error(f"Upstream timeout after {self.timeout}s: {method} {url}")
            raise UpstreamError(f"Request timeout: {e}")
        except requests.exceptions.RequestException as e:
            logger.error(f"Upstream request failed: {method} {url}: {e}")
            raise UpstreamError(f"Request failed: {e}")

        logger.info(f"Upstream answered {response.status_code} for {method} {url}")
        return response


@lru_cache()
def get_laravel_client() -> LaravelClient:
    return LaravelClient(settings.LARAVEL_BASE_URL, timeout=settings.API_TIMEOUT)
