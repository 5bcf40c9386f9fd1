from typing import Any, Dict, List, Optional
from urllib.parse import quote, urljoin

import requests

from ..errors import NetworkTransient, SignageError
from ..services.logger import ServiceLogger


class ContentApiClient:
    """HTTP клиент экрана к серверу синхронизации"""

    def __init__(self, base_url: str, timeout: float = 10.0,
                 session: Optional[requests.Session] = None,
                 logger: Optional[ServiceLogger] = None):
        self.base_url = base_url.rstrip('/') + '/'
        self.timeout = timeout
        self.session = session or requests.Session()
        self.logger = logger or ServiceLogger('ContentApiClient')

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None):
        url = urljoin(self.base_url, path.lstrip('/'))
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except (requests.ConnectionError, requests.Timeout,
                requests.exceptions.ChunkedEncodingError, requests.exceptions.ContentDecodingError) as e:
            raise NetworkTransient(f"Request to {url} failed: {e}") from e
        except requests.RequestException as e:
            raise SignageError(f"Request to {url} failed: {e}") from e

        if response.status_code >= 500:
            raise NetworkTransient(f"Server error {response.status_code} for {url}")
        if response.status_code >= 400:
            raise SignageError(f"Request rejected with {response.status_code} for {url}")
        try:
            return response.json()
        except ValueError as e:
            raise NetworkTransient(f"Invalid JSON from {url}") from e

    def _get_object(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        data = self._get(path, params)
        if not isinstance(data, dict):
            raise NetworkTransient(f"Expected JSON object from {path}, got {type(data).__name__}")
        return data

    def get_stream(self, screen_id: str, index: int = 0) -> Dict[str, Any]:
        return self._get_object(f"api/stream/{quote(screen_id, safe='')}", {'index': index})

    def get_content_status(self, screen_id: str) -> Dict[str, Any]:
        return self._get_object(f"api/content-status/{quote(screen_id, safe='')}")

    def get_change_events(self, since: int = 0) -> List[Dict[str, Any]]:
        events = self._get("api/change-events", {'since': since})
        return events if isinstance(events, list) else []

    def media_url(self, url: str) -> str:
        """Абсолютный URL медиафайла для конвейера декодирования"""
        return urljoin(self.base_url, quote(url.lstrip('/'), safe='/'))

    def close(self):
        self.session.close()
