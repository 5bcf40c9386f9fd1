import base64
import json
import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple

from ..errors import ContentStoreError
from .content_store import ContentStore
from .logger import ServiceLogger


class ContentFingerprintService:
    """
    Сервис вычисления отпечатка контента экрана.
    Результат кэшируется на cache_ttl секунд для каждого screen_id.
    """

    def __init__(self, store: ContentStore, cache_ttl: float = 60,
                 logger: Optional[ServiceLogger] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.store = store
        self.cache_ttl = cache_ttl
        self.logger = logger or ServiceLogger('ContentFingerprintService')
        self._clock = clock
        self._cache: Dict[str, Tuple[float, Dict[str, Any]]] = {}
        self._lock = threading.Lock()

    def get_content_status(self, screen_id: str) -> Dict[str, Any]:
        """
        Статус контента экрана с учетом кэша.
        Ошибки хранилища не пробрасываются: возвращается hasContent=False.
        """
        now = self._clock()
        with self._lock:
            cached = self._cache.get(screen_id)
            if cached and now - cached[0] < self.cache_ttl:
                return cached[1]

        try:
            status = self.compute(screen_id)
        except ContentStoreError as e:
            self.logger.warning("Content store unavailable for fingerprint", {
                'screen_id': screen_id,
                'error': str(e)
            })
            status = self._empty_status()

        with self._lock:
            self._cache[screen_id] = (now, status)
        return status

    def compute(self, screen_id: str) -> Dict[str, Any]:
        """
        Вычисление статуса без кэша
        :raises ContentStoreError: при недоступности хранилища или папки
        """
        playlist = self.store.get_assigned_playlist(screen_id)
        if playlist is None:
            self.logger.debug("No playlist assigned", {'screen_id': screen_id})
            return self._empty_status()

        items = self.store.resolve_items(playlist)
        entries = sorted(
            (item.fingerprint_entry() for item in items),
            key=lambda e: (e['name'], e['url'], e['size'], e['modified'])
        )

        state = {
            'playlistName': playlist.name,
            'folder': playlist.folder,
            'sourceMode': playlist.source_mode,
            'items': entries,
            'updatedAt': playlist.updated_at
        }
        serialized = json.dumps(state, sort_keys=True, ensure_ascii=False, separators=(',', ':'))
        content_hash = base64.b64encode(serialized.encode('utf-8')).decode('ascii')
        last_modified = max([e['modified'] for e in entries] + [playlist.updated_at])

        return {
            'hasContent': bool(entries),
            'contentHash': content_hash,
            'lastModified': last_modified,
            'itemCount': len(entries),
            'playlistName': playlist.name,
            'sourceMode': playlist.source_mode,
            'files': [
                {'name': item.name, 'url': item.url, 'type': item.type, 'size': item.size}
                for item in items
            ]
        }

    def invalidate(self, screen_id: Optional[str] = None):
        """Сброс кэша для экрана или полностью"""
        with self._lock:
            if screen_id is None:
                self._cache.clear()
            else:
                self._cache.pop(screen_id, None)

    @staticmethod
    def _empty_status() -> Dict[str, Any]:
        return {
            'hasContent': False,
            'contentHash': None,
            'lastModified': 0,
            'itemCount': 0,
            'playlistName': None,
            'sourceMode': None,
            'files': []
        }
