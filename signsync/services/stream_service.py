from typing import Any, Dict, Optional

from ..errors import ContentStoreError
from ..models import ResolvedItem
from .content_store import ContentStore
from .logger import ServiceLogger


class StreamService:
    def __init__(self, store: ContentStore, image_duration: int = 10, video_duration: int = 30,
                 looping: bool = True, logger: Optional[ServiceLogger] = None):
        self.store = store
        self.image_duration = image_duration
        self.video_duration = video_duration
        self.looping = looping
        self.logger = logger or ServiceLogger('StreamService')

    def get_stream(self, screen_id: str, index: int = 0) -> Dict[str, Any]:
        """
        Текущий и следующий элемент плейлиста экрана
        :param screen_id: Идентификатор экрана
        :param index: Запрошенный индекс (по модулю числа элементов при зацикливании)
        """
        try:
            playlist = self.store.get_assigned_playlist(screen_id)
            items = self.store.resolve_items(playlist) if playlist else []
        except ContentStoreError as e:
            self.logger.warning("Content store unavailable for stream", {
                'screen_id': screen_id,
                'error': str(e)
            })
            playlist, items = None, []

        if not items:
            return {
                'screenId': screen_id,
                'hasContent': False,
                'totalItems': 0,
                'currentIndex': 0,
                'message': 'No content available for this screen'
            }

        total = len(items)
        if self.looping:
            current = index % total
        else:
            current = min(max(index, 0), total - 1)

        response = {
            'screenId': screen_id,
            'hasContent': True,
            'playlistName': playlist.name,
            'currentItem': self._item_dict(items[current], 'auto'),
            'totalItems': total,
            'currentIndex': current,
            'isLooping': self.looping
        }
        if total > 1 and (self.looping or current < total - 1):
            response['nextItem'] = self._item_dict(items[(current + 1) % total], 'metadata')
        return response

    def _item_dict(self, item: ResolvedItem, preload: str) -> Dict[str, Any]:
        default = self.image_duration if item.type == 'image' else self.video_duration
        return {
            'id': item.id,
            'name': item.name,
            'url': item.url,
            'type': item.type,
            'duration': item.duration or default,
            'size': item.size,
            'mimeType': item.mime_type,
            'preload': preload
        }
