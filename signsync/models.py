from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class ChangeKind(str, Enum):
    """Типы событий изменения контента"""
    CONTENT_UPDATED = 'content-updated'
    FILES_UPLOADED = 'files-uploaded'
    PLAYLIST_UPDATED = 'playlist-updated'

    @classmethod
    def parse(cls, value) -> 'ChangeKind':
        """
        Преобразование строки в ChangeKind
        :raises ValueError: для неизвестного типа события
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"Unknown change kind: {value!r}") from None


class ClientRole(str, Enum):
    SCREEN = 'screen'
    ADMIN = 'admin'


@dataclass
class ChangeEvent:
    """Запись журнала изменений"""
    kind: ChangeKind
    timestamp: int
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.kind.value,
            'timestamp': self.timestamp,
            'data': self.payload
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ChangeEvent':
        return cls(
            kind=ChangeKind.parse(data['type']),
            timestamp=int(data['timestamp']),
            payload=dict(data.get('data') or {})
        )


@dataclass
class ClientRegistration:
    """Регистрация подключенного клиента в хабе"""
    client_id: str
    sid: str
    role: ClientRole
    screen_id: Optional[str] = None
    connected_at: int = 0
    last_seen_at: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'clientId': self.client_id,
            'role': self.role.value,
            'screenId': self.screen_id,
            'connectedAt': self.connected_at,
            'lastSeenAt': self.last_seen_at
        }


@dataclass
class PlaylistItem:
    """Элемент плейлиста в ручном режиме (как хранится в playlists.json)"""
    id: str
    name: str
    url: str
    type: str
    duration: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PlaylistItem':
        return cls(
            id=str(data.get('id') or data.get('name') or ''),
            name=data.get('name') or '',
            url=data.get('url') or '',
            type=data.get('type') or 'video',
            duration=data.get('duration')
        )


@dataclass
class Playlist:
    """Плейлист из внешнего хранилища контента"""
    id: str
    name: str
    items: List[PlaylistItem] = field(default_factory=list)
    screens: List[str] = field(default_factory=list)
    folder: Optional[str] = None
    created_at: int = 0
    updated_at: int = 0

    @property
    def source_mode(self) -> str:
        return 'folder' if self.folder else 'manual'

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Playlist':
        return cls(
            id=str(data.get('id') or ''),
            name=data.get('name') or '',
            items=[PlaylistItem.from_dict(item) for item in data.get('items') or []],
            screens=[str(s) for s in data.get('screens') or []],
            folder=data.get('folder') or None,
            created_at=_to_ms(data.get('createdAt')),
            updated_at=_to_ms(data.get('updatedAt'))
        )


@dataclass
class MediaFile:
    """Медиафайл, найденный в папке"""
    name: str
    size: int
    modified_time: int
    media_type: str


@dataclass
class ResolvedItem:
    """Элемент плейлиста, сопоставленный с файлом на диске"""
    id: str
    name: str
    url: str
    type: str
    size: int
    modified_time: int
    duration: Optional[int] = None
    mime_type: str = 'application/octet-stream'

    def fingerprint_entry(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'url': self.url,
            'size': self.size,
            'modified': self.modified_time
        }


class PlaybackStatus(str, Enum):
    LOADING = 'loading'
    PLAYING = 'playing'
    ERROR = 'error'
    COMPLETED = 'completed'


@dataclass
class PlaybackState:
    """Локальное состояние воспроизведения экрана"""
    current_index: int = 0
    total_items: int = 0
    retry_count: int = 0
    last_error: Optional[str] = None
    status: PlaybackStatus = PlaybackStatus.LOADING
    no_content: bool = False
    notice: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'currentIndex': self.current_index,
            'totalItems': self.total_items,
            'retryCount': self.retry_count,
            'lastError': self.last_error,
            'status': self.status.value,
            'noContent': self.no_content,
            'notice': self.notice
        }


def _to_ms(value) -> int:
    """Приводит метку времени (мс, секунды или ISO-строку) к миллисекундам"""
    if value is None or value == '':
        return 0
    if isinstance(value, (int, float)):
        # Значения меньше 1e11 считаются секундами
        return int(value * 1000) if value < 1e11 else int(value)
    try:
        parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
        return int(parsed.timestamp() * 1000)
    except ValueError:
        return 0
