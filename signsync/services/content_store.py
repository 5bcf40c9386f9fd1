import json
import os
from pathlib import Path
from typing import List, Optional

from ..errors import ContentStoreError
from ..models import MediaFile, Playlist, ResolvedItem
from .logger import ServiceLogger
from .utils import MediaUtils, PathUtils


class ContentStore:
    """
    Адаптер только для чтения над внешним хранилищем контента:
    файл playlists.json и корневая папка медиа (папки плейлистов + uploads/)
    """

    def __init__(self, playlists_file: str, media_root: str, uploads_dir: Optional[str] = None,
                 logger: Optional[ServiceLogger] = None):
        self.playlists_file = Path(playlists_file)
        self.media_root = Path(media_root)
        self.uploads_dir = Path(uploads_dir) if uploads_dir else self.media_root / 'uploads'
        self.logger = logger or ServiceLogger('ContentStore')

    def get_playlists(self) -> List[Playlist]:
        """
        Загрузка всех плейлистов
        :raises ContentStoreError: при ошибке чтения или разбора файла
        """
        if not self.playlists_file.exists():
            return []
        try:
            with open(self.playlists_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ContentStoreError(f"Failed to read playlists: {e}") from e

        if not isinstance(data, list):
            raise ContentStoreError("Playlists file must contain a JSON array")
        return [Playlist.from_dict(item) for item in data if isinstance(item, dict)]

    def get_assigned_playlist(self, screen_id: str) -> Optional[Playlist]:
        """Первый плейлист, в списке screens которого есть screen_id"""
        for playlist in self.get_playlists():
            if screen_id in playlist.screens:
                return playlist
        return None

    def folder_path(self, folder: str) -> Path:
        try:
            return PathUtils.confined(self.media_root, folder)
        except ValueError as e:
            raise ContentStoreError(str(e)) from e

    def list_folder_media(self, folder: str) -> List[MediaFile]:
        """
        Медиафайлы папки, отсортированные по имени
        :param folder: Имя папки относительно корня медиа
        :raises ContentStoreError: если папка отсутствует или недоступна
        """
        path = self.folder_path(folder)
        try:
            entries = list(os.scandir(path))
        except OSError as e:
            raise ContentStoreError(f"Media folder unavailable: {folder}") from e

        files = []
        for entry in entries:
            media_type = MediaUtils.media_type(entry.name)
            if media_type is None:
                continue
            try:
                if not entry.is_file():
                    continue
                stat = entry.stat()
            except OSError:
                self.logger.warning("Failed to stat media file", {'folder': folder, 'file': entry.name})
                continue
            files.append(MediaFile(
                name=entry.name,
                size=stat.st_size,
                modified_time=int(stat.st_mtime * 1000),
                media_type=media_type
            ))
        return sorted(files, key=lambda f: f.name)

    def resolve_items(self, playlist: Playlist) -> List[ResolvedItem]:
        """
        Сопоставляет элементы плейлиста с файлами на диске.
        Папочный режим - все медиафайлы папки по имени,
        ручной режим - элементы в порядке плейлиста, отсутствующие файлы пропускаются.
        """
        if playlist.folder:
            return [
                ResolvedItem(
                    id=f"{playlist.folder}/{media.name}",
                    name=media.name,
                    url=f"/media/{playlist.folder}/{media.name}",
                    type=media.media_type,
                    size=media.size,
                    modified_time=media.modified_time,
                    mime_type=MediaUtils.mime_type(media.name)
                )
                for media in self.list_folder_media(playlist.folder)
            ]

        resolved = []
        for item in playlist.items:
            path = self.local_path(item.url)
            try:
                stat = path.stat() if path else None
            except OSError:
                stat = None
            if stat is None:
                self.logger.warning("Playlist item file missing, skipped", {
                    'playlist': playlist.name,
                    'item': item.name,
                    'url': item.url
                })
                continue
            resolved.append(ResolvedItem(
                id=item.id,
                name=item.name,
                url=item.url,
                type=MediaUtils.media_type(item.url) or item.type,
                size=stat.st_size,
                modified_time=int(stat.st_mtime * 1000),
                duration=item.duration,
                mime_type=MediaUtils.mime_type(item.url)
            ))
        return resolved

    def local_path(self, url: str) -> Optional[Path]:
        """Путь к файлу для URL вида /uploads/<file> или /media/<folder>/<file>"""
        try:
            if url.startswith('/uploads/'):
                return PathUtils.confined(self.uploads_dir, url[len('/uploads/'):])
            if url.startswith('/media/'):
                return PathUtils.confined(self.media_root, url[len('/media/'):])
        except ValueError:
            self.logger.warning("Rejected media url outside of media root", {'url': url})
        return None
