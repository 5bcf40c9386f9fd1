import os
import time
from pathlib import Path
from typing import Optional


class TimeUtils:
    @staticmethod
    def now_ms() -> int:
        """Текущее время в миллисекундах от эпохи Unix"""
        return int(time.time() * 1000)


class MediaUtils:
    VIDEO_EXTENSIONS = {'mp4', 'webm', 'avi', 'mov', 'mkv', 'ogg'}
    IMAGE_EXTENSIONS = {'jpg', 'jpeg', 'png', 'gif', 'webp'}

    MIME_MAP = {
        'jpg': 'image/jpeg',
        'jpeg': 'image/jpeg',
        'png': 'image/png',
        'gif': 'image/gif',
        'webp': 'image/webp',
        'mp4': 'video/mp4',
        'webm': 'video/webm',
        'ogg': 'video/ogg',
        'avi': 'video/x-msvideo',
        'mov': 'video/quicktime',
        'mkv': 'video/x-matroska'
    }

    @staticmethod
    def extension(filename: str) -> str:
        return Path(filename).suffix.lower().lstrip('.')

    @classmethod
    def media_type(cls, filename: str) -> Optional[str]:
        """Определяет тип медиа ('video' / 'image') по расширению, None для прочих файлов"""
        ext = cls.extension(filename)
        if ext in cls.VIDEO_EXTENSIONS:
            return 'video'
        if ext in cls.IMAGE_EXTENSIONS:
            return 'image'
        return None

    @classmethod
    def mime_type(cls, filename: str) -> str:
        return cls.MIME_MAP.get(cls.extension(filename), 'application/octet-stream')


class PathUtils:
    @staticmethod
    def ensure_directory_exists(path: str) -> str:
        """
        Создает директорию если она не существует
        :param path: Путь к директории
        :return: Абсолютный путь к директории
        """
        os.makedirs(path, exist_ok=True)
        return os.path.abspath(path)

    @staticmethod
    def confined(root: Path, relative: str) -> Path:
        """
        Возвращает путь внутри root, не допуская выхода за его пределы
        :raises ValueError: если relative указывает за пределы root
        """
        root = Path(root).resolve()
        candidate = (root / relative).resolve()
        if candidate != root and root not in candidate.parents:
            raise ValueError(f"Path escapes media root: {relative}")
        return candidate
