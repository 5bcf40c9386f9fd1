import os
from pathlib import Path


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == '':
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer, got {value!r}")


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    def __init__(self):
        self.PORT = _env_int("SIGNSYNC_PORT", 5000)
        self.HOST = os.getenv("SIGNSYNC_HOST", "0.0.0.0")

        # Базовые пути
        self.BASE_DIR = Path(__file__).parent.parent
        self.DATA_DIR = os.getenv("SIGNSYNC_DATA_DIR", "/var/lib/signsync")
        self.MEDIA_ROOT = os.getenv("SIGNSYNC_MEDIA_ROOT", os.path.join(self.DATA_DIR, 'media'))
        self.UPLOAD_FOLDER = os.getenv("UPLOAD_FOLDER", os.path.join(self.MEDIA_ROOT, 'uploads'))
        self.LOG_DIR = os.getenv("SIGNSYNC_LOG_DIR") or None

        # Файлы внешнего хранилища и журнала изменений
        self.PLAYLISTS_FILE = os.getenv("SIGNSYNC_PLAYLISTS_FILE", os.path.join(self.DATA_DIR, 'playlists.json'))
        self.CHANGE_EVENTS_FILE = os.getenv("SIGNSYNC_EVENTS_FILE", os.path.join(self.DATA_DIR, 'refresh-events.json'))
        self.CHANGE_LOG_CAPACITY = _env_int("CHANGE_LOG_CAPACITY", 10)

        # Настройки приложения
        self.SECRET_KEY = os.getenv("SECRET_KEY", "supersecretkey123")
        self.DEBUG = os.getenv("FLASK_ENV", "production").lower() == "development"
        self.JSON_SORT_KEYS = False

        # Отпечаток контента и выдача потока
        self.FINGERPRINT_CACHE_TTL = _env_int("FINGERPRINT_CACHE_TTL", 60)
        self.FINGERPRINT_INVALIDATE_ON_ANNOUNCE = _env_bool("FINGERPRINT_INVALIDATE_ON_ANNOUNCE", False)
        self.IMAGE_DEFAULT_DURATION = _env_int("IMAGE_DEFAULT_DURATION", 10)
        self.VIDEO_DEFAULT_DURATION = _env_int("VIDEO_DEFAULT_DURATION", 30)
        self.PLAYLIST_LOOPING = _env_bool("PLAYLIST_LOOPING", True)

        # Фоновые задачи (0 - отключено)
        self.FOLDER_MONITOR_INTERVAL = _env_int("FOLDER_MONITOR_INTERVAL", 30)
        self.SOCKET_INACTIVITY_TIMEOUT = _env_int("SOCKET_INACTIVITY_TIMEOUT", 0)
        self.SOCKET_ACTIVITY_CHECK_INTERVAL = _env_int("SOCKET_ACTIVITY_CHECK_INTERVAL", 15)

        # Настройки Socket.IO
        self.SOCKETIO_ASYNC_MODE = os.getenv("SOCKETIO_ASYNC_MODE", "eventlet")
        self.SOCKETIO_CORS_ALLOWED_ORIGINS = os.getenv("SOCKETIO_CORS_ALLOWED_ORIGINS", "*")
        self.SOCKETIO_PING_TIMEOUT = _env_int("SOCKETIO_PING_TIMEOUT", 60)
        self.SOCKETIO_PING_INTERVAL = _env_int("SOCKETIO_PING_INTERVAL", 25)
        self.SOCKETIO_LOGGER = _env_bool("SOCKETIO_LOGGER", False)
        self.SOCKETIO_ENGINEIO_LOGGER = _env_bool("SOCKETIO_ENGINEIO_LOGGER", False)
        self.SOCKETIO_HTTP_COMPRESSION = True


config = Config()

# Экспортируемые переменные
MEDIA_ROOT = config.MEDIA_ROOT
UPLOAD_FOLDER = config.UPLOAD_FOLDER
SECRET_KEY = config.SECRET_KEY
DEBUG = config.DEBUG
SOCKETIO_ASYNC_MODE = config.SOCKETIO_ASYNC_MODE
BASE_DIR = config.BASE_DIR

__all__ = [
    'config', 'Config', 'MEDIA_ROOT', 'UPLOAD_FOLDER', 'SECRET_KEY',
    'DEBUG', 'SOCKETIO_ASYNC_MODE', 'BASE_DIR'
]
