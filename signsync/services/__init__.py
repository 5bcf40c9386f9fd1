"""
/signsync/services/__init__.py
Модуль инициализации сервисов с централизованным логированием
"""
import os
import traceback
from typing import Dict, Any, Optional
from pathlib import Path
from .logger import setup_logger, ServiceLogger

# Импортируем все сервисы
from .content_store import ContentStore
from .change_log import ChangeLog
from .fingerprint import ContentFingerprintService
from .stream_service import StreamService
from .announcer import ContentAnnouncer
from .folder_monitor import FolderMonitor
from .sockets import BroadcastHub, SocketService


class ServiceFactory:
    """Фабрика для инициализации сервисов с централизованным логированием"""

    @staticmethod
    def create_content_store(playlists_file: str, media_root: str, uploads_dir: str,
                             logger=None) -> Optional[ContentStore]:
        logger = logger or setup_logger('ContentStore')
        try:
            logger.info('Initializing ContentStore', {
                'playlists_file': playlists_file,
                'media_root': media_root
            })
            return ContentStore(playlists_file, media_root, uploads_dir, logger=logger)
        except Exception as e:
            logger.error('ContentStore initialization failed', {'error': str(e)}, exc_info=True)
            return None

    @staticmethod
    def create_change_log(events_file: str, capacity: int = 10, logger=None) -> Optional[ChangeLog]:
        """
        Создание журнала изменений
        :param events_file: Путь к JSON файлу журнала
        :param capacity: Размер окна событий
        :param logger: Логгер (опционально)
        :return: Экземпляр ChangeLog или None при ошибке
        """
        logger = logger or setup_logger('ChangeLog')
        try:
            logger.info('Initializing ChangeLog', {'events_file': events_file, 'capacity': capacity})
            return ChangeLog(events_file, capacity=capacity, logger=logger)
        except Exception as e:
            logger.error('ChangeLog initialization failed', {'error': str(e)}, exc_info=True)
            return None

    @staticmethod
    def create_fingerprint_service(store: ContentStore, cache_ttl: int = 60,
                                   logger=None) -> Optional[ContentFingerprintService]:
        logger = logger or setup_logger('ContentFingerprintService')
        try:
            logger.info('Initializing ContentFingerprintService', {'cache_ttl': cache_ttl})
            return ContentFingerprintService(store, cache_ttl=cache_ttl, logger=logger)
        except Exception as e:
            logger.error('ContentFingerprintService initialization failed', {'error': str(e)}, exc_info=True)
            return None

    @staticmethod
    def create_socket_service(socketio, hub: BroadcastHub, inactivity_timeout: int = 0,
                              activity_check_interval: int = 15, logger=None) -> Optional[SocketService]:
        """
        Создание сервиса WebSocket
        :param socketio: Экземпляр SocketIO
        :param hub: Хаб рассылки
        :param logger: Логгер (опционально)
        :return: Экземпляр SocketService или None при ошибке
        """
        logger = logger or setup_logger('SocketService')
        try:
            logger.info('Initializing SocketService')
            return SocketService(
                socketio,
                hub,
                inactivity_timeout=inactivity_timeout,
                activity_check_interval=activity_check_interval,
                logger=logger
            )
        except Exception as e:
            logger.error('SocketService initialization failed', {'error': str(e)}, exc_info=True)
            return None


def init_services(
    config: Dict[str, Any],
    socketio=None,
    logger=None
) -> Dict[str, Any]:
    """Инициализация всех сервисов приложения"""
    logger = logger or setup_logger('ServiceManager')

    try:
        logger.info('Starting services initialization')

        # 1. Проверка конфигурации
        required_config = {
            'PLAYLISTS_FILE': 'Файл плейлистов',
            'MEDIA_ROOT': 'Корневая папка медиа',
            'UPLOAD_FOLDER': 'Папка загрузок',
            'CHANGE_EVENTS_FILE': 'Файл журнала изменений'
        }
        missing_keys = [k for k in required_config if k not in config]
        if missing_keys:
            error_details = {k: required_config[k] for k in missing_keys}
            logger.critical('Missing required config', {'missing': error_details})
            raise ValueError(f"Отсутствуют обязательные параметры: {', '.join(missing_keys)}")

        # 2. Проверка файловой системы
        dir_checks = [
            (config['MEDIA_ROOT'], 'r', 'Корневая папка медиа'),
            (os.path.dirname(config['CHANGE_EVENTS_FILE']) or '.', 'rw', 'Директория журнала изменений')
        ]
        for path, mode, desc in dir_checks:
            path_obj = Path(path)
            if not path_obj.exists():
                path_obj.mkdir(parents=True, exist_ok=True)
                logger.info('Directory created', {'path': path, 'purpose': desc})
            if 'r' in mode and not os.access(path, os.R_OK):
                raise PermissionError(f"Нет прав на чтение: {path}")
            if 'w' in mode and not os.access(path, os.W_OK):
                raise PermissionError(f"Нет прав на запись: {path}")

        # 3. Обязательные сервисы
        services: Dict[str, Any] = {}

        store = ServiceFactory.create_content_store(
            config['PLAYLISTS_FILE'], config['MEDIA_ROOT'], config['UPLOAD_FOLDER'], logger)
        change_log = ServiceFactory.create_change_log(
            config['CHANGE_EVENTS_FILE'], config.get('CHANGE_LOG_CAPACITY', 10), logger)
        fingerprint = ServiceFactory.create_fingerprint_service(
            store, config.get('FINGERPRINT_CACHE_TTL', 60), logger) if store else None

        for name, service in (('content_store', store),
                              ('change_log', change_log),
                              ('fingerprint_service', fingerprint)):
            if not service:
                raise RuntimeError(f"Service {name} returned None")
            services[name] = service

        services['stream_service'] = StreamService(
            store,
            image_duration=config.get('IMAGE_DEFAULT_DURATION', 10),
            video_duration=config.get('VIDEO_DEFAULT_DURATION', 30),
            looping=config.get('PLAYLIST_LOOPING', True),
            logger=logger
        )

        # 4. Push-канал и оповещения
        hub = BroadcastHub(socketio, logger=logger)
        services['hub'] = hub
        if socketio:
            socket_service = ServiceFactory.create_socket_service(
                socketio,
                hub,
                inactivity_timeout=config.get('SOCKET_INACTIVITY_TIMEOUT', 0),
                activity_check_interval=config.get('SOCKET_ACTIVITY_CHECK_INTERVAL', 15),
                logger=logger
            )
            if not socket_service:
                raise RuntimeError("Service socket_service returned None")
            services['socket_service'] = socket_service

        announcer = ContentAnnouncer(
            hub,
            change_log,
            fingerprint_service=fingerprint,
            invalidate_on_announce=config.get('FINGERPRINT_INVALIDATE_ON_ANNOUNCE', False),
            logger=logger
        )
        services['announcer'] = announcer
        services['folder_monitor'] = FolderMonitor(
            config['MEDIA_ROOT'],
            announcer,
            interval=config.get('FOLDER_MONITOR_INTERVAL', 0),
            socketio=socketio,
            logger=logger
        )

        logger.info('All services initialized', {'initialized': list(services.keys())})
        return services

    except Exception as e:
        logger.critical('Services initialization failed', {
            'error': str(e),
            'type': type(e).__name__,
            'stack': traceback.format_exc()
        })
        raise RuntimeError(f"Ошибка инициализации сервисов: {str(e)}") from e


__all__ = [
    'ServiceFactory',
    'init_services',
    'ContentStore',
    'ChangeLog',
    'ContentFingerprintService',
    'StreamService',
    'ContentAnnouncer',
    'FolderMonitor',
    'BroadcastHub',
    'SocketService',
    'ServiceLogger'
]
