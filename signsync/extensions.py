from flask_socketio import SocketIO
import os
from typing import Dict, Any

# Инициализация экземпляров расширений
socketio = SocketIO()


def init_extensions(app) -> Dict[str, Any]:
    """
    Инициализация Flask-расширений без создания сервисов
    :param app: Экземпляр Flask приложения
    :return: Словарь с инициализированными расширениями
    """
    try:
        # 1. Настройка SocketIO
        socketio.init_app(
            app,
            async_mode=app.config['SOCKETIO_ASYNC_MODE'],
            cors_allowed_origins=app.config['SOCKETIO_CORS_ALLOWED_ORIGINS'],
            ping_timeout=app.config.get('SOCKETIO_PING_TIMEOUT', 60),
            ping_interval=app.config.get('SOCKETIO_PING_INTERVAL', 25),
            logger=app.config.get('SOCKETIO_LOGGER', False),
            engineio_logger=app.config.get('SOCKETIO_ENGINEIO_LOGGER', False),
            http_compression=app.config.get('SOCKETIO_HTTP_COMPRESSION', True),
            always_connect=True
        )

        # 2. Создание рабочих директорий
        _ensure_directories(app)

        # 3. Заголовки кэширования API
        configure_api_cache(app)

        app.logger.info("Extensions initialized successfully")
        return {'socketio': socketio}

    except Exception as e:
        app.logger.critical(f"Extensions initialization failed: {str(e)}", exc_info=True)
        raise RuntimeError(f"Extensions initialization failed: {str(e)}")


def _ensure_directories(app) -> None:
    """Создание необходимых директорий"""
    required_dirs = [
        app.config['DATA_DIR'],
        app.config['MEDIA_ROOT'],
        app.config['UPLOAD_FOLDER'],
        os.path.dirname(app.config['PLAYLISTS_FILE']),
        os.path.dirname(app.config['CHANGE_EVENTS_FILE'])
    ]
    if app.config.get('LOG_DIR'):
        required_dirs.append(app.config['LOG_DIR'])

    for directory in required_dirs:
        if not directory:
            continue
        try:
            os.makedirs(directory, exist_ok=True)
        except OSError as e:
            app.logger.error(f"Directory creation failed: {directory} - {str(e)}")
            raise


def configure_api_cache(app):
    """Ответы API не кэшируются: экраны должны видеть актуальный статус"""
    @app.after_request
    def add_cache_headers(response):
        from flask import request
        if request.path.startswith('/api/'):
            response.headers['Cache-Control'] = 'no-cache, no-store, must-revalidate'
        return response


__all__ = ['socketio', 'init_extensions']
