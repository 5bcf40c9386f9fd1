# /signsync/routes/__init__.py
import logging
from logging import Filter
from typing import Dict, Any, Tuple

from flask import Blueprint


class StaticFilter(Filter):
    """Фильтр для исключения запросов медиафайлов из логов werkzeug"""
    def filter(self, record):
        msg = record.getMessage()
        static_paths = ['/favicon.ico', 'GET /media/', 'GET /uploads/']
        return not any(path in msg for path in static_paths)


def create_blueprints() -> Tuple[Blueprint, Blueprint]:
    """
    Создает и возвращает основные Blueprints приложения

    Returns:
        Tuple[Blueprint, Blueprint]: (main_bp, api_bp)
    """
    main_bp = Blueprint('main', __name__)
    api_bp = Blueprint('api', __name__, url_prefix='/api')
    return main_bp, api_bp


def init_routes(app, services: Dict[str, Any]) -> None:
    """
    Инициализирует все маршруты приложения

    Args:
        app: Flask приложение
        services: Словарь с сервисами приложения
    """
    werkzeug_logger = logging.getLogger('werkzeug')
    if not any(isinstance(f, StaticFilter) for f in werkzeug_logger.filters):
        werkzeug_logger.addFilter(StaticFilter())

    # Проверка обязательных сервисов
    required_services = ['content_store', 'change_log', 'fingerprint_service',
                         'stream_service', 'announcer', 'hub']
    for svc in required_services:
        if svc not in services:
            raise RuntimeError(f"Missing required service: {svc}")

    main_bp, api_bp = create_blueprints()

    # Ленивая загрузка маршрутов для избежания циклических импортов
    from .main_routes import init_main_routes
    from .api.api_routes import init_api_routes

    init_main_routes(main_bp, services['content_store'])
    init_api_routes(api_bp, services)

    for bp in (main_bp, api_bp):
        if bp.name not in app.blueprints:
            app.register_blueprint(bp)


__all__ = ['create_blueprints', 'init_routes']
