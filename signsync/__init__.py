# Головной init
import traceback
from typing import Optional

from flask import Flask, jsonify

from signsync.config.config import Config, config
from signsync.services import init_services
from signsync.services.logger import setup_flask_logging


def create_app(config_class: Optional[Config] = None) -> Flask:
    """Фабрика для создания экземпляра Flask приложения"""
    config_class = config_class or config
    app = Flask(__name__)
    app.config.from_object(config_class)

    # Логи Flask идут через обработчики ServiceLogger
    service_logger = setup_flask_logging(app, log_dir=app.config.get('LOG_DIR'))

    try:
        service_logger.info("Starting application initialization")

        # 1. Инициализация расширений (включая SocketIO)
        from .extensions import init_extensions
        extensions = init_extensions(app)
        socketio = extensions['socketio']

        # 2. Инициализация сервисов
        with app.app_context():
            services = init_services(
                config=app.config,
                socketio=socketio,
                logger=service_logger
            )

            # Прикрепляем сервисы к app
            for name, service in services.items():
                setattr(app, name, service)
                service_logger.debug("Service attached", {'service': name})

        # 3. Инициализация маршрутов
        from .routes import init_routes
        init_routes(app, services)

        # 4. Регистрация обработчиков ошибок
        register_error_handlers(app)

        # 5. Фоновые задачи
        services['socket_service'].start_activity_checker()
        services['folder_monitor'].start()

        service_logger.info("Application initialization completed successfully")
        return app

    except Exception as e:
        service_logger.critical("Application initialization failed", {
            'error': str(e),
            'stack_trace': traceback.format_exc()
        })
        raise RuntimeError(f"Application startup failed: {str(e)}") from e


def register_error_handlers(app: Flask) -> None:
    """Регистрация обработчиков ошибок"""

    def _describe(error, default: str) -> str:
        return str(error.description) if hasattr(error, 'description') else default

    @app.errorhandler(400)
    def bad_request_error(error):
        app.logger.warning(f"Bad request: {str(error)}")
        return jsonify({
            "success": False,
            "error": "Bad Request",
            "message": _describe(error, "Invalid request")
        }), 400

    @app.errorhandler(404)
    def not_found_error(error):
        app.logger.warning(f"Not Found: {str(error)}")
        return jsonify({
            "success": False,
            "error": "Not Found",
            "message": _describe(error, "Resource not found")
        }), 404

    @app.errorhandler(405)
    def method_not_allowed_error(error):
        app.logger.warning(f"Method not allowed: {str(error)}")
        return jsonify({
            "success": False,
            "error": "Method Not Allowed",
            "message": _describe(error, "Method not allowed")
        }), 405

    @app.errorhandler(500)
    def internal_error(error):
        app.logger.error(f"Server Error: {str(error)}\n{traceback.format_exc()}")
        return jsonify({
            "success": False,
            "error": "Internal Server Error",
            "message": "An unexpected error occurred"
        }), 500
