from signsync import create_app
from signsync.services.logger import setup_logger
import logging
from typing import NoReturn
from signsync.extensions import socketio
import traceback


def configure_logging() -> None:
    """Настройка базового логгирования (только для startup)"""
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler()]
    )


def run_server() -> NoReturn:
    """Запуск сервера синхронизации"""
    configure_logging()
    startup_logger = setup_logger('server.startup')

    try:
        startup_logger.info("Initializing signage sync server")
        app = create_app()

        startup_logger.info("Starting SocketIO server", {
            'host': app.config['HOST'],
            'port': app.config['PORT']
        })
        socketio.run(
            app,
            host=app.config['HOST'],
            port=app.config['PORT'],
            debug=app.config.get('DEBUG', False),
            use_reloader=False,
            log_output=app.config.get('SOCKETIO_LOGGER', False),
            allow_unsafe_werkzeug=app.debug
        )

    except Exception as e:
        startup_logger.critical("Server startup failed", {
            "error": str(e),
            "type": type(e).__name__,
            "traceback": traceback.format_exc()
        })
        raise RuntimeError("Server startup failed") from e


if __name__ == '__main__':
    run_server()
