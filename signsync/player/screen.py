"""
/signsync/player/screen.py
Клиентский процесс экрана: сессия воспроизведения, опросы, push-канал и mpv
"""

import os
import signal
import threading
import traceback
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..errors import ConnectionLost
from ..models import PlaybackState
from ..services.logger import ServiceLogger, setup_logger
from .api_client import ContentApiClient
from .pollers import ChangeLogPoller, ContentPoller
from .push import PushChannel
from .retry import RetryPolicy
from .scheduler import ThreadingScheduler
from .session import PlaybackSession


@dataclass
class ScreenConfig:
    server_url: str
    screen_id: str
    content_poll_interval: float = 30
    change_log_poll_interval: float = 60
    request_timeout: float = 10
    retry_max_attempts: int = 3
    retry_base_delay: float = 2.0
    retry_max_delay: float = 30.0
    ping_interval: float = 25
    push_enabled: bool = True
    push_connect_attempts: int = 5
    push_connect_delay: float = 3
    looping: bool = True

    @classmethod
    def from_env(cls) -> 'ScreenConfig':
        """
        Настройки экрана из переменных окружения
        :raises ValueError: если не задан SIGNSYNC_SCREEN_ID
        """
        screen_id = os.getenv('SIGNSYNC_SCREEN_ID', '').strip()
        if not screen_id:
            raise ValueError("SIGNSYNC_SCREEN_ID is required")
        return cls(
            server_url=os.getenv('SIGNSYNC_SERVER_URL', 'http://localhost:5000'),
            screen_id=screen_id,
            content_poll_interval=float(os.getenv('CONTENT_POLL_INTERVAL', 30)),
            change_log_poll_interval=float(os.getenv('CHANGE_LOG_POLL_INTERVAL', 60)),
            request_timeout=float(os.getenv('SIGNSYNC_REQUEST_TIMEOUT', 10)),
            retry_max_attempts=int(os.getenv('RETRY_MAX_ATTEMPTS', 3)),
            retry_base_delay=float(os.getenv('RETRY_BASE_DELAY', 2.0)),
            retry_max_delay=float(os.getenv('RETRY_MAX_DELAY', 30.0)),
            ping_interval=float(os.getenv('PUSH_PING_INTERVAL', 25)),
            push_enabled=os.getenv('PUSH_ENABLED', 'true').lower() in ('1', 'true', 'yes', 'on'),
            push_connect_attempts=int(os.getenv('PUSH_CONNECT_ATTEMPTS', 5)),
            push_connect_delay=float(os.getenv('PUSH_CONNECT_DELAY', 3)),
            looping=os.getenv('PLAYLIST_LOOPING', 'true').lower() in ('1', 'true', 'yes', 'on')
        )


class ScreenRuntime:
    def __init__(self, config: ScreenConfig, player=None, api_client=None, scheduler=None,
                 push_channel=None, logger: Optional[ServiceLogger] = None):
        """
        Сборка компонентов экрана. Все зависимости можно подменить (в тестах).
        :param player: Конвейер декодирования; по умолчанию MpvPlayer
        :param push_channel: Push-канал; по умолчанию PushChannel, если push_enabled
        """
        self.config = config
        self.logger = logger or ServiceLogger('ScreenRuntime')
        self.scheduler = scheduler or ThreadingScheduler()
        self.api_client = api_client or ContentApiClient(
            config.server_url, timeout=config.request_timeout, logger=self.logger)

        if player is None:
            from .mpv_player import MpvPlayer
            player = MpvPlayer(
                on_completed=lambda: self.session.handle_completed(),
                on_error=lambda error: self.session.handle_error(error),
                url_resolver=self.api_client.media_url,
                logger=self.logger
            )
        self.player = player

        self.session = PlaybackSession(
            config.screen_id,
            self.api_client,
            self.player,
            self.scheduler,
            retry_policy=RetryPolicy(
                max_attempts=config.retry_max_attempts,
                base_delay=config.retry_base_delay,
                max_delay=config.retry_max_delay
            ),
            on_state_change=self._report_state,
            looping=config.looping,
            logger=self.logger
        )
        self.content_poller = ContentPoller(
            self.api_client,
            config.screen_id,
            on_change=self._on_content_change,
            scheduler=self.scheduler,
            interval=config.content_poll_interval,
            logger=self.logger
        )
        self.change_log_poller = ChangeLogPoller(
            self.api_client,
            on_events=self._on_change_events,
            scheduler=self.scheduler,
            interval=config.change_log_poll_interval,
            logger=self.logger
        )

        if push_channel is None and config.push_enabled:
            push_channel = PushChannel(
                config.server_url,
                config.screen_id,
                on_hint=self._on_push_hint,
                ping_interval=config.ping_interval,
                logger=self.logger
            )
        self.push_channel = push_channel
        self._push_handle = None
        self._running = False

    def start(self):
        if self._running:
            return
        self._running = True
        self.logger.info('Starting screen runtime', {
            'screen_id': self.config.screen_id,
            'server': self.config.server_url
        })

        if self.push_channel is not None:
            self._connect_push(1)

        self.session.start()
        self.content_poller.start()
        self.change_log_poller.start()

    def stop(self):
        """Остановка таймеров, опросов, плеера и push-канала"""
        if not self._running:
            return
        self._running = False
        self.scheduler.cancel(self._push_handle)
        self._push_handle = None
        self.content_poller.stop()
        self.change_log_poller.stop()
        self.session.stop()
        if hasattr(self.scheduler, 'shutdown'):
            self.scheduler.shutdown()
        if hasattr(self.player, 'release'):
            self.player.release()
        if self.push_channel is not None:
            self.push_channel.disconnect()
        self.logger.info('Screen runtime stopped', {'screen_id': self.config.screen_id})

    def _connect_push(self, attempt: int):
        """
        Подключение push-канала. Неудачные попытки повторяются на планировщике,
        после push_connect_attempts экран работает только на опросах.
        """
        self._push_handle = None
        if not self._running:
            return
        try:
            self.push_channel.connect()
        except ConnectionLost as e:
            if attempt >= self.config.push_connect_attempts:
                self.logger.error('Push channel unavailable, relying on polling', {
                    'attempts': attempt,
                    'error': str(e)
                })
                return
            self.logger.warning('Push connection failed, retrying', {
                'attempt': attempt,
                'delay': self.config.push_connect_delay,
                'error': str(e)
            })
            self._push_handle = self.scheduler.call_later(
                self.config.push_connect_delay, self._connect_push, attempt + 1)

    def _on_content_change(self, status: Dict[str, Any], previous: Dict[str, Any]):
        self.session.reload()

    def _on_change_events(self, events):
        self.content_poller.force_check()

    def _on_push_hint(self, message: Dict[str, Any]):
        # Проверка выполняется вне потока socket.io клиента
        if self._running:
            self.scheduler.call_later(0, self.content_poller.force_check)

    def _report_state(self, state: PlaybackState):
        if self.push_channel is not None:
            self.push_channel.report_status(state.to_dict())


def run_screen():
    """Точка входа signsync-screen"""
    logger = setup_logger('screen.startup')
    stop_event = threading.Event()

    try:
        runtime = ScreenRuntime(ScreenConfig.from_env())
    except Exception as e:
        logger.critical('Screen startup failed', {
            'error': str(e),
            'type': type(e).__name__,
            'traceback': traceback.format_exc()
        })
        raise SystemExit(1) from e

    def shutdown(signum, frame):
        logger.info('Shutdown signal received', {'signal': signum})
        stop_event.set()

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    runtime.start()
    try:
        stop_event.wait()
    finally:
        runtime.stop()


if __name__ == '__main__':
    run_screen()
