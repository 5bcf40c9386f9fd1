from typing import Any, Callable, Dict, Optional
from urllib.parse import urlencode

import socketio
from socketio.exceptions import ConnectionError as SocketConnectionError, SocketIOError

from ..errors import ConnectionLost
from ..services.logger import ServiceLogger


class PushChannel:
    """
    Push-канал экрана на python-socketio.
    Сообщения сервера являются только подсказками: content-updated и refresh
    передаются в on_hint, который должен перепроверить отпечаток контента.
    """
    HINT_TYPES = ('content-updated', 'refresh')

    def __init__(self, server_url: str, screen_id: str, on_hint: Callable[[Dict[str, Any]], None],
                 ping_interval: float = 25, reconnection_attempts: int = 5,
                 reconnection_delay: float = 3, event_name: str = 'message',
                 client: Optional[socketio.Client] = None,
                 logger: Optional[ServiceLogger] = None):
        self.server_url = server_url.rstrip('/')
        self.screen_id = screen_id
        self.on_hint = on_hint
        self.ping_interval = ping_interval
        self.event_name = event_name
        self.logger = logger or ServiceLogger('PushChannel')
        self.client = client or socketio.Client(
            reconnection=True,
            reconnection_attempts=reconnection_attempts,
            reconnection_delay=reconnection_delay,
            reconnection_delay_max=reconnection_delay,
            randomization_factor=0
        )
        self.client_id: Optional[str] = None
        self._running = False

        self.client.on('connect', self._on_connect)
        self.client.on('disconnect', self._on_disconnect)
        self.client.on(self.event_name, self.handle_message)

    @property
    def connected(self) -> bool:
        return bool(self.client.connected)

    def connect(self):
        """
        Подключение к серверу
        :raises ConnectionLost: если сервер недоступен
        """
        query = urlencode({'type': 'screen', 'screenId': self.screen_id})
        try:
            self.client.connect(f"{self.server_url}?{query}", wait_timeout=10)
        except SocketConnectionError as e:
            raise ConnectionLost(f"Push connection failed: {e}") from e

        self._running = True
        self.client.start_background_task(self._ping_loop)

    def disconnect(self):
        self._running = False
        try:
            self.client.disconnect()
        except Exception as e:
            self.logger.warning('Push disconnect failed', {'error': str(e)})

    def send(self, message: Dict[str, Any]) -> bool:
        if not self.connected:
            return False
        try:
            self.client.emit(self.event_name, message)
            return True
        except SocketIOError as e:
            self.logger.warning('Push send failed', {'type': message.get('type'), 'error': str(e)})
            return False

    def report_status(self, status: Dict[str, Any]) -> bool:
        return self.send({'type': 'screen-status', 'status': status})

    def handle_message(self, message: Any):
        if not isinstance(message, dict) or not isinstance(message.get('type'), str):
            self.logger.warning('Dropped malformed push message', {'message': str(message)[:200]})
            return

        msg_type = message['type']
        if msg_type == 'connected':
            self.client_id = message.get('clientId')
            self.logger.info('Push channel registered', {'client_id': self.client_id})
        elif msg_type in self.HINT_TYPES:
            if msg_type == 'refresh' and message.get('screenId') not in (None, self.screen_id):
                return
            self.logger.info('Push hint received', {'type': msg_type})
            self.on_hint(message)
        elif msg_type != 'pong':
            self.logger.debug('Ignored push message', {'type': msg_type})

    def _ping_loop(self):
        while self._running:
            self.client.sleep(self.ping_interval)
            if self._running:
                self.send({'type': 'ping'})

    def _on_connect(self):
        self.logger.info('Push channel connected', {'screen_id': self.screen_id})

    def _on_disconnect(self, *args):
        self.logger.warning('Push channel disconnected', {'screen_id': self.screen_id})
