# services/sockets/hub.py
import json
import uuid
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Callable, Dict, List, Optional

from ...errors import MalformedMessage
from ...models import ChangeKind, ClientRegistration, ClientRole
from ..logger import ServiceLogger
from ..utils import TimeUtils


class BroadcastHub:
    """Registry of live screen/admin connections with best-effort message delivery"""

    def __init__(self, socketio, logger: Optional[ServiceLogger] = None,
                 clock: Callable[[], int] = TimeUtils.now_ms, event_name: str = 'message'):
        """
        Args:
            socketio: Flask-SocketIO instance used for emitting
            logger: Custom logger instance
            clock: Millisecond clock
            event_name: Socket.IO event carrying hub messages
        """
        self.socketio = socketio
        self.logger = logger or ServiceLogger('BroadcastHub')
        self.event_name = event_name
        self._clock = clock
        self.clients_lock = Lock()
        self.connected_clients: Dict[str, ClientRegistration] = {}

    # Connections

    def register(self, sid: str, role, screen_id: Optional[str] = None) -> str:
        """
        Register a new connection and greet it
        Returns:
            Generated client id
        """
        role = ClientRole.ADMIN if str(getattr(role, 'value', role)) == 'admin' else ClientRole.SCREEN
        now = self._clock()
        client_id = f"{now}-{uuid.uuid4().hex[:9]}"
        registration = ClientRegistration(
            client_id=client_id,
            sid=sid,
            role=role,
            screen_id=screen_id or None,
            connected_at=now,
            last_seen_at=now
        )
        with self.clients_lock:
            self.connected_clients[sid] = registration

        self.logger.info('Client connected', {
            'sid': sid,
            'client_id': client_id,
            'role': role.value,
            'screen_id': screen_id
        })
        self.send(sid, {
            'type': 'connected',
            'clientId': client_id,
            'timestamp': now,
            'serverTime': datetime.now(timezone.utc).isoformat()
        })
        return client_id

    def on_disconnect(self, sid: str) -> Optional[ClientRegistration]:
        """Remove registration; repeated calls are no-ops"""
        with self.clients_lock:
            registration = self.connected_clients.pop(sid, None)
        if registration:
            self.logger.info('Client disconnected', {
                'sid': sid,
                'client_id': registration.client_id,
                'role': registration.role.value,
                'screen_id': registration.screen_id
            })
        return registration

    def touch(self, sid: str):
        with self.clients_lock:
            registration = self.connected_clients.get(sid)
            if registration:
                registration.last_seen_at = self._clock()

    # Delivery

    def send(self, sid: str, message: Dict[str, Any]) -> bool:
        """Emit to a single connection. Never raises."""
        try:
            self.socketio.emit(self.event_name, message, room=sid)
            return True
        except Exception as e:
            self.logger.warning('Failed to deliver message', {
                'sid': sid,
                'type': message.get('type'),
                'error': str(e)
            })
            return False

    def send_to(self, predicate: Callable[[ClientRegistration], bool], message: Dict[str, Any]) -> int:
        """
        Deliver message to every registration matching predicate
        Returns:
            Number of successful deliveries
        """
        with self.clients_lock:
            targets = [reg.sid for reg in self.connected_clients.values() if predicate(reg)]

        delivered = 0
        for sid in targets:
            with self.clients_lock:
                if sid not in self.connected_clients:
                    continue
            if self.send(sid, message):
                delivered += 1
        return delivered

    def broadcast_to_screens(self, message: Dict[str, Any], exclude_screen_id: Optional[str] = None) -> int:
        return self.send_to(
            lambda reg: reg.role == ClientRole.SCREEN and (
                exclude_screen_id is None or reg.screen_id != exclude_screen_id),
            message
        )

    def broadcast_to_admins(self, message: Dict[str, Any]) -> int:
        return self.send_to(lambda reg: reg.role == ClientRole.ADMIN, message)

    def notify_content_update(self, kind, payload: Optional[Dict[str, Any]] = None) -> Dict[str, int]:
        """
        Broadcast content change hint to all screens and admins
        Returns:
            {'screenCount': ..., 'adminCount': ...}
        """
        kind = ChangeKind.parse(kind)
        message = dict(payload or {})
        message.update({
            'type': 'content-updated',
            'kind': kind.value,
            'timestamp': self._clock()
        })
        screen_count = self.broadcast_to_screens(message)
        admin_count = self.broadcast_to_admins(message)

        self.logger.info('Content update broadcast', {
            'kind': kind.value,
            'screens': screen_count,
            'admins': admin_count
        })
        return {'screenCount': screen_count, 'adminCount': admin_count}

    def notify_screen_refresh(self, screen_id: str, screen_name: Optional[str] = None) -> Dict[str, int]:
        """Ask one screen to refresh and tell admins about it"""
        now = self._clock()
        screen_count = self.send_to(
            lambda reg: reg.role == ClientRole.SCREEN and reg.screen_id == screen_id,
            {'type': 'refresh', 'screenId': screen_id, 'timestamp': now}
        )
        admin_count = self.broadcast_to_admins({
            'type': 'screen-refreshed',
            'screenId': screen_id,
            'screenName': screen_name,
            'delivered': screen_count > 0,
            'timestamp': now
        })
        self.logger.info('Screen refresh requested', {
            'screen_id': screen_id,
            'delivered': screen_count
        })
        return {'screenCount': screen_count, 'adminCount': admin_count}

    # Inbound

    def handle_message(self, sid: str, raw: Any):
        """
        Process an inbound client message. Malformed input is logged and dropped.
        """
        self.touch(sid)
        try:
            message = self._parse_message(raw)
        except MalformedMessage as e:
            self.logger.warning('Dropped malformed message', {'sid': sid, 'error': str(e)})
            return

        msg_type = message['type']
        if msg_type == 'ping':
            self.send(sid, {'type': 'pong', 'timestamp': self._clock()})
        elif msg_type == 'screen-status':
            with self.clients_lock:
                registration = self.connected_clients.get(sid)
            screen_id = registration.screen_id if registration else None
            self.broadcast_to_admins({
                'type': 'screen-status-update',
                'screenId': screen_id,
                'status': message.get('status'),
                'timestamp': self._clock()
            })
        else:
            self.logger.debug('Unhandled message type', {'sid': sid, 'type': msg_type})

    @staticmethod
    def _parse_message(raw: Any) -> Dict[str, Any]:
        if isinstance(raw, (str, bytes)):
            try:
                raw = json.loads(raw)
            except ValueError as e:
                raise MalformedMessage(f'Invalid JSON: {e}') from e
        if not isinstance(raw, dict):
            raise MalformedMessage('Message must be an object')
        if not isinstance(raw.get('type'), str):
            raise MalformedMessage('Message type is required')
        return raw

    # Queries

    def get_stats(self) -> Dict[str, Any]:
        with self.clients_lock:
            registrations = list(self.connected_clients.values())
        screens = [reg for reg in registrations if reg.role == ClientRole.SCREEN]
        return {
            'total': len(registrations),
            'screens': len(screens),
            'admins': len(registrations) - len(screens),
            'screenIds': sorted({reg.screen_id for reg in screens if reg.screen_id})
        }

    def is_screen_connected(self, screen_id: str) -> bool:
        with self.clients_lock:
            return any(
                reg.role == ClientRole.SCREEN and reg.screen_id == screen_id
                for reg in self.connected_clients.values()
            )

    def sweep_inactive(self, timeout_ms: int) -> List[str]:
        """
        Drop registrations not seen for timeout_ms
        Returns:
            List of removed session ids
        """
        now = self._clock()
        with self.clients_lock:
            stale = [sid for sid, reg in self.connected_clients.items()
                     if now - reg.last_seen_at > timeout_ms]

        for sid in stale:
            self.logger.warning('Disconnecting inactive client', {'sid': sid})
            self.on_disconnect(sid)
            try:
                self.socketio.server.disconnect(sid)
            except Exception as e:
                self.logger.debug('Transport disconnect failed', {'sid': sid, 'error': str(e)})
        return stale
