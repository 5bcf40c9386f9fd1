# services/sockets/service.py
from typing import Optional

from flask import request
from flask_socketio import SocketIO

from ..logger import ServiceLogger
from .hub import BroadcastHub


class SocketService:
    """Binds Socket.IO events to the broadcast hub and runs the inactivity sweep"""

    def __init__(self, socketio: SocketIO, hub: BroadcastHub, inactivity_timeout: int = 0,
                 activity_check_interval: int = 15, logger: Optional[ServiceLogger] = None):
        """
        Args:
            socketio: Flask-SocketIO instance
            hub: Broadcast hub holding registrations
            inactivity_timeout: Seconds without activity before a client is dropped (0 disables)
            activity_check_interval: Seconds between inactivity sweeps
        """
        if not socketio:
            raise ValueError("SocketIO instance is required")

        self.socketio = socketio
        self.hub = hub
        self.inactivity_timeout = inactivity_timeout
        self.activity_check_interval = activity_check_interval
        self.logger = logger or ServiceLogger('SocketService')
        self._checker_started = False

        self._register_handlers()

    def _register_handlers(self):
        self.socketio.on_event('connect', self.handle_connect)
        self.socketio.on_event('disconnect', self.handle_disconnect)
        self.socketio.on_event(self.hub.event_name, self.handle_message)

    def handle_connect(self, auth=None):
        role = request.args.get('type', 'screen')
        screen_id = request.args.get('screenId')
        if not screen_id and isinstance(auth, dict):
            screen_id = auth.get('screenId')
        self.hub.register(request.sid, role, screen_id)
        return True

    def handle_disconnect(self, reason=None):
        self.hub.on_disconnect(request.sid)

    def handle_message(self, data=None):
        self.hub.handle_message(request.sid, data)

    def start_activity_checker(self):
        """Start background inactivity sweep"""
        if self.inactivity_timeout <= 0 or self._checker_started:
            return
        self._checker_started = True

        def activity_check():
            while True:
                self.socketio.sleep(self.activity_check_interval)
                try:
                    self.hub.sweep_inactive(self.inactivity_timeout * 1000)
                except Exception as e:
                    self.logger.error('Activity check failed', {'error': str(e)}, exc_info=True)

        self.socketio.start_background_task(activity_check)
        self.logger.info('Activity checker started', {'timeout': self.inactivity_timeout})
