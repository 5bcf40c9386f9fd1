# services/sockets/__init__.py
from .hub import BroadcastHub
from .service import SocketService

__all__ = ['BroadcastHub', 'SocketService']
