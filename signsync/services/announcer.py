from typing import Any, Dict, Optional

from ..models import ChangeKind
from .change_log import ChangeLog
from .logger import ServiceLogger


class ContentAnnouncer:
    """
    Единая точка оповещения об изменении контента:
    push-подсказка через хаб + запись в резервный журнал
    """

    def __init__(self, hub, change_log: ChangeLog, fingerprint_service=None,
                 invalidate_on_announce: bool = False, logger: Optional[ServiceLogger] = None):
        self.hub = hub
        self.change_log = change_log
        self.fingerprint_service = fingerprint_service
        self.invalidate_on_announce = invalidate_on_announce
        self.logger = logger or ServiceLogger('ContentAnnouncer')

    def announce(self, kind, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Оповещение об изменении
        :param kind: Тип события (content-updated, files-uploaded, playlist-updated)
        :param payload: Произвольные данные события
        :return: {'event': ..., 'screenCount': ..., 'adminCount': ...}
        :raises ValueError: для неизвестного типа события
        """
        kind = ChangeKind.parse(kind)
        payload = dict(payload or {})

        if self.invalidate_on_announce and self.fingerprint_service:
            self.fingerprint_service.invalidate()

        counts = {'screenCount': 0, 'adminCount': 0}
        try:
            counts = self.hub.notify_content_update(kind, payload)
        except Exception as e:
            self.logger.error('Push notification failed', {'kind': kind.value, 'error': str(e)})

        event = None
        try:
            event = self.change_log.record(kind, payload).to_dict()
        except Exception as e:
            self.logger.error('Change log append failed', {'kind': kind.value, 'error': str(e)})

        self.logger.info('Content change announced', {'kind': kind.value, **counts})
        return {'event': event, **counts}
