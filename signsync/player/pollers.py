"""
/signsync/player/pollers.py
Периодический опрос отпечатка контента и резервного журнала изменений
"""

import threading
from typing import Any, Callable, Dict, List, Optional

from ..errors import SignageError
from ..services.logger import ServiceLogger


class _Poller:
    """Таймерный цикл с защитой от наложения тиков"""

    def __init__(self, scheduler, interval: float, logger: ServiceLogger):
        self.scheduler = scheduler
        self.interval = interval
        self.logger = logger
        self._busy = threading.Lock()
        self._running = False
        self._handle = None

    def start(self):
        if self._running:
            return
        self._running = True
        self._handle = self.scheduler.call_later(0, self._tick)

    def stop(self):
        self._running = False
        self.scheduler.cancel(self._handle)
        self._handle = None

    @property
    def running(self) -> bool:
        return self._running

    def _tick(self):
        if not self._running:
            return
        try:
            self.poll()
        finally:
            if self._running:
                self._handle = self.scheduler.call_later(self.interval, self._tick)

    def poll(self) -> bool:
        """Один опрос; пропускается, если предыдущий еще выполняется"""
        if not self._busy.acquire(blocking=False):
            self.logger.debug('Poll already in progress, skipped')
            return False
        try:
            return self._poll_once()
        finally:
            self._busy.release()

    def _poll_once(self) -> bool:
        raise NotImplementedError


class ContentPoller(_Poller):
    """
    Опрос статуса контента. Первый полученный статус служит базой,
    последующие сравниваются по contentHash, itemCount и hasContent.
    """
    COMPARED_FIELDS = ('contentHash', 'itemCount', 'hasContent')

    def __init__(self, api_client, screen_id: str,
                 on_change: Callable[[Dict[str, Any], Dict[str, Any]], None],
                 scheduler, interval: float = 30, logger: Optional[ServiceLogger] = None):
        super().__init__(scheduler, interval, logger or ServiceLogger('ContentPoller'))
        self.api_client = api_client
        self.screen_id = screen_id
        self.on_change = on_change
        self.last_status: Optional[Dict[str, Any]] = None

    def force_check(self) -> bool:
        return self.poll()

    def _poll_once(self) -> bool:
        try:
            status = self.api_client.get_content_status(self.screen_id)
        except SignageError as e:
            self.logger.warning('Content status check failed', {
                'screen_id': self.screen_id,
                'error': str(e)
            })
            return False

        previous, self.last_status = self.last_status, status
        if previous is None:
            self.logger.debug('Content status baseline', {'screen_id': self.screen_id})
            return False

        if all(previous.get(key) == status.get(key) for key in self.COMPARED_FIELDS):
            return False

        self.logger.info('Content change detected', {
            'screen_id': self.screen_id,
            'item_count': status.get('itemCount'),
            'has_content': status.get('hasContent')
        })
        self.on_change(status, previous)
        return True


class ChangeLogPoller(_Poller):
    """
    Опрос резервного журнала. Первый опрос только устанавливает курсор,
    новые события приводят к проверке отпечатка, а не к перезагрузке.
    """

    def __init__(self, api_client, on_events: Callable[[List[Dict[str, Any]]], None],
                 scheduler, interval: float = 60, logger: Optional[ServiceLogger] = None):
        super().__init__(scheduler, interval, logger or ServiceLogger('ChangeLogPoller'))
        self.api_client = api_client
        self.on_events = on_events
        self.cursor: Optional[int] = None

    def _poll_once(self) -> bool:
        since = self.cursor or 0
        try:
            events = self.api_client.get_change_events(since)
        except SignageError as e:
            self.logger.warning('Change log poll failed', {'error': str(e)})
            return False

        fresh = [event for event in events if int(event.get('timestamp', 0)) > since]
        baseline = self.cursor is None
        if fresh:
            self.cursor = max(int(event['timestamp']) for event in fresh)
        elif baseline:
            self.cursor = 0

        if baseline or not fresh:
            return False

        self.logger.info('Change events received', {
            'count': len(fresh),
            'kinds': sorted({event.get('type') for event in fresh if event.get('type')})
        })
        self.on_events(fresh)
        return True
