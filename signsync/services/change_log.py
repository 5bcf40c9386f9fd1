"""
/signsync/services/change_log.py
Ограниченный журнал изменений контента для клиентов без push-канала
"""

import json
import os
import threading
from collections import deque
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from ..models import ChangeEvent, ChangeKind
from .logger import ServiceLogger
from .utils import TimeUtils


class ChangeLog:
    DEFAULT_CAPACITY = 10

    def __init__(self, events_file: str, capacity: int = DEFAULT_CAPACITY,
                 logger: Optional[ServiceLogger] = None,
                 clock: Callable[[], int] = TimeUtils.now_ms):
        """
        Инициализация журнала
        :param events_file: JSON файл для хранения окна событий
        :param capacity: Максимальное число хранимых событий
        :param clock: Источник времени в миллисекундах
        """
        if capacity < 1:
            raise ValueError("Change log capacity must be positive")
        self.events_file = Path(events_file)
        self.capacity = capacity
        self.logger = logger or ServiceLogger('ChangeLog')
        self._clock = clock
        self._lock = threading.Lock()
        self._events = deque(maxlen=capacity)
        self._last_timestamp = 0
        self._load()

    def _load(self):
        if not self.events_file.exists():
            return
        try:
            with open(self.events_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
            for item in data if isinstance(data, list) else []:
                try:
                    self._events.append(ChangeEvent.from_dict(item))
                except (KeyError, TypeError, ValueError):
                    self.logger.warning("Skipped malformed change event", {'event': item})
        except (OSError, json.JSONDecodeError) as e:
            self.logger.error("Failed to load change log, starting empty", {
                'file': str(self.events_file),
                'error': str(e)
            })
            self._events.clear()
        if self._events:
            self._last_timestamp = max(event.timestamp for event in self._events)

    def _persist(self):
        """Атомарная запись окна событий (вызывается под блокировкой)"""
        tmp_path = self.events_file.with_name(self.events_file.name + '.tmp')
        try:
            self.events_file.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, 'w', encoding='utf-8') as f:
                json.dump([event.to_dict() for event in self._events], f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.events_file)
        except OSError as e:
            self.logger.error("Failed to persist change log", {
                'file': str(self.events_file),
                'error': str(e)
            })

    def _next_timestamp(self, requested: Optional[int] = None) -> int:
        # Метки строго возрастают даже в пределах одной миллисекунды
        timestamp = requested if requested is not None else self._clock()
        timestamp = max(int(timestamp), self._last_timestamp + 1)
        self._last_timestamp = timestamp
        return timestamp

    def append(self, event: ChangeEvent) -> ChangeEvent:
        """
        Добавление события; старейшее вытесняется при заполнении.
        Метка времени события может быть скорректирована для монотонности.
        """
        with self._lock:
            event.timestamp = self._next_timestamp(event.timestamp or None)
            self._events.append(event)
            self._persist()
        self.logger.debug("Change event appended", {
            'kind': event.kind.value,
            'timestamp': event.timestamp,
            'size': len(self._events)
        })
        return event

    def record(self, kind, payload: Optional[Dict[str, Any]] = None) -> ChangeEvent:
        """
        Создание и добавление события указанного типа
        :raises ValueError: для неизвестного типа события
        """
        return self.append(ChangeEvent(kind=ChangeKind.parse(kind), timestamp=0, payload=payload or {}))

    def read_since(self, timestamp: int = 0) -> List[ChangeEvent]:
        """События с меткой строго больше timestamp в порядке добавления"""
        with self._lock:
            return [event for event in self._events if event.timestamp > timestamp]

    def clear(self):
        with self._lock:
            self._events.clear()
            self._persist()
        self.logger.info("Change log cleared")

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
