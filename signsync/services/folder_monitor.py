"""
/signsync/services/folder_monitor.py
Фоновое отслеживание изменений в папках медиа
"""

import os
import threading
from pathlib import Path
from typing import Dict, Optional, Tuple

from ..models import ChangeKind
from .logger import ServiceLogger
from .utils import MediaUtils

Snapshot = Dict[str, Tuple[int, int]]


class FolderMonitor:
    def __init__(self, media_root: str, announcer, interval: int = 30, socketio=None,
                 logger: Optional[ServiceLogger] = None):
        """
        Инициализация монитора
        :param media_root: Корневая папка медиа
        :param announcer: ContentAnnouncer для оповещения об изменениях
        :param interval: Период сканирования в секундах (0 - отключено)
        :param socketio: Экземпляр SocketIO для фоновой задачи
        """
        self.media_root = Path(media_root)
        self.announcer = announcer
        self.interval = interval
        self.socketio = socketio
        self.logger = logger or ServiceLogger('FolderMonitor')
        self._snapshot: Optional[Snapshot] = None
        self._busy = threading.Lock()
        self._running = False

    def take_snapshot(self) -> Snapshot:
        """Снимок {относительный путь: (размер, mtime в мс)} всех медиафайлов"""
        snapshot = {}
        for dirpath, _dirnames, filenames in os.walk(self.media_root):
            for filename in filenames:
                if MediaUtils.media_type(filename) is None:
                    continue
                full_path = Path(dirpath) / filename
                try:
                    stat = full_path.stat()
                except OSError:
                    continue
                relative = full_path.relative_to(self.media_root).as_posix()
                snapshot[relative] = (stat.st_size, int(stat.st_mtime * 1000))
        return snapshot

    def scan_once(self) -> Optional[Dict]:
        """
        Одно сканирование. Первое сканирование только запоминает состояние.
        :return: Сводка изменений или None, если изменений нет или сканирование уже идет
        """
        if not self._busy.acquire(blocking=False):
            self.logger.debug('Scan already in progress, skipped')
            return None
        try:
            current = self.take_snapshot()
            previous, self._snapshot = self._snapshot, current
            if previous is None:
                return None

            added = current.keys() - previous.keys()
            removed = previous.keys() - current.keys()
            modified = {path for path in current.keys() & previous.keys() if current[path] != previous[path]}
            if not (added or removed or modified):
                return None

            touched = added | removed | modified
            summary = {
                'added': len(added),
                'removed': len(removed),
                'modified': len(modified),
                'folders': sorted({path.split('/', 1)[0] if '/' in path else '' for path in touched})
            }
            self.logger.info('Media folder changes detected', summary)
            self.announcer.announce(ChangeKind.FILES_UPLOADED, summary)
            return summary
        finally:
            self._busy.release()

    def start(self):
        """Запуск фоновой задачи сканирования"""
        if self.interval <= 0 or self._running or not self.socketio:
            return
        self._running = True

        def monitor():
            self.scan_once()
            while self._running:
                self.socketio.sleep(self.interval)
                try:
                    self.scan_once()
                except Exception as e:
                    self.logger.error('Folder scan failed', {'error': str(e)}, exc_info=True)

        self.socketio.start_background_task(monitor)
        self.logger.info('Folder monitor started', {
            'media_root': str(self.media_root),
            'interval': self.interval
        })

    def stop(self):
        self._running = False
