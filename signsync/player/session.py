"""
/signsync/player/session.py
Конечный автомат воспроизведения плейлиста экрана
"""

import threading
from dataclasses import replace
from typing import Any, Callable, Dict, Optional

from ..errors import ErrorClass, NetworkTransient, NoContent, PlaybackAborted, classify_error
from ..models import PlaybackState, PlaybackStatus
from ..services.logger import ServiceLogger
from .retry import RetryPolicy


class PlaybackSession:
    """
    Сессия воспроизведения: загрузка элемента по индексу, переход к следующему
    по завершении и восстановление после ошибок.

    Все переходы выполняются под блокировкой. Каждая загрузка получает номер
    поколения; результаты устаревших загрузок и таймеров молча отбрасываются.
    """

    def __init__(self, screen_id: str, api_client, player, scheduler,
                 retry_policy: Optional[RetryPolicy] = None,
                 on_load: Optional[Callable] = None,
                 on_error: Optional[Callable] = None,
                 on_state_change: Optional[Callable] = None,
                 looping: bool = True,
                 notice_timeout: float = 5.0,
                 logger: Optional[ServiceLogger] = None):
        """
        :param screen_id: Идентификатор экрана
        :param api_client: Клиент API с методом get_stream(screen_id, index)
        :param player: Конвейер декодирования с методами play(item) и stop()
        :param scheduler: Планировщик с call_later(delay, fn, *args) и cancel(handle)
        :param on_load: Вызывается как on_load(item, next_item) после запуска элемента
        :param on_error: Вызывается как on_error(error, error_class)
        :param on_state_change: Вызывается с копией PlaybackState после каждого перехода
        """
        self.screen_id = screen_id
        self.api_client = api_client
        self.player = player
        self.scheduler = scheduler
        self.retry_policy = retry_policy or RetryPolicy()
        self.on_load = on_load
        self.on_error = on_error
        self.on_state_change = on_state_change
        self.looping = looping
        self.notice_timeout = notice_timeout
        self.logger = logger or ServiceLogger('PlaybackSession')

        self.state = PlaybackState()
        self.current_item: Optional[Dict[str, Any]] = None
        self.next_item: Optional[Dict[str, Any]] = None

        self._lock = threading.RLock()
        self._generation = 0
        self._index_attempts = 0
        self._active = False
        self._pending = None
        self._item_timer = None
        self._notice_timer = None

    # Public API

    def start(self, index: int = 0):
        with self._lock:
            self._active = True
            self.state = PlaybackState(current_index=max(index, 0))
            self.logger.info('Playback session started', {'screen_id': self.screen_id})
            self._begin_load(self.state.current_index)

    def stop(self):
        """Остановка сессии: таймеры отменяются, конвейер освобождается"""
        with self._lock:
            if not self._active:
                return
            self._active = False
            self._generation += 1
            for handle in (self._pending, self._item_timer, self._notice_timer):
                self.scheduler.cancel(handle)
            self._pending = self._item_timer = self._notice_timer = None
        try:
            self.player.stop()
        except Exception as e:
            self.logger.warning('Player stop failed', {'error': str(e)})
        self.logger.info('Playback session stopped', {'screen_id': self.screen_id})

    def reload(self):
        """Перезагрузка после изменения отпечатка контента"""
        with self._lock:
            if not self._active:
                return
            index = 0 if self.state.no_content else self.state.current_index
            self.state.retry_count = 0
            self._index_attempts = 0
            self.logger.info('Reloading content', {'screen_id': self.screen_id, 'index': index})
            self._begin_load(index)

    def handle_completed(self):
        """Естественное завершение текущего элемента"""
        with self._lock:
            if not self._active or self.state.status != PlaybackStatus.PLAYING:
                return
            self._advance()

    def handle_error(self, error: BaseException):
        """Ошибка воспроизведения текущего элемента (от конвейера декодирования)"""
        with self._lock:
            if not self._active:
                return
            self._on_failure(error)

    def snapshot(self) -> PlaybackState:
        with self._lock:
            return replace(self.state)

    # Transitions

    def _begin_load(self, index: int):
        self._generation += 1
        generation = self._generation
        self.scheduler.cancel(self._pending)
        self.scheduler.cancel(self._item_timer)
        self._item_timer = None

        if index != self.state.current_index:
            self.state.retry_count = 0
            self._index_attempts = 0
        self.state.current_index = index
        self.state.status = PlaybackStatus.LOADING
        self._notify()
        self._pending = self.scheduler.call_later(0, self._fetch, generation)

    def _fetch(self, generation: int):
        with self._lock:
            if generation != self._generation or not self._active:
                return
            self._pending = None
            index = self.state.current_index

        try:
            response = self.api_client.get_stream(self.screen_id, index)
        except Exception as e:
            with self._lock:
                if generation == self._generation and self._active:
                    self._on_failure(e, loading=True)
            return

        with self._lock:
            if generation != self._generation or not self._active:
                return
            if not isinstance(response, dict):
                self._on_failure(NetworkTransient('Unexpected stream response'), loading=True)
                return
            if not response.get('hasContent', True) or not response.get('currentItem'):
                self._enter_no_content()
                return
            self._start_item(response, generation)

    def _start_item(self, response: Dict[str, Any], generation: int):
        item = response['currentItem']
        self.state.total_items = int(response.get('totalItems') or 0)
        self.state.current_index = int(response.get('currentIndex', self.state.current_index))
        self.state.no_content = False
        self.current_item = item
        self.next_item = response.get('nextItem')

        try:
            self.player.play(item)
        except Exception as e:
            self._on_failure(e, loading=True)
            return

        self.state.status = PlaybackStatus.PLAYING
        self.state.retry_count = 0
        self.state.last_error = None
        self.logger.info('Playing item', {
            'screen_id': self.screen_id,
            'index': self.state.current_index,
            'total': self.state.total_items,
            'name': item.get('name')
        })
        if item.get('type') == 'image':
            self._item_timer = self.scheduler.call_later(
                float(item.get('duration') or 10), self._item_elapsed, generation)
        self._call_back(self.on_load, item, self.next_item)
        self._notify()

    def _item_elapsed(self, generation: int):
        with self._lock:
            if generation != self._generation:
                return
            self._item_timer = None
        self.handle_completed()

    def _advance(self):
        total = self.state.total_items
        if total <= 0:
            # Длина плейлиста ещё неизвестна, сервер сам приведёт индекс
            self.state.retry_count = 0
            self._index_attempts = 0
            self._begin_load(self.state.current_index + 1)
            return
        next_index = self.state.current_index + 1
        if next_index >= total and not self.looping:
            self._generation += 1
            self.state.status = PlaybackStatus.COMPLETED
            self.logger.info('Playlist completed', {'screen_id': self.screen_id})
            self._notify()
            return
        self.state.retry_count = 0
        self._index_attempts = 0
        self._begin_load(next_index % total)

    def _enter_no_content(self):
        self.state.no_content = True
        self.state.total_items = 0
        self.state.current_index = 0
        self.state.retry_count = 0
        self._index_attempts = 0
        self.state.status = PlaybackStatus.LOADING
        self.current_item = self.next_item = None
        self.logger.info('No content for screen', {'screen_id': self.screen_id})
        try:
            self.player.stop()
        except Exception as e:
            self.logger.warning('Player stop failed', {'error': str(e)})
        self._notify()

    def _on_failure(self, error: BaseException, loading: bool = False):
        """
        :param loading: Ошибка возникла до перехода в PLAYING (запрос элемента или запуск конвейера)
        """
        if isinstance(error, NoContent):
            self._enter_no_content()
            return

        error_class = classify_error(error)
        self.state.last_error = str(error) or type(error).__name__
        self._call_back(self.on_error, error, error_class)

        if error_class == ErrorClass.PERMANENT:
            self.logger.warning('Item cannot be decoded, skipping', {
                'screen_id': self.screen_id,
                'index': self.state.current_index,
                'error': self.state.last_error
            })
            self.state.status = PlaybackStatus.ERROR
            self._notify()
            self._advance()
            return

        if error_class == ErrorClass.TRANSIENT:
            self._retry_or_skip('Connection problem, retrying')
            return

        self.logger.error('Unexpected playback error', {
            'screen_id': self.screen_id,
            'index': self.state.current_index,
            'error': self.state.last_error,
            'type': type(error).__name__,
            'loading': loading
        })
        if loading:
            # Элемент так и не запустился: тот же бюджет повторов, что и для сетевых ошибок
            self._retry_or_skip('Playback problem, retrying')
        elif isinstance(error, PlaybackAborted):
            # Конвейер уже завершил файл, продолжать нечего
            self.state.status = PlaybackStatus.ERROR
            self._show_notice(f'Playback problem: {self.state.last_error}')
            self._notify()
            self._advance()
        else:
            self._show_notice(f'Playback problem: {self.state.last_error}')
            self._notify()

    def _retry_or_skip(self, notice: str):
        self.state.status = PlaybackStatus.ERROR
        attempt = self._index_attempts + 1
        if not self.retry_policy.allows(attempt):
            self.logger.error('Retries exhausted, skipping item', {
                'screen_id': self.screen_id,
                'index': self.state.current_index,
                'attempts': self._index_attempts
            })
            self._show_notice('Skipping unavailable item')
            self._advance()
            return

        self._index_attempts = attempt
        self.state.retry_count += 1
        delay = self.retry_policy.backoff(attempt)
        self.logger.warning('Playback error, retrying', {
            'screen_id': self.screen_id,
            'index': self.state.current_index,
            'attempt': attempt,
            'delay': delay,
            'error': self.state.last_error
        })
        self._show_notice(f'{notice} ({attempt}/{self.retry_policy.max_attempts})')
        self._generation += 1
        self.scheduler.cancel(self._item_timer)
        self._item_timer = None
        self._pending = self.scheduler.call_later(delay, self._retry, self._generation)
        self._notify()

    def _retry(self, generation: int):
        with self._lock:
            if generation != self._generation or not self._active:
                return
            self._pending = None
            self.state.status = PlaybackStatus.LOADING
            self._notify()
        self._fetch(generation)

    def _show_notice(self, message: str):
        self.state.notice = message
        self.scheduler.cancel(self._notice_timer)
        self._notice_timer = self.scheduler.call_later(self.notice_timeout, self._clear_notice, message)

    def _clear_notice(self, message: str):
        with self._lock:
            if self.state.notice == message:
                self.state.notice = None
                self._notice_timer = None
                self._notify()

    def _notify(self):
        if self.on_state_change:
            try:
                self.on_state_change(replace(self.state))
            except Exception as e:
                self.logger.warning('State change callback failed', {'error': str(e)})

    def _call_back(self, callback: Optional[Callable], *args):
        if callback is None:
            return
        try:
            callback(*args)
        except Exception as e:
            self.logger.warning('Session callback failed', {
                'callback': getattr(callback, '__name__', repr(callback)),
                'error': str(e)
            })
