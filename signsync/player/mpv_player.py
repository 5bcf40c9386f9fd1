from typing import Any, Callable, Dict, Optional, Tuple

from ..errors import DecodeUnsupported, NetworkTransient, PlaybackAborted, SignageError
from ..services.logger import ServiceLogger

END_FILE_EVENT_ID = 7

END_FILE_REASONS = {0: 'eof', 2: 'stop', 3: 'quit', 4: 'error', 5: 'redirect'}

# Коды ошибок libmpv
MPV_ERROR_LOADING_FAILED = -13
MPV_ERROR_NOTHING_TO_PLAY = -16
MPV_ERROR_UNKNOWN_FORMAT = -17
MPV_ERROR_UNSUPPORTED = -18

DECODE_ERRORS = {MPV_ERROR_NOTHING_TO_PLAY, MPV_ERROR_UNKNOWN_FORMAT, MPV_ERROR_UNSUPPORTED}


def _read_field(data: Any, name: str):
    if isinstance(data, dict):
        return data.get(name)
    return getattr(data, name, None)


def parse_end_file(event: Any) -> Optional[Tuple[str, Optional[int]]]:
    """
    Извлекает (reason, error) из события end-file.
    Поддерживает объекты событий python-mpv и словари старых версий.
    :return: None, если событие не end-file
    """
    event_id = _read_field(event, 'event_id')
    event_id = getattr(event_id, 'value', event_id)
    if event_id not in (END_FILE_EVENT_ID, 'end-file'):
        return None

    data = _read_field(event, 'data')
    if data is None:
        data = _read_field(event, 'event')
    reason = _read_field(data, 'reason')
    error = _read_field(data, 'error')

    reason = getattr(reason, 'value', reason)
    if isinstance(reason, bytes):
        reason = reason.decode('utf-8', 'replace')
    if isinstance(reason, int):
        reason = END_FILE_REASONS.get(reason, str(reason))
    return (str(reason).lower() if reason is not None else 'eof',
            int(error) if error is not None else None)


def classify_end_file(reason: str, error: Optional[int]) -> Optional[BaseException]:
    """
    Сопоставляет завершение файла с ошибкой
    :return: None для штатного завершения, исключение для ошибки
    """
    if reason != 'error':
        return None
    if error == MPV_ERROR_LOADING_FAILED:
        return NetworkTransient('Media loading failed')
    if error in DECODE_ERRORS:
        return DecodeUnsupported(f'Media cannot be decoded (mpv error {error})')
    return PlaybackAborted(f'Playback failed (mpv error {error})')


class MpvPlayer:
    """Конвейер декодирования на python-mpv"""

    def __init__(self, on_completed: Callable[[], None], on_error: Callable[[BaseException], None],
                 url_resolver: Callable[[str], str] = lambda url: url,
                 mpv_factory: Optional[Callable[..., Any]] = None,
                 options: Optional[Dict[str, Any]] = None,
                 logger: Optional[ServiceLogger] = None):
        self.on_completed = on_completed
        self.on_error = on_error
        self.url_resolver = url_resolver
        self.logger = logger or ServiceLogger('MpvPlayer')

        if mpv_factory is None:
            import mpv  # libmpv загружается только при создании реального плеера
            mpv_factory = mpv.MPV

        player_options = {
            'fullscreen': True,
            'idle': 'yes',
            'keep_open': 'no',
            'image_display_duration': 'inf',
            'input_default_bindings': False,
            'osc': False
        }
        player_options.update(options or {})
        self._mpv = mpv_factory(**player_options)
        self._mpv.register_event_callback(self.handle_event)
        self._current: Optional[Dict[str, Any]] = None

    def play(self, item: Dict[str, Any]):
        """
        Запуск элемента. Изображения показываются до вызова следующего play/stop.
        :raises SignageError: если mpv отклонил команду
        """
        url = self.url_resolver(item['url'])
        try:
            self._mpv.play(url)
        except Exception as e:
            raise SignageError(f'mpv rejected {url}: {e}') from e
        self._current = item
        self.logger.debug('mpv loadfile', {'url': url, 'type': item.get('type')})

    def stop(self):
        self._current = None
        try:
            self._mpv.command('stop')
        except Exception as e:
            self.logger.warning('mpv stop failed', {'error': str(e)})

    def release(self):
        self._current = None
        try:
            self._mpv.terminate()
        except Exception as e:
            self.logger.warning('mpv terminate failed', {'error': str(e)})

    def handle_event(self, event: Any):
        parsed = parse_end_file(event)
        if parsed is None or self._current is None:
            return
        reason, error = parsed
        if reason in ('stop', 'quit', 'redirect'):
            return

        failure = classify_end_file(reason, error)
        if failure is None:
            self.on_completed()
        else:
            self.logger.warning('mpv playback error', {
                'item': self._current.get('name'),
                'error_code': error,
                'error': str(failure)
            })
            self.on_error(failure)
