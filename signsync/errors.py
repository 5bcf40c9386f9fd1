"""
Иерархия ошибок подсистемы синхронизации и воспроизведения.

Классы ошибок определяют политику восстановления:
- NetworkTransient / ConnectionLost - повтор с ограниченным числом попыток
- DecodeUnsupported - немедленный переход к следующему элементу
- PlaybackAborted - уведомление и переход к следующему элементу
- NoContent - штатное состояние "нет контента", не ошибка
- MalformedMessage - сообщение отбрасывается, соединение сохраняется
"""
from enum import Enum


class SignageError(Exception):
    """Базовая ошибка подсистемы"""


class NetworkTransient(SignageError):
    """Временная сетевая ошибка или ошибка ввода-вывода"""


class ConnectionLost(SignageError):
    """Потеря push-соединения с сервером"""


class DecodeUnsupported(SignageError):
    """Файл не может быть декодирован (формат не поддерживается)"""


class PlaybackAborted(SignageError):
    """Конвейер завершил элемент с ошибкой неизвестного класса"""


class NoContent(SignageError):
    """Экрану не назначен плейлист или плейлист пуст"""


class MalformedMessage(SignageError):
    """Некорректное входящее сообщение push-канала"""


class ContentStoreError(SignageError):
    """Хранилище контента недоступно или повреждено"""


class ErrorClass(str, Enum):
    TRANSIENT = 'transient'
    PERMANENT = 'permanent'
    UNKNOWN = 'unknown'


def classify_error(error: BaseException) -> ErrorClass:
    """Классификация ошибки воспроизведения"""
    if isinstance(error, DecodeUnsupported):
        return ErrorClass.PERMANENT
    if isinstance(error, (NetworkTransient, ConnectionLost, ConnectionError, TimeoutError)):
        return ErrorClass.TRANSIENT
    return ErrorClass.UNKNOWN
