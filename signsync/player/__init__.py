from .retry import RetryPolicy
from .scheduler import ThreadingScheduler
from .session import PlaybackSession
from .api_client import ContentApiClient
from .pollers import ContentPoller, ChangeLogPoller

__all__ = [
    'RetryPolicy',
    'ThreadingScheduler',
    'PlaybackSession',
    'ContentApiClient',
    'ContentPoller',
    'ChangeLogPoller'
]
