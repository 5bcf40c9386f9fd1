from dataclasses import dataclass


@dataclass(frozen=True)
class RetryPolicy:
    """Политика повторов с экспоненциальной задержкой"""
    max_attempts: int = 3
    base_delay: float = 2.0
    factor: float = 2.0
    max_delay: float = 30.0

    def backoff(self, attempt: int) -> float:
        """
        Задержка перед повтором
        :param attempt: Номер повтора, начиная с 1
        """
        return min(self.base_delay * (self.factor ** max(attempt - 1, 0)), self.max_delay)

    def allows(self, attempt: int) -> bool:
        return attempt <= self.max_attempts
