import asyncio
import logging
from typing import Awaitable, Callable, Optional, Sequence, TypeVar

from docvault.core.errors import DocumentError, NetworkError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_RETRYABLE_SUBSTRINGS = ("not initialized", "not ready")


def _is_retryable(error: BaseException, retryable_substrings: Sequence[str]) -> bool:
    message = str(error)
    return any(substring in message for substring in retryable_substrings)


async def retry_with_backoff(
    operation: Callable[[int], Awaitable[T]],
    max_attempts: int = 4,
    base_delay: float = 0.1,
    backoff_multiplier: float = 2.0,
    retryable_substrings: Sequence[str] = DEFAULT_RETRYABLE_SUBSTRINGS,
) -> T:
    """
    Повтор операции с экспоненциальной задержкой.

    Закрывает гонку инициализации криптосостояния сразу после входа.
    operation получает номер попытки (с 1). Если сообщение ошибки попытки n
    содержит одну из retryable_substrings, ждем base_delay * backoff_multiplier ** (n - 1)
    и повторяем. Остальные ошибки пробрасываются сразу. После исчерпания попыток
    DocumentError пробрасывается как есть, прочие ошибки превращаются в NetworkError.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    attempt = 1
    while True:
        try:
            return await operation(attempt)
        except Exception as e:
            if not _is_retryable(e, retryable_substrings):
                raise

            if attempt >= max_attempts:
                logger.error(f"Retry budget exhausted after {attempt} attempts: {e}")
                if isinstance(e, DocumentError):
                    raise
                raise NetworkError(f"Retry budget exhausted: {e}", details=e) from e

            delay = base_delay * backoff_multiplier ** (attempt - 1)
            logger.warning(f"Attempt {attempt}/{max_attempts} failed ({e}), retrying in {delay:.3f}s")
            await asyncio.sleep(delay)
            attempt += 1


async def retry_call(operation: Callable[[], Awaitable[T]], options: Optional[dict] = None) -> T:
    """retry_with_backoff для операции без номера попытки"""
    return await retry_with_backoff(lambda attempt: operation(), **(options or {}))
