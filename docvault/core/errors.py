import functools
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, TypeVar, Union

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ErrorCode(str, Enum):
    """Закрытый набор кодов ошибок"""
    VALIDATION_ERROR = "VALIDATION_ERROR"
    ENCRYPTION_ERROR = "ENCRYPTION_ERROR"
    DECRYPTION_ERROR = "DECRYPTION_ERROR"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    NOT_FOUND = "NOT_FOUND"
    NETWORK_ERROR = "NETWORK_ERROR"
    AUTH_REQUIRED = "AUTH_REQUIRED"


class DocumentError(Exception):
    """Базовая ошибка подсистемы ключей и документов"""

    code: ErrorCode = ErrorCode.NETWORK_ERROR

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_info(self) -> "ErrorInfo":
        return ErrorInfo(code=self.code, message=self.message, details=self.details)


class ValidationError(DocumentError):
    code = ErrorCode.VALIDATION_ERROR


class EncryptionError(DocumentError):
    code = ErrorCode.ENCRYPTION_ERROR


class DecryptionError(DocumentError):
    code = ErrorCode.DECRYPTION_ERROR


class PermissionDenied(DocumentError):
    code = ErrorCode.PERMISSION_DENIED


class KeyNotFound(PermissionDenied):
    """Ключ документа отсутствует или не расшифровывается текущей личностью"""


class NotFound(DocumentError):
    code = ErrorCode.NOT_FOUND


class NetworkError(DocumentError):
    code = ErrorCode.NETWORK_ERROR


class StorageError(NetworkError):
    """Сбой записи или чтения в хранилище"""


class NotReady(NetworkError):
    """Криптографическое состояние сессии еще не готово"""


class AuthRequired(DocumentError):
    code = ErrorCode.AUTH_REQUIRED


_ERRORS_BY_CODE = {
    ErrorCode.VALIDATION_ERROR: ValidationError,
    ErrorCode.ENCRYPTION_ERROR: EncryptionError,
    ErrorCode.DECRYPTION_ERROR: DecryptionError,
    ErrorCode.PERMISSION_DENIED: PermissionDenied,
    ErrorCode.NOT_FOUND: NotFound,
    ErrorCode.NETWORK_ERROR: NetworkError,
    ErrorCode.AUTH_REQUIRED: AuthRequired,
}


@dataclass(frozen=True)
class ErrorInfo:
    """Описание ошибки внутри Err"""
    code: ErrorCode
    message: str
    details: Any = None

    def to_exception(self) -> DocumentError:
        return _ERRORS_BY_CODE[self.code](self.message, self.details)

    def to_dict(self) -> dict:
        return {"error": self.code.value, "message": self.message}


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def success(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    error: ErrorInfo

    @property
    def success(self) -> bool:
        return False

    def unwrap(self):
        raise self.error.to_exception()


Result = Union[Ok[T], Err]


def returns_result(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[Result]]:
    """Преобразует DocumentError корутины в Err, успех - в Ok"""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs) -> Result:
        try:
            value = await func(*args, **kwargs)
        except DocumentError as e:
            logger.warning(f"{func.__qualname__} failed: {e.code.value}: {e.message}")
            return Err(e.to_info())
        return Ok(value)

    return wrapper
