from typing import Optional

from fastapi import Depends, Request, status
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from docvault.client import DocVault
from docvault.core.errors import AuthRequired, DocumentError, ErrorCode, Result
from docvault.core.security import verify_token
from docvault.domains.identity.entities import Session

security = HTTPBearer(auto_error=False)

STATUS_BY_CODE = {
    ErrorCode.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorCode.PERMISSION_DENIED: status.HTTP_403_FORBIDDEN,
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.AUTH_REQUIRED: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.ENCRYPTION_ERROR: 422,
    ErrorCode.DECRYPTION_ERROR: 422,
    ErrorCode.NETWORK_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
}


async def document_error_handler(request: Request, exc: DocumentError) -> JSONResponse:
    """Единый формат ошибок: {"error": code, "message": ...}"""
    headers = {"WWW-Authenticate": "Bearer"} if exc.code == ErrorCode.AUTH_REQUIRED else None
    return JSONResponse(
        status_code=STATUS_BY_CODE[exc.code],
        content=exc.to_info().to_dict(),
        headers=headers,
    )


def unwrap(result: Result):
    """Значение Ok или исключение из Err для обработчика ошибок"""
    return result.unwrap()


def get_vault(request: Request) -> DocVault:
    return request.app.state.vault


async def get_current_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    vault: DocVault = Depends(get_vault),
) -> Session:
    """Зависимость для получения текущей сессии по JWT"""
    if credentials is None:
        raise AuthRequired("Could not validate credentials")

    payload = verify_token(credentials.credentials)
    if not payload:
        raise AuthRequired("Could not validate credentials")

    session = vault.sessions.current
    if session is None or payload.get("sub") != session.pub:
        raise AuthRequired("Token does not match the active session")
    return session
