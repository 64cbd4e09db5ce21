from fastapi import APIRouter, Depends, status
from typing import List

from docvault.api.http.deps import get_current_session, get_vault, unwrap
from docvault.client import DocVault
from docvault.domains.documents.entities import AccessGrant, SharedDocNotification
from docvault.domains.documents.schemas import DocumentResponse
from docvault.domains.identity.entities import Session
from docvault.domains.sharing.schemas import AccessGrantResponse, SharedDocResponse, ShareRequest

router = APIRouter(tags=["sharing"])


def _grant_response(grant: AccessGrant) -> AccessGrantResponse:
    return AccessGrantResponse(
        user_id=grant.user_id,
        sender_epub=grant.sender_epub,
        granted_at=grant.granted_at,
        has_key=bool(grant.encrypted_doc_key),
    )


def _shared_response(notification: SharedDocNotification) -> SharedDocResponse:
    return SharedDocResponse(
        sender_alias=notification.sender_alias,
        sender_pub=notification.sender_pub,
        doc_id=notification.doc_id,
        is_public=notification.is_public,
        shared_at=notification.shared_at,
        recipient=notification.recipient,
    )


@router.post("/documents/{doc_id}/share", response_model=AccessGrantResponse, status_code=status.HTTP_201_CREATED)
async def share_document(
    doc_id: str,
    share_data: ShareRequest,
    session: Session = Depends(get_current_session),
    vault: DocVault = Depends(get_vault),
):
    """Выдача доступа к документу"""
    return _grant_response(unwrap(await vault.sharing.share_document(doc_id, share_data.username)))


@router.delete("/documents/{doc_id}/share/{user_id}")
async def unshare_document(
    doc_id: str,
    user_id: str,
    session: Session = Depends(get_current_session),
    vault: DocVault = Depends(get_vault),
):
    """Отзыв доступа; ключ документа не ротируется"""
    unwrap(await vault.sharing.unshare_document(doc_id, user_id))
    return {"message": "Access revoked"}


@router.get("/shared", response_model=List[SharedDocResponse])
async def list_shared_with_me(
    session: Session = Depends(get_current_session),
    vault: DocVault = Depends(get_vault),
):
    """Документы, к которым выдан доступ текущему пользователю"""
    return [_shared_response(item) for item in unwrap(await vault.sharing.list_shared_with_me())]


@router.get("/shared/outgoing", response_model=List[SharedDocResponse])
async def list_outgoing_shares(
    session: Session = Depends(get_current_session),
    vault: DocVault = Depends(get_vault),
):
    """Доступы, выданные текущим пользователем"""
    return [_shared_response(item) for item in unwrap(await vault.sharing.list_outgoing_shares())]


@router.get("/shared/{owner_pub}/{doc_id}", response_model=DocumentResponse)
async def open_shared_document(
    owner_pub: str,
    doc_id: str,
    session: Session = Depends(get_current_session),
    vault: DocVault = Depends(get_vault),
):
    """Открытие чужого документа по праву доступа"""
    document = unwrap(await vault.sharing.open_shared_document(owner_pub, doc_id))
    return DocumentResponse(**document.to_dict())
