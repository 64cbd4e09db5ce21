from fastapi import APIRouter, Depends, status
from typing import List

from docvault.api.http.deps import get_current_session, get_vault, unwrap
from docvault.client import DocVault
from docvault.core.errors import NotFound
from docvault.domains.documents.schemas import (
    DocumentCreate, DocumentKeyResponse, DocumentListItemResponse,
    DocumentMetadataResponse, DocumentResponse, DocumentUpdate, DocumentVisibilityUpdate
)
from docvault.domains.identity.entities import Session

router = APIRouter(prefix="/documents", tags=["documents"])


@router.post("/", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
async def create_document(
    document_data: DocumentCreate,
    session: Session = Depends(get_current_session),
    vault: DocVault = Depends(get_vault),
):
    """Создание нового документа"""
    document = unwrap(await vault.documents.create_document(
        document_data.title,
        document_data.content,
        tags=document_data.tags,
        is_public=document_data.is_public,
    ))
    return DocumentResponse(**document.to_dict())


@router.get("/", response_model=List[DocumentListItemResponse])
async def list_documents(
    session: Session = Depends(get_current_session),
    vault: DocVault = Depends(get_vault),
):
    """Список документов без расшифровки"""
    items = unwrap(await vault.documents.list_documents())
    return [DocumentListItemResponse(**item.to_dict()) for item in items]


@router.get("/{doc_id}", response_model=DocumentResponse)
async def get_document(
    doc_id: str,
    session: Session = Depends(get_current_session),
    vault: DocVault = Depends(get_vault),
):
    """Получение документа"""
    document = unwrap(await vault.documents.get_document(doc_id))
    if document is None:
        raise NotFound("Document not found")
    return DocumentResponse(**document.to_dict())


@router.put("/{doc_id}", response_model=DocumentResponse)
async def update_document(
    doc_id: str,
    update_data: DocumentUpdate,
    session: Session = Depends(get_current_session),
    vault: DocVault = Depends(get_vault),
):
    """Обновление документа"""
    document = unwrap(await vault.documents.update_document(
        doc_id,
        title=update_data.title,
        content=update_data.content,
        tags=update_data.tags,
    ))
    return DocumentResponse(**document.to_dict())


@router.delete("/{doc_id}")
async def delete_document(
    doc_id: str,
    session: Session = Depends(get_current_session),
    vault: DocVault = Depends(get_vault),
):
    """Удаление документа"""
    unwrap(await vault.documents.delete_document(doc_id))
    return {"message": "Document deleted successfully"}


@router.get("/{doc_id}/metadata", response_model=DocumentMetadataResponse)
async def get_document_metadata(
    doc_id: str,
    session: Session = Depends(get_current_session),
    vault: DocVault = Depends(get_vault),
):
    """Заголовок и теги документа"""
    return DocumentMetadataResponse(**unwrap(await vault.documents.get_document_metadata(doc_id)))


@router.put("/{doc_id}/visibility", response_model=DocumentResponse)
async def set_visibility(
    doc_id: str,
    visibility: DocumentVisibilityUpdate,
    session: Session = Depends(get_current_session),
    vault: DocVault = Depends(get_vault),
):
    """Смена видимости всей линии документа"""
    if visibility.is_public:
        result = await vault.documents.set_document_public(doc_id)
    else:
        result = await vault.documents.set_document_private(doc_id, key=visibility.key)
    return DocumentResponse(**unwrap(result).to_dict())


@router.get("/{doc_id}/key", response_model=DocumentKeyResponse)
async def get_document_key(
    doc_id: str,
    session: Session = Depends(get_current_session),
    vault: DocVault = Depends(get_vault),
):
    """Экспорт ключа документа владельцем"""
    return DocumentKeyResponse(doc_id=doc_id, key=unwrap(await vault.documents.get_document_key(doc_id)))
