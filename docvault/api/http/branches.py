from fastapi import APIRouter, Depends, status
from typing import List

from docvault.api.http.deps import get_current_session, get_vault, unwrap
from docvault.client import DocVault
from docvault.domains.documents.schemas import DocumentResponse
from docvault.domains.identity.entities import Session

router = APIRouter(tags=["branches"])


@router.post("/documents/{doc_id}/branches", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
async def create_branch(
    doc_id: str,
    session: Session = Depends(get_current_session),
    vault: DocVault = Depends(get_vault),
):
    """Создание ветки документа"""
    return DocumentResponse(**unwrap(await vault.branches.create_branch(doc_id)).to_dict())


@router.get("/documents/{doc_id}/branches", response_model=List[DocumentResponse])
async def list_branches(
    doc_id: str,
    session: Session = Depends(get_current_session),
    vault: DocVault = Depends(get_vault),
):
    """Прямые ветки документа"""
    return [DocumentResponse(**doc.to_dict()) for doc in unwrap(await vault.branches.list_branches(doc_id))]


@router.get("/documents/{doc_id}/lineage", response_model=List[DocumentResponse])
async def list_lineage(
    doc_id: str,
    session: Session = Depends(get_current_session),
    vault: DocVault = Depends(get_vault),
):
    """Все ветки линии"""
    return [DocumentResponse(**doc.to_dict()) for doc in unwrap(await vault.branches.list_lineage(doc_id))]


@router.get("/branches/{branch_id}", response_model=DocumentResponse)
async def get_branch(
    branch_id: str,
    session: Session = Depends(get_current_session),
    vault: DocVault = Depends(get_vault),
):
    """Получение ветки"""
    return DocumentResponse(**unwrap(await vault.branches.get_branch(branch_id)).to_dict())


@router.delete("/branches/{branch_id}")
async def delete_branch(
    branch_id: str,
    session: Session = Depends(get_current_session),
    vault: DocVault = Depends(get_vault),
):
    """Удаление ветки"""
    unwrap(await vault.branches.delete_branch(branch_id))
    return {"message": "Branch deleted successfully"}
