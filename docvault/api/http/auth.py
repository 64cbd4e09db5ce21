from fastapi import APIRouter, Depends, status
from typing import List

from docvault.api.http.deps import get_current_session, get_vault, unwrap
from docvault.client import DocVault
from docvault.domains.identity.entities import Session
from docvault.domains.identity.schemas import IdentityResponse, Token, UserCreate, UserLogin

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post("/register", response_model=IdentityResponse, status_code=status.HTTP_201_CREATED)
async def register(user_data: UserCreate, vault: DocVault = Depends(get_vault)):
    """Регистрация новой личности"""
    identity = unwrap(await vault.identity.register_user(user_data.alias, user_data.password))
    return IdentityResponse(**identity.to_dict())


@router.post("/login", response_model=Token)
async def login(login_data: UserLogin, vault: DocVault = Depends(get_vault)):
    """Вход пользователя"""
    token = unwrap(await vault.identity.login_user(login_data.alias, login_data.password))
    return {"access_token": token, "token_type": "bearer"}


@router.post("/logout")
async def logout(
    session: Session = Depends(get_current_session),
    vault: DocVault = Depends(get_vault),
):
    """Выход пользователя"""
    unwrap(await vault.identity.sign_out())
    return {"message": "Successfully logged out"}


@router.get("/me", response_model=IdentityResponse)
async def me(session: Session = Depends(get_current_session)):
    """Текущая личность"""
    return IdentityResponse(**session.public_identity().to_dict())


@router.get("/users/{alias}", response_model=List[IdentityResponse])
async def discover_users(
    alias: str,
    session: Session = Depends(get_current_session),
    vault: DocVault = Depends(get_vault),
):
    """Поиск пользователей по псевдониму"""
    identities = unwrap(await vault.identity.discover_users(alias))
    return [IdentityResponse(**identity.to_dict()) for identity in identities]
