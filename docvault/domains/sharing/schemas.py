from pydantic import BaseModel, Field
from typing import Optional


class ShareRequest(BaseModel):
    """Схема запроса на выдачу доступа"""
    username: str = Field(..., min_length=1, max_length=100)


class AccessGrantResponse(BaseModel):
    """Выданное право доступа"""
    user_id: str
    sender_epub: str
    granted_at: Optional[str] = None
    has_key: bool


class SharedDocResponse(BaseModel):
    """Уведомление о доступе к документу"""
    sender_alias: str
    sender_pub: str
    doc_id: str
    is_public: bool
    shared_at: Optional[str] = None
    recipient: Optional[str] = None
