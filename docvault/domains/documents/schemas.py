from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List


class DocumentCreate(BaseModel):
    """Схема для создания документа"""
    title: str = Field(..., max_length=255)
    content: str = Field(default="", max_length=1000000)
    tags: Optional[List[str]] = None
    is_public: bool = False


class DocumentUpdate(BaseModel):
    """Схема для обновления документа"""
    title: Optional[str] = Field(None, max_length=255)
    content: Optional[str] = Field(None, max_length=1000000)
    tags: Optional[List[str]] = None


class DocumentVisibilityUpdate(BaseModel):
    """Схема смены видимости; key - необязательный ключ для приватного режима"""
    is_public: bool
    key: Optional[str] = None


class DocumentResponse(BaseModel):
    """Схема для ответа с данными документа"""
    id: str
    title: str
    content: str
    tags: List[str]
    created_at: str
    updated_at: str
    is_public: bool
    access: List[str]
    parent: Optional[str] = None
    original: Optional[str] = None
    owner_pub: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class DocumentListItemResponse(BaseModel):
    """Элемент списка документов"""
    doc_id: str
    soul: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class DocumentMetadataResponse(BaseModel):
    """Метаданные документа"""
    id: str
    title: str
    tags: List[str]


class DocumentKeyResponse(BaseModel):
    """Экспорт ключа документа владельцем"""
    doc_id: str
    key: Optional[str] = None
