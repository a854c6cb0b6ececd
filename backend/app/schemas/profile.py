from pydantic import BaseModel
from typing import Optional, List
from app.models.profile import MediaType
from app.schemas.annonce import AnnonceResponse


class ProfileMediaResponse(BaseModel):
    id: int
    type: MediaType
    url: str
    sort_order: int

    class Config:
        from_attributes = True


class ProfileDetailResponse(BaseModel):
    """Публичная карточка профиля"""
    id: int
    pseudo: str
    ville: str
    is_pro: bool
    is_vip: bool
    
    tarif: Optional[str] = None
    lieu: Optional[str] = None
    services: Optional[List[str]] = None
    description: Optional[str] = None
    disponibilite: Optional[dict] = None
    
    media: List[ProfileMediaResponse] = []
    annonce: Optional[AnnonceResponse] = None


class ProfileVipUpdate(BaseModel):
    is_vip: bool


class ProfileVipResponse(BaseModel):
    id: int
    is_vip: bool

    class Config:
        from_attributes = True
