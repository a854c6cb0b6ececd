from pydantic import BaseModel, Field, constr
from typing import Optional, List
from datetime import datetime
from app.models.profile import MediaType
from app.schemas.publishing import PromotionSelection


class Disponibilite(BaseModel):
    date: str = Field(min_length=1, max_length=40)
    heure_debut: str = Field(min_length=1, max_length=20)
    duree: str = Field(min_length=1, max_length=20)


class MediaItem(BaseModel):
    type: MediaType
    url: str = Field(min_length=1, max_length=2048, pattern=r"^https?://")
    key: Optional[str] = Field(default=None, min_length=1)
    sort_order: Optional[int] = Field(default=None, ge=0, le=1000)


Tag = constr(min_length=1, max_length=40)


class AnnonceCreate(BaseModel):
    profile_id: int
    title: str = Field(min_length=2, max_length=120)
    body: Optional[str] = Field(default=None, max_length=5000)
    
    tarif: Optional[str] = Field(default=None, min_length=1, max_length=32)
    lieu: Optional[str] = Field(default=None, min_length=1, max_length=64)
    services: Optional[List[Tag]] = Field(default=None, max_length=20)
    description: Optional[str] = Field(default=None, max_length=5000)
    
    promote: Optional[PromotionSelection] = None
    
    corpulence: Optional[str] = Field(default=None, min_length=1, max_length=32)
    poids: Optional[int] = Field(default=None, ge=30, le=300)
    attitude: Optional[str] = Field(default=None, min_length=1, max_length=32)
    boire_un_verre: Optional[bool] = None
    fume: Optional[bool] = None
    teinte_peau: Optional[str] = Field(default=None, min_length=1, max_length=32)
    traits: Optional[List[Tag]] = Field(default=None, max_length=30)
    poitrine: Optional[str] = Field(default=None, min_length=1, max_length=32)
    positions: Optional[List[Tag]] = Field(default=None, max_length=30)
    self_descriptions: Optional[List[Tag]] = Field(default=None, max_length=30)
    disponibilite: Optional[Disponibilite] = None
    
    media: Optional[List[MediaItem]] = Field(default=None, max_length=50)


class PromotionMeta(BaseModel):
    badges: List[str] = []
    expires_at: Optional[datetime] = None
    remaining_days: Optional[int] = None


class AnnoncePublishResponse(BaseModel):
    id: int
    profile_id: int
    title: str
    body: Optional[str] = None
    created_at: datetime
    tokens_spent: int
    tokens_balance: int


class AnnonceActiveUpdate(BaseModel):
    active: bool


class AnnonceActiveResponse(BaseModel):
    id: int
    active: bool


class AnnonceResponse(BaseModel):
    id: int
    title: str
    body: Optional[str] = None
    active: bool
    created_at: datetime
    promotion_meta: PromotionMeta


class AnnonceListItem(AnnonceResponse):
    """Карточка в ленте объявлений"""
    profile_id: int
    pseudo: str
    ville: str
    tarif: Optional[str] = None
    lieu: Optional[str] = None
    is_vip: bool = False
    primary_media: Optional[str] = None


class AnnonceListResponse(BaseModel):
    items: List[AnnonceListItem]
    total: int
    page: int
    page_size: int
