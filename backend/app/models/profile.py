from sqlmodel import SQLModel, Field, Relationship, Column, JSON
from typing import Optional, List, TYPE_CHECKING
from datetime import datetime
from enum import Enum

if TYPE_CHECKING:
    from .user import User
    from .annonce import Annonce


class MediaType(str, Enum):
    PHOTO = "photo"
    VIDEO = "video"


class Profile(SQLModel, table=True):
    __tablename__ = "profiles"
    
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", unique=True, index=True)
    
    pseudo: str = Field(unique=True, index=True, max_length=64)
    ville: str = Field(index=True, max_length=128)
    
    is_pro: bool = Field(default=False)
    is_vip: bool = Field(default=False)  # выставляет только админ
    visible: bool = Field(default=True)
    
    # Поля, которые заполняет объявление
    tarif: Optional[str] = Field(default=None, max_length=32)
    lieu: Optional[str] = Field(default=None, max_length=64)
    services: Optional[List[str]] = Field(default=None, sa_column=Column(JSON))
    description: Optional[str] = None
    
    corpulence: Optional[str] = Field(default=None, max_length=32)
    poids: Optional[int] = None
    attitude: Optional[str] = Field(default=None, max_length=32)
    boire_un_verre: Optional[bool] = None
    fume: Optional[bool] = None
    teinte_peau: Optional[str] = Field(default=None, max_length=32)
    traits: Optional[List[str]] = Field(default=None, sa_column=Column(JSON))
    poitrine: Optional[str] = Field(default=None, max_length=32)
    positions: Optional[List[str]] = Field(default=None, sa_column=Column(JSON))
    self_descriptions: Optional[List[str]] = Field(default=None, sa_column=Column(JSON))
    disponibilite: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    
    # Relationships
    user: Optional["User"] = Relationship(back_populates="profile")
    media: List["ProfileMedia"] = Relationship(back_populates="profile")
    annonces: List["Annonce"] = Relationship(back_populates="profile")


class ProfileMedia(SQLModel, table=True):
    __tablename__ = "profile_media"
    
    id: Optional[int] = Field(default=None, primary_key=True)
    profile_id: int = Field(foreign_key="profiles.id", index=True)
    type: MediaType
    url: str
    key: Optional[str] = None
    sort_order: int = Field(default=0)
    
    created_at: datetime = Field(default_factory=datetime.utcnow)
    
    # Relationships
    profile: Optional["Profile"] = Relationship(back_populates="media")
