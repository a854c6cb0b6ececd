from sqlmodel import SQLModel, Field, Relationship, Column, JSON
from sqlalchemy import Index, text
from typing import Optional, TYPE_CHECKING
from datetime import datetime

if TYPE_CHECKING:
    from .profile import Profile


class Annonce(SQLModel, table=True):
    __tablename__ = "annonces"
    # Не больше одного активного объявления на профиль
    __table_args__ = (
        Index(
            "uq_annonces_active_profile",
            "profile_id",
            unique=True,
            sqlite_where=text("active = 1"),
            postgresql_where=text("active"),
        ),
    )
    
    id: Optional[int] = Field(default=None, primary_key=True)
    profile_id: int = Field(foreign_key="profiles.id", index=True)
    
    title: str = Field(max_length=120)
    body: Optional[str] = None
    
    # {category: {option_id, days, tokens, activated_at, expires_at, ...}}
    promotion: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    
    active: bool = Field(default=True)
    
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    
    # Relationships
    profile: Optional["Profile"] = Relationship(back_populates="annonces")
