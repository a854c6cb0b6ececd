from sqlmodel import SQLModel, Field, Relationship
from typing import Optional, TYPE_CHECKING
from datetime import datetime
from enum import Enum

if TYPE_CHECKING:
    from .profile import Profile


class UserRole(str, Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"


class User(SQLModel, table=True):
    __tablename__ = "users"
    
    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(unique=True, index=True, max_length=64)
    email: Optional[str] = Field(default=None, max_length=160)
    email_verified: bool = Field(default=False)
    
    # Баланс жетонов: меняется только публикацией/продвижением и покупкой
    tokens_balance: int = Field(default=1, ge=0)
    
    role: UserRole = Field(default=UserRole.CUSTOMER)
    is_active: bool = Field(default=True)
    
    created_at: datetime = Field(default_factory=datetime.utcnow)
    
    # Relationships
    profile: Optional["Profile"] = Relationship(back_populates="user")
