from fastapi import APIRouter, Depends
from sqlmodel import Session, select
from pydantic import BaseModel
from typing import Optional
from app.api.deps import get_db, get_current_user
from app.models.user import User, UserRole
from app.models.profile import Profile

router = APIRouter(prefix="/api/users", tags=["users"])


# === Schemas ===

class AccountResponse(BaseModel):
    id: int
    username: str
    email: Optional[str] = None
    email_verified: bool
    tokens_balance: int
    role: UserRole
    profile_id: Optional[int] = None
    is_vip: bool = False


# === Routes ===

@router.get("/me", response_model=AccountResponse)
def get_me(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Мой аккаунт: баланс жетонов, статус email, VIP"""
    profile = db.exec(select(Profile).where(Profile.user_id == current_user.id)).first()

    return AccountResponse(
        id=current_user.id,
        username=current_user.username,
        email=current_user.email,
        email_verified=current_user.email_verified,
        tokens_balance=current_user.tokens_balance,
        role=current_user.role,
        profile_id=profile.id if profile else None,
        is_vip=bool(profile and profile.is_vip),
    )
