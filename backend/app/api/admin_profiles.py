from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session
from datetime import datetime
import logging
from app.api.deps import get_db, admin_required
from app.models.user import User
from app.models.profile import Profile
from app.schemas.profile import ProfileVipUpdate, ProfileVipResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/profiles", tags=["admin-profiles"])


@router.patch("/{profile_id}/vip", response_model=ProfileVipResponse)
def update_profile_vip(
    profile_id: int,
    data: ProfileVipUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(admin_required)
):
    """Выдать / снять VIP (админ)"""
    profile = db.get(Profile, profile_id)
    if not profile:
        raise HTTPException(status_code=404, detail="Profile not found")

    profile.is_vip = data.is_vip
    profile.updated_at = datetime.utcnow()

    db.add(profile)
    db.commit()
    db.refresh(profile)

    logger.info(f"VIP профиля {profile.id} = {profile.is_vip} (админ {admin.id})")
    return profile
