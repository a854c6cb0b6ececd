from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session
from typing import Callable
from datetime import datetime
from app.api.deps import get_db, get_clock
from app.api.annonces import latest_annonce_response
from app.models.profile import Profile
from app.schemas.profile import ProfileDetailResponse, ProfileMediaResponse

router = APIRouter(prefix="/api/profiles", tags=["profiles"])


@router.get("/{profile_id}", response_model=ProfileDetailResponse)
def get_profile(
    profile_id: int,
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock)
):
    """Публичный профиль с медиа и текущим объявлением"""
    profile = db.get(Profile, profile_id)
    if not profile or not profile.visible:
        raise HTTPException(status_code=404, detail="Profile not found")

    return ProfileDetailResponse(
        id=profile.id,
        pseudo=profile.pseudo,
        ville=profile.ville,
        is_pro=profile.is_pro,
        is_vip=profile.is_vip,
        tarif=profile.tarif,
        lieu=profile.lieu,
        services=profile.services,
        description=profile.description,
        disponibilite=profile.disponibilite,
        media=[
            ProfileMediaResponse.model_validate(m)
            for m in sorted(profile.media, key=lambda x: x.sort_order)
        ],
        annonce=latest_annonce_response(db, profile.id, clock()),
    )
