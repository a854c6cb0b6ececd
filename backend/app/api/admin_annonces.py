from fastapi import APIRouter, Depends, Query
from sqlmodel import Session, select
from typing import List
from datetime import datetime
from pydantic import BaseModel
from app.api.deps import get_db, admin_required, get_publish_workflow
from app.models.user import User
from app.models.profile import Profile
from app.models.annonce import Annonce
from app.schemas.annonce import AnnonceActiveUpdate, AnnonceActiveResponse
from app.services.publishing import PublishWorkflow

router = APIRouter(prefix="/api/admin/annonces", tags=["admin-annonces"])


class AdminAnnonceItem(BaseModel):
    id: int
    title: str
    active: bool
    created_at: datetime
    profile_id: int
    pseudo: str


@router.get("/", response_model=List[AdminAnnonceItem])
def list_annonces(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    _: User = Depends(admin_required)
):
    """Все объявления, включая снятые (админ)"""
    stmt = (
        select(Annonce, Profile)
        .join(Profile, Annonce.profile_id == Profile.id)
        .order_by(Annonce.created_at.desc())
        .offset(skip)
        .limit(limit)
    )

    return [
        AdminAnnonceItem(
            id=annonce.id,
            title=annonce.title,
            active=annonce.active,
            created_at=annonce.created_at,
            profile_id=profile.id,
            pseudo=profile.pseudo,
        )
        for annonce, profile in db.exec(stmt).all()
    ]


@router.patch("/{annonce_id}", response_model=AnnonceActiveResponse)
def update_annonce(
    annonce_id: int,
    data: AnnonceActiveUpdate,
    db: Session = Depends(get_db),
    _: User = Depends(admin_required),
    workflow: PublishWorkflow = Depends(get_publish_workflow)
):
    """Модерация: снять / вернуть объявление (админ)"""
    annonce = workflow.admin_set_active(db, annonce_id, data.active)
    return AnnonceActiveResponse(id=annonce.id, active=annonce.active)
