from fastapi import APIRouter, Depends, Query
from sqlmodel import Session, select, col
from typing import Optional, Callable, List
from datetime import datetime
from app.api.deps import get_db, get_current_user, get_publish_workflow, get_clock
from app.models.user import User
from app.models.profile import Profile, ProfileMedia
from app.models.annonce import Annonce
from app.schemas.annonce import (
    AnnonceCreate, AnnoncePublishResponse, AnnonceActiveUpdate, AnnonceActiveResponse,
    AnnonceResponse, AnnonceListItem, AnnonceListResponse, PromotionMeta,
)
from app.services.badges import BadgeDeriver, BadgeInfo, feed_sort_key
from app.services.publishing import PublishWorkflow

router = APIRouter(prefix="/api/annonces", tags=["annonces"])


def build_promotion_meta(info: BadgeInfo) -> PromotionMeta:
    return PromotionMeta(
        badges=info.badges,
        expires_at=info.expires_at,
        remaining_days=info.remaining_days,
    )


def build_annonce_response(annonce: Annonce, info: BadgeInfo) -> dict:
    """Ответ объявления с вычисленными бейджами"""
    return {
        "id": annonce.id,
        "title": annonce.title,
        "body": annonce.body,
        "active": annonce.active,
        "created_at": annonce.created_at,
        "promotion_meta": build_promotion_meta(info),
    }


@router.post("", response_model=AnnoncePublishResponse)
def publish_annonce(
    data: AnnonceCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    workflow: PublishWorkflow = Depends(get_publish_workflow)
):
    """Опубликовать / переиздать объявление своего профиля"""
    result = workflow.publish(db, current_user, data)
    annonce = result.annonce

    return AnnoncePublishResponse(
        id=annonce.id,
        profile_id=annonce.profile_id,
        title=annonce.title,
        body=annonce.body,
        created_at=annonce.created_at,
        tokens_spent=result.quote.total_tokens,
        tokens_balance=result.tokens_balance,
    )


@router.get("", response_model=AnnonceListResponse)
def list_annonces(
    ville: Optional[str] = Query(None),
    services: Optional[List[str]] = Query(None),
    vip_only: bool = Query(False),
    pro_only: bool = Query(False),
    page: int = Query(1, ge=1),
    page_size: int = Query(24, ge=1, le=100),
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock)
):
    """Лента активных объявлений: TOP, затем свежие подъёмы, PREMIUM, URGENT"""
    stmt = (
        select(Annonce, Profile)
        .join(Profile, Annonce.profile_id == Profile.id)
        .where(Annonce.active == True, Profile.visible == True)
    )

    if ville:
        stmt = stmt.where(col(Profile.ville).ilike(ville.strip()))

    if vip_only:
        stmt = stmt.where(Profile.is_vip == True)

    if pro_only:
        stmt = stmt.where(Profile.is_pro == True)

    rows = db.exec(stmt).all()

    # services хранятся JSON-списком: пересечение считаем здесь
    wanted = {s.strip() for s in services or [] if s.strip()}
    if wanted:
        rows = [
            (annonce, profile) for annonce, profile in rows
            if wanted.intersection(profile.services or [])
        ]

    now = clock()
    deriver = BadgeDeriver()
    entries = [
        (annonce, profile, deriver.derive(annonce.promotion, now))
        for annonce, profile in rows
    ]
    entries.sort(key=lambda e: feed_sort_key(e[2], e[0].created_at))

    total = len(entries)

    # Пагинация
    offset = (page - 1) * page_size
    entries = entries[offset:offset + page_size]

    # Первое медиа каждого профиля на странице
    primary_media = {}
    profile_ids = [profile.id for _, profile, _ in entries]
    if profile_ids:
        media_rows = db.exec(
            select(ProfileMedia)
            .where(col(ProfileMedia.profile_id).in_(profile_ids))
            .order_by(ProfileMedia.profile_id, ProfileMedia.sort_order)
        ).all()
        for media in media_rows:
            primary_media.setdefault(media.profile_id, media.url)

    items = [
        AnnonceListItem(
            **build_annonce_response(annonce, info),
            profile_id=profile.id,
            pseudo=profile.pseudo,
            ville=profile.ville,
            tarif=profile.tarif,
            lieu=profile.lieu,
            is_vip=profile.is_vip,
            primary_media=primary_media.get(profile.id),
        )
        for annonce, profile, info in entries
    ]

    return AnnonceListResponse(
        items=items,
        total=total,
        page=page,
        page_size=page_size
    )


@router.patch("/{annonce_id}", response_model=AnnonceActiveResponse)
def update_annonce_active(
    annonce_id: int,
    data: AnnonceActiveUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    workflow: PublishWorkflow = Depends(get_publish_workflow)
):
    """Снять / вернуть своё объявление"""
    annonce = workflow.set_active(db, current_user, annonce_id, data.active)
    return AnnonceActiveResponse(id=annonce.id, active=annonce.active)


def latest_annonce_response(db: Session, profile_id: int, now: datetime) -> Optional[AnnonceResponse]:
    annonce = db.exec(
        select(Annonce)
        .where(Annonce.profile_id == profile_id, Annonce.active == True)
        .order_by(Annonce.created_at.desc())
    ).first()
    if not annonce:
        return None

    info = BadgeDeriver().derive(annonce.promotion, now)
    return AnnonceResponse(**build_annonce_response(annonce, info))
