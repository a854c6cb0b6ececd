from fastapi import APIRouter, Depends, Response
from sqlmodel import Session, select
from app.api.deps import get_db, get_current_user, get_publishing_config
from app.models.user import User
from app.models.profile import Profile
from app.schemas.publishing import Quote, QuoteRequest
from app.services.pricing import PricingEngine
from app.services.publishing_config import PromotionConfig, public_payload

router = APIRouter(prefix="/api/publishing", tags=["publishing"])


@router.get("/config")
def get_config(
    response: Response,
    config: PromotionConfig = Depends(get_publishing_config)
):
    """Тарифы для расчёта на клиенте (источник истины — сервер)"""
    response.headers["Cache-Control"] = "no-store"
    return public_payload(config)


@router.post("/quote", response_model=Quote)
def get_quote(
    data: QuoteRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    config: PromotionConfig = Depends(get_publishing_config)
):
    """Предварительный расчёт для текущего баланса (ничего не списывает)"""
    profile = db.exec(select(Profile).where(Profile.user_id == current_user.id)).first()
    is_vip = bool(profile and profile.is_vip)
    return PricingEngine(config).preview(data.promote, current_user.tokens_balance, is_vip)
