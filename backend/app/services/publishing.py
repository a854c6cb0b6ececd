"""
Публикация / переиздание объявления.

Все проверки (владелец, email, выключатель публикации, выбор опций, баланс)
выполняются до первой записи. Запись идёт одной транзакцией: объявление,
поля профиля, медиа, списание жетонов и карта promotion либо применяются
целиком, либо откатываются.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Tuple
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select
from app.core.errors import (
    PublishingError,
    ForbiddenError,
    EmailUnverifiedError,
    PublishingDisabledError,
    InsufficientTokensError,
    NotFoundError,
    ConflictError,
)
from app.models.user import User
from app.models.profile import Profile, ProfileMedia
from app.models.annonce import Annonce
from app.schemas.annonce import AnnonceCreate, MediaItem
from app.schemas.publishing import Quote
from app.services.badges import build_promotion
from app.services.pricing import PricingEngine
from app.services.publishing_config import PromotionConfig, AnyOption

logger = logging.getLogger(__name__)

# Поля профиля, которые переписывает объявление
PROFILE_FIELDS = (
    "tarif",
    "lieu",
    "services",
    "description",
    "corpulence",
    "poids",
    "attitude",
    "boire_un_verre",
    "fume",
    "teinte_peau",
    "traits",
    "poitrine",
    "positions",
    "self_descriptions",
    "disponibilite",
)


@dataclass
class PublishResult:
    annonce: Annonce
    quote: Quote
    tokens_balance: int


class PublishWorkflow:

    def __init__(
        self,
        config: PromotionConfig,
        require_verified_email: bool = True,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.config = config
        self.pricing = PricingEngine(config)
        self.require_verified_email = require_verified_email
        self.clock = clock

    # === Проверки ===

    def check(
        self, db: Session, user: User, payload: AnnonceCreate
    ) -> Tuple[Profile, Quote, Dict[str, AnyOption]]:
        """Предусловия по порядку; первая неудача поднимает исключение"""
        profile = db.get(Profile, payload.profile_id)
        if not profile or profile.user_id != user.id:
            raise ForbiddenError()

        if self.require_verified_email and not (user.email and user.email_verified):
            raise EmailUnverifiedError()

        if not self.config.publication.enabled:
            raise PublishingDisabledError()

        resolved = self.pricing.validate(payload.promote)
        quote = self.pricing.quote(payload.promote, user.tokens_balance, profile.is_vip)
        self.pricing.check_stacking(quote)
        if not quote.allowed:
            raise InsufficientTokensError(quote.total_tokens, user.tokens_balance)

        return profile, quote, resolved

    # === Публикация ===

    def publish(self, db: Session, user: User, payload: AnnonceCreate) -> PublishResult:
        try:
            profile, quote, resolved = self.check(db, user, payload)
        except PublishingError as e:
            logger.info(
                f"Публикация отклонена: user={user.id} profile={payload.profile_id} reason={e.reason}"
            )
            raise

        now = self.clock()
        profile_id = profile.id

        try:
            # Блокируем строку аккаунта: публикации одного пользователя идут по очереди
            account = db.exec(
                select(User)
                .where(User.id == user.id)
                .with_for_update()
                .execution_options(populate_existing=True)
            ).one()
            if account.tokens_balance < quote.total_tokens:
                raise InsufficientTokensError(quote.total_tokens, account.tokens_balance)

            annonce = self._upsert_annonce(db, profile, payload, resolved, now)
            self._update_profile(db, profile, payload, now)
            if payload.media:
                self._replace_media(db, profile.id, payload.media)
            self._deduct_tokens(db, account, quote.total_tokens)

            db.commit()
        except IntegrityError:
            db.rollback()
            logger.warning(f"Конфликт публикации: profile={profile_id}")
            raise ConflictError("Another publication for this profile is in progress, retry")
        except PublishingError:
            db.rollback()
            raise
        except Exception:
            db.rollback()
            logger.exception(f"Транзакция публикации откатана: profile={profile_id}")
            raise

        db.refresh(annonce)
        db.refresh(account)
        logger.info(
            f"Объявление {annonce.id} опубликовано: profile={profile_id}, "
            f"списано {quote.total_tokens}, остаток {account.tokens_balance}"
        )
        return PublishResult(annonce=annonce, quote=quote, tokens_balance=account.tokens_balance)

    def _upsert_annonce(
        self,
        db: Session,
        profile: Profile,
        payload: AnnonceCreate,
        resolved: Dict[str, AnyOption],
        now: datetime,
    ) -> Annonce:
        """Активное объявление профиля обновляется на месте, иначе создаётся новое"""
        payment_modes = {}
        if payload.promote and payload.promote.extended:
            payment_modes["extended"] = payload.promote.extended.payment_mode

        title = payload.title.strip()
        body = payload.body.strip() if payload.body is not None else None

        annonce = db.exec(
            select(Annonce)
            .where(Annonce.profile_id == profile.id, Annonce.active == True)
            .order_by(Annonce.created_at.desc())
        ).first()

        if annonce:
            annonce.title = title
            annonce.body = body
            annonce.active = True
            annonce.promotion = build_promotion(
                resolved, now, previous=annonce.promotion, payment_modes=payment_modes
            )
            annonce.updated_at = now
        else:
            annonce = Annonce(
                profile_id=profile.id,
                title=title,
                body=body,
                promotion=build_promotion(resolved, now, payment_modes=payment_modes),
                created_at=now,
                updated_at=now,
            )

        db.add(annonce)
        db.flush()
        return annonce

    def _update_profile(
        self, db: Session, profile: Profile, payload: AnnonceCreate, now: datetime
    ) -> None:
        update_data = payload.model_dump(include=set(PROFILE_FIELDS), exclude_unset=True)
        for key, value in update_data.items():
            setattr(profile, key, value)

        profile.is_pro = True
        profile.updated_at = now
        db.add(profile)

    def _replace_media(self, db: Session, profile_id: int, media: List[MediaItem]) -> None:
        """Медиа из формы объявления заменяют все прежние"""
        existing = db.exec(select(ProfileMedia).where(ProfileMedia.profile_id == profile_id)).all()
        for item in existing:
            db.delete(item)
        db.flush()

        for idx, item in enumerate(media):
            db.add(ProfileMedia(
                profile_id=profile_id,
                type=item.type,
                url=item.url,
                key=item.key,
                sort_order=item.sort_order if item.sort_order is not None else idx,
            ))

    def _deduct_tokens(self, db: Session, account: User, amount: int) -> None:
        account.tokens_balance -= amount
        db.add(account)
        db.flush()

    # === Активация / деактивация ===

    def set_active(self, db: Session, user: User, annonce_id: int, active: bool) -> Annonce:
        """Владелец включает/снимает своё объявление"""
        annonce = db.get(Annonce, annonce_id)
        if not annonce:
            raise NotFoundError("Annonce not found")

        profile = db.get(Profile, annonce.profile_id)
        if not profile or profile.user_id != user.id:
            raise ForbiddenError()

        return self._apply_active(db, annonce, active)

    def admin_set_active(self, db: Session, annonce_id: int, active: bool) -> Annonce:
        annonce = db.get(Annonce, annonce_id)
        if not annonce:
            raise NotFoundError("Annonce not found")
        return self._apply_active(db, annonce, active)

    def _apply_active(self, db: Session, annonce: Annonce, active: bool) -> Annonce:
        if active and not annonce.active:
            other = db.exec(
                select(Annonce).where(
                    Annonce.profile_id == annonce.profile_id,
                    Annonce.active == True,
                    Annonce.id != annonce.id,
                )
            ).first()
            if other:
                raise ConflictError("Profile already has an active annonce")

        annonce.active = active
        annonce.updated_at = self.clock()
        db.add(annonce)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictError("Profile already has an active annonce")

        db.refresh(annonce)
        return annonce
