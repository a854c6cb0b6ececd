"""
Таблица тарифов публикации и продвижения объявлений.

Конфиг неизменяемый: загружается один раз при старте (встроенная таблица
или JSON-файл из PUBLISHING_CONFIG_PATH) и передаётся в PricingEngine /
PublishWorkflow явно, через зависимость get_publishing_config.
"""
import json
import logging
from pathlib import Path
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field, model_validator

from app.core.errors import InvalidSelectionError

logger = logging.getLogger(__name__)

CategoryName = Literal["extended", "featured", "autorenew", "urgent"]
PaymentMode = Literal["tokens", "money"]

CATEGORIES = ("extended", "featured", "autorenew", "urgent")

# Скидка на денежные цены продления, которую видит клиент
PROMO_FACTOR = 0.7
PROMO_PERCENT = 30

DEFAULT_MAX_TOTAL_TOKENS = 20


class _ConfigModel(BaseModel):
    class Config:
        frozen = True
        populate_by_name = True


class PublicationConfig(_ConfigModel):
    enabled: bool = True
    token_required: int = Field(default=0, ge=0, alias="tokenRequired")
    label: str = "Publication standard"
    blocking: bool = True


class PromotionOption(_ConfigModel):
    id: int = Field(ge=1)
    days: int = Field(gt=0)
    tokens: int = Field(ge=0)


class ExtendedOption(PromotionOption):
    price: int = Field(default=0, ge=0)


class AutorenewOption(PromotionOption):
    every_hours: int = Field(gt=0, alias="everyHours")


AnyOption = Union[ExtendedOption, AutorenewOption, PromotionOption]


class PromotionCategory(_ConfigModel):
    badge: str
    payment_modes: List[PaymentMode] = Field(default=["tokens"], alias="paymentMode")
    options: List[PromotionOption] = []

    @model_validator(mode="after")
    def check_unique_ids(self):
        ids = [o.id for o in self.options]
        if len(ids) != len(set(ids)):
            raise ValueError(f"duplicate option id in {self.badge} options: {ids}")
        return self


class ExtendedCategory(PromotionCategory):
    badge: str = "PROLONGATION"
    options: List[ExtendedOption] = []


class FeaturedCategory(PromotionCategory):
    badge: str = "PREMIUM"


class AutorenewCategory(PromotionCategory):
    badge: str = "TOP"
    options: List[AutorenewOption] = []


class UrgentCategory(PromotionCategory):
    badge: str = "URGENT"


class PromoteConfig(_ConfigModel):
    extended: ExtendedCategory = ExtendedCategory()
    featured: FeaturedCategory = FeaturedCategory()
    autorenew: AutorenewCategory = AutorenewCategory()
    urgent: UrgentCategory = UrgentCategory()


class VipRule(_ConfigModel):
    definition: List[CategoryName] = []
    discount_tokens: int = Field(default=0, ge=0, alias="discountTokens")


class StackingRule(_ConfigModel):
    # Ключ не задан: действует лимит по умолчанию; явный null снимает лимит
    max_total_tokens: Optional[int] = Field(default=DEFAULT_MAX_TOTAL_TOKENS, ge=0, alias="maxTotalTokens")


class Rules(_ConfigModel):
    vip: VipRule = VipRule()
    stacking: StackingRule = StackingRule()


class PromotionConfig(_ConfigModel):
    publication: PublicationConfig = PublicationConfig()
    promote: PromoteConfig = PromoteConfig()
    rules: Rules = Rules()

    def category(self, name: str) -> PromotionCategory:
        if name not in CATEGORIES:
            raise KeyError(name)
        return getattr(self.promote, name)

    def find_option(self, name: str, option_id: int) -> Optional[AnyOption]:
        """Опция категории по id или None"""
        for option in self.category(name).options:
            if option.id == option_id:
                return option
        return None

    def require_option(self, name: str, option_id: int) -> AnyOption:
        """Как find_option, но неизвестный id это ошибка, а не нулевая цена"""
        option = self.find_option(name, option_id)
        if option is None:
            raise InvalidSelectionError(name, option_id)
        return option


DEFAULT_PUBLISHING_CONFIG = PromotionConfig.model_validate({
    "publication": {
        "enabled": True,
        "tokenRequired": 1,
        "label": "Publication standard",
        "blocking": True,
    },
    "promote": {
        "extended": {
            # Оплата деньгами требует платёжной интеграции, пока только жетоны
            "paymentMode": ["tokens"],
            "options": [
                {"id": 1, "days": 45, "tokens": 1, "price": 4600},
                {"id": 2, "days": 90, "tokens": 2, "price": 7900},
                {"id": 3, "days": 180, "tokens": 3, "price": 12500},
                {"id": 4, "days": 365, "tokens": 5, "price": 23100},
            ],
        },
        "featured": {
            "options": [
                {"id": 1, "days": 3, "tokens": 1},
                {"id": 2, "days": 7, "tokens": 2},
                {"id": 3, "days": 15, "tokens": 3},
                {"id": 4, "days": 30, "tokens": 4},
                {"id": 5, "days": 45, "tokens": 5},
                {"id": 6, "days": 60, "tokens": 6},
                {"id": 7, "days": 90, "tokens": 7},
            ],
        },
        "autorenew": {
            "options": [
                {"id": 1, "everyHours": 1, "days": 3, "tokens": 2},
                {"id": 2, "everyHours": 1, "days": 7, "tokens": 4},
                {"id": 3, "everyHours": 1, "days": 15, "tokens": 6},
                {"id": 4, "everyHours": 1, "days": 30, "tokens": 7},
                {"id": 5, "everyHours": 4, "days": 30, "tokens": 5},
                {"id": 6, "everyHours": 3, "days": 30, "tokens": 6},
                {"id": 7, "everyHours": 2, "days": 30, "tokens": 6},
            ],
        },
        "urgent": {
            "options": [
                {"id": 2, "days": 7, "tokens": 1},
                {"id": 3, "days": 15, "tokens": 2},
                {"id": 4, "days": 30, "tokens": 3},
            ],
        },
    },
    "rules": {
        "vip": {"definition": ["featured", "autorenew"], "discountTokens": 1},
        "stacking": {"maxTotalTokens": 20},
    },
})


def load_publishing_config(path: Optional[str] = None) -> PromotionConfig:
    """Встроенная таблица или JSON-файл (ошибка валидации роняет старт)"""
    if not path:
        logger.info("Таблица тарифов: встроенная")
        return DEFAULT_PUBLISHING_CONFIG

    raw = Path(path).read_text(encoding="utf-8")
    config = PromotionConfig.model_validate(json.loads(raw))
    logger.info(f"Таблица тарифов загружена из {path}")
    return config


def public_payload(config: PromotionConfig) -> dict:
    """
    То, что отдаётся клиенту для предварительного расчёта.
    Правила (vip, stacking) остаются на бэкенде.
    """
    promote = config.promote.model_dump()
    for option in promote["extended"]["options"]:
        option["price_promo"] = round(option["price"] * PROMO_FACTOR)
        option["promo_percent"] = PROMO_PERCENT

    return {
        "publication": config.publication.model_dump(),
        "promote": promote,
    }
