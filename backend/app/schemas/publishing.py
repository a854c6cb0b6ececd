from pydantic import BaseModel, Field
from typing import Optional, Dict, Literal


class OptionChoice(BaseModel):
    option_id: int = Field(ge=1, le=1000, alias="optionId")

    class Config:
        populate_by_name = True


class ExtendedChoice(OptionChoice):
    payment_mode: Literal["tokens", "money"] = Field(default="tokens", alias="paymentMode")


class PromotionSelection(BaseModel):
    """Выбор опций продвижения: не больше одной на категорию"""
    extended: Optional[ExtendedChoice] = None
    featured: Optional[OptionChoice] = None
    autorenew: Optional[OptionChoice] = None
    urgent: Optional[OptionChoice] = None

    def selected(self) -> Dict[str, OptionChoice]:
        """Только выбранные категории: {category: choice}"""
        return {
            name: choice
            for name, choice in (
                ("extended", self.extended),
                ("featured", self.featured),
                ("autorenew", self.autorenew),
                ("urgent", self.urgent),
            )
            if choice is not None
        }


class CategoryTokens(BaseModel):
    extended: int = 0
    featured: int = 0
    autorenew: int = 0
    urgent: int = 0


class Quote(BaseModel):
    publication_tokens: int
    category_tokens: CategoryTokens
    subtotal: int
    vip_discount: int
    total_tokens: int
    remaining_tokens: int
    allowed: bool
    # Код отказа, который вернёт публикация (выбор, лимит, баланс)
    rejected_reason: Optional[str] = None

    class Config:
        frozen = True


class QuoteRequest(BaseModel):
    promote: Optional[PromotionSelection] = None
