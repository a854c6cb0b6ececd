from typing import Dict, Optional
from app.core.errors import InvalidSelectionError, StackingLimitError, ValidationError
from app.schemas.publishing import PromotionSelection, OptionChoice, CategoryTokens, Quote
from app.services.publishing_config import PromotionConfig, AnyOption


class PricingEngine:
    """
    Расчёт стоимости публикации в жетонах.
    Чистая функция от (конфиг, выбор, баланс, vip), без состояния и I/O.
    """

    def __init__(self, config: PromotionConfig):
        self.config = config

    def option_tokens(self, category: str, choice: OptionChoice) -> int:
        """Цена выбранной опции; неизвестный id даёт 0 (только для предпросмотра)"""
        option = self.config.find_option(category, choice.option_id)
        if option is None:
            return 0
        # Продление за деньги оплачивается вне жетонов
        if getattr(choice, "payment_mode", "tokens") == "money":
            return 0
        return option.tokens

    def vip_discount_applies(self, selection: PromotionSelection, is_vip: bool) -> bool:
        """Скидка VIP только за полный комплект категорий из rules.vip.definition"""
        definition = self.config.rules.vip.definition
        if not is_vip or not definition:
            return False
        selected = selection.selected()
        return all(name in selected for name in definition)

    def quote(
        self,
        selection: Optional[PromotionSelection],
        balance: int,
        is_vip: bool = False,
    ) -> Quote:
        selection = selection or PromotionSelection()
        publication = self.config.publication
        publication_tokens = publication.token_required if publication.enabled else 0

        category_tokens = CategoryTokens(**{
            name: self.option_tokens(name, choice)
            for name, choice in selection.selected().items()
        })
        subtotal = publication_tokens + sum(category_tokens.model_dump().values())

        vip_discount = 0
        if self.vip_discount_applies(selection, is_vip):
            vip_discount = self.config.rules.vip.discount_tokens

        total_tokens = max(0, subtotal - vip_discount)

        return Quote(
            publication_tokens=publication_tokens,
            category_tokens=category_tokens,
            subtotal=subtotal,
            vip_discount=vip_discount,
            total_tokens=total_tokens,
            remaining_tokens=max(0, balance - total_tokens),
            allowed=balance >= total_tokens,
        )

    def validate(self, selection: Optional[PromotionSelection]) -> Dict[str, AnyOption]:
        """
        Строгая проверка выбора перед записью.
        Возвращает {category: option}; неизвестный id или недоступный
        способ оплаты: InvalidSelectionError.
        """
        resolved = {}
        if selection is None:
            return resolved

        for name, choice in selection.selected().items():
            option = self.config.require_option(name, choice.option_id)
            payment_mode = getattr(choice, "payment_mode", "tokens")
            if payment_mode not in self.config.category(name).payment_modes:
                raise InvalidSelectionError(
                    name,
                    choice.option_id,
                    message=f"Payment mode '{payment_mode}' is not available for '{name}'",
                )
            resolved[name] = option

        return resolved

    def check_stacking(self, quote: Quote) -> None:
        limit = self.config.rules.stacking.max_total_tokens
        if limit is not None and quote.total_tokens > limit:
            raise StackingLimitError(quote.total_tokens, limit)

    def preview(
        self,
        selection: Optional[PromotionSelection],
        balance: int,
        is_vip: bool = False,
    ) -> Quote:
        """Расчёт для клиента: quote плюс причина, по которой публикация будет отклонена"""
        quote = self.quote(selection, balance, is_vip)
        if not self.config.publication.enabled:
            return quote.model_copy(update={"rejected_reason": "publishing_disabled"})
        try:
            self.validate(selection)
            self.check_stacking(quote)
        except ValidationError as e:
            return quote.model_copy(update={"rejected_reason": e.reason})

        if not quote.allowed:
            return quote.model_copy(update={"rejected_reason": "insufficient_tokens"})
        return quote
