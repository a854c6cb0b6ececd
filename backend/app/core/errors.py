from typing import Any, Dict, Optional


class PublishingError(Exception):
    """Базовая ошибка публикации. reason: машинный код для клиента."""

    reason: str = "error"
    status_code: int = 400

    def __init__(self, message: str, extra: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.extra = extra or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message, "reason": self.reason, **self.extra}


class ForbiddenError(PublishingError):
    reason = "forbidden"
    status_code = 403

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message)


class EmailUnverifiedError(PublishingError):
    reason = "email_unverified"
    status_code = 403

    def __init__(self, message: str = "Confirm your email before publishing an annonce"):
        super().__init__(message)


class PublishingDisabledError(PublishingError):
    reason = "publishing_disabled"
    status_code = 503

    def __init__(self, message: str = "Publishing is currently unavailable"):
        super().__init__(message)


class InsufficientTokensError(PublishingError):
    reason = "insufficient_tokens"
    status_code = 402

    def __init__(self, required: int, balance: int):
        self.required = required
        self.balance = balance
        super().__init__(
            f"Insufficient tokens: {required} required, {balance} available",
            extra={
                "required": required,
                "balance": balance,
                "missing": max(0, required - balance),
            },
        )


class ValidationError(PublishingError):
    reason = "validation_error"
    status_code = 400


class InvalidSelectionError(ValidationError):
    def __init__(self, category: str, option_id: Any, message: Optional[str] = None):
        self.category = category
        self.option_id = option_id
        super().__init__(
            message or f"Invalid '{category}' option: {option_id}",
            extra={"category": category, "option_id": option_id},
        )


class StackingLimitError(ValidationError):
    def __init__(self, total: int, limit: int):
        self.total = total
        self.limit = limit
        super().__init__(
            f"Too many options selected: {total} tokens, limit is {limit}",
            extra={"total": total, "limit": limit},
        )


class NotFoundError(PublishingError):
    reason = "not_found"
    status_code = 404


class ConflictError(PublishingError):
    reason = "conflict"
    status_code = 409
