from datetime import datetime, timedelta, timezone
from math import ceil
from typing import Dict, List, Optional, Tuple
from pydantic import BaseModel
from app.services.publishing_config import AnyOption, CATEGORIES


BADGES = {
    "featured": "PREMIUM",
    "autorenew": "TOP",
    "urgent": "URGENT",
    "extended": "PROLONGATION",
}

# Порядок отображения бейджей
BADGE_ORDER = ("featured", "autorenew", "urgent", "extended")

EPOCH = datetime(1970, 1, 1)


class BadgeInfo(BaseModel):
    badges: List[str] = []
    expires_at: Optional[datetime] = None
    remaining_days: Optional[int] = None

    # Для сортировки ленты
    top_active: bool = False
    featured_active: bool = False
    urgent_active: bool = False
    top_every_hours: Optional[int] = None
    top_last_bump_at: Optional[datetime] = None


def parse_timestamp(value) -> Optional[datetime]:
    """ISO-строка или datetime -> naive UTC; мусор -> None"""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value)
        except ValueError:
            return None
    else:
        return None

    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def _active_until(entry, now: datetime) -> Optional[datetime]:
    if not isinstance(entry, dict):
        return None
    expires_at = parse_timestamp(entry.get("expires_at"))
    if expires_at is None or now >= expires_at:
        return None
    return expires_at


class BadgeDeriver:
    """Бейджи объявления по сохранённой карте promotion и текущему времени"""

    def derive(self, promotion: Optional[dict], now: datetime) -> BadgeInfo:
        promotion = promotion or {}
        badges = []
        expiries = []
        active = set()

        for category in BADGE_ORDER:
            expires_at = _active_until(promotion.get(category), now)
            if expires_at is None:
                continue
            active.add(category)
            badges.append(BADGES[category])
            expiries.append(expires_at)

        expires_at = min(expiries) if expiries else None
        remaining_days = None
        if expires_at is not None:
            remaining_days = ceil((expires_at - now) / timedelta(days=1))

        top_every_hours = None
        top_last_bump_at = None
        if "autorenew" in active:
            entry = promotion["autorenew"]
            every_hours = entry.get("every_hours")
            activated_at = parse_timestamp(entry.get("activated_at"))
            if every_hours and activated_at:
                top_every_hours = int(every_hours)
                step = timedelta(hours=max(1, top_every_hours))
                bumps = max(0, int((now - activated_at) / step))
                top_last_bump_at = activated_at + bumps * step

        return BadgeInfo(
            badges=badges,
            expires_at=expires_at,
            remaining_days=remaining_days,
            top_active="autorenew" in active,
            featured_active="featured" in active,
            urgent_active="urgent" in active,
            top_every_hours=top_every_hours,
            top_last_bump_at=top_last_bump_at,
        )


def feed_sort_key(meta: BadgeInfo, created_at: datetime) -> Tuple:
    """
    Ключ сортировки ленты (по возрастанию):
    TOP -> последний подъём (или дата создания) -> PREMIUM -> URGENT -> новизна
    """
    created_at = parse_timestamp(created_at) or EPOCH
    bumped_at = meta.top_last_bump_at or created_at
    return (
        not meta.top_active,
        -(bumped_at - EPOCH).total_seconds(),
        not meta.featured_active,
        not meta.urgent_active,
        -(created_at - EPOCH).total_seconds(),
    )


def build_promotion(
    resolved: Dict[str, AnyOption],
    now: datetime,
    previous: Optional[dict] = None,
    payment_modes: Optional[Dict[str, str]] = None,
) -> Optional[dict]:
    """
    Карта promotion для записи в объявление.
    Срок каждой категории фиксируется при активации: now + days.
    Неистёкшие категории прошлой публикации, которые не выбраны заново, сохраняются.
    """
    payment_modes = payment_modes or {}
    promotion = {}

    for name, entry in (previous or {}).items():
        if name in CATEGORIES and name not in resolved and _active_until(entry, now):
            promotion[name] = entry

    for name, option in resolved.items():
        entry = {
            "option_id": option.id,
            "days": option.days,
            "tokens": option.tokens,
            "activated_at": now.isoformat(),
            "expires_at": (now + timedelta(days=option.days)).isoformat(),
        }
        if name == "autorenew":
            entry["every_hours"] = option.every_hours
        if name == "extended":
            entry["payment_mode"] = payment_modes.get(name, "tokens")
            if entry["payment_mode"] == "money":
                entry["tokens"] = 0
        promotion[name] = entry

    return promotion or None
