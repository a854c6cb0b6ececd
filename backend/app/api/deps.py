from datetime import datetime
from functools import lru_cache
from typing import Callable
from fastapi import Depends, HTTPException, status
from fastapi_jwt import JwtAccessBearerCookie, JwtAuthorizationCredentials
from sqlmodel import Session
from app.db.session import engine
from app.models.user import User, UserRole
from app.core.config import settings
from app.services.publishing import PublishWorkflow
from app.services.publishing_config import PromotionConfig, load_publishing_config

# JWT с HttpOnly cookie (выдаёт сервис авторизации)
access_security = JwtAccessBearerCookie(
    secret_key=settings.SECRET_KEY,
    auto_error=False,
    access_expires_delta=settings.jwt_expires_delta,
)


def get_db():
    with Session(engine) as session:
        yield session


@lru_cache
def get_publishing_config() -> PromotionConfig:
    return load_publishing_config(settings.PUBLISHING_CONFIG_PATH)


def get_clock() -> Callable[[], datetime]:
    return datetime.utcnow


def get_publish_workflow(
    config: PromotionConfig = Depends(get_publishing_config),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> PublishWorkflow:
    return PublishWorkflow(
        config,
        require_verified_email=settings.EMAIL_VERIFICATION_REQUIRED,
        clock=clock,
    )


async def get_current_user(
    credentials: JwtAuthorizationCredentials = Depends(access_security),
    db: Session = Depends(get_db)
) -> User:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )

    user_id = credentials.subject.get("id")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token"
        )

    user = db.get(User, int(user_id))
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive"
        )

    return user


async def admin_required(
    current_user: User = Depends(get_current_user)
) -> User:
    if current_user.role != UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return current_user
