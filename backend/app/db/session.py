from sqlmodel import SQLModel, create_engine
from app.core.config import settings

connect_args = {}
if settings.DATABASE_URL.startswith("sqlite"):
    connect_args["check_same_thread"] = False

engine = create_engine(settings.DATABASE_URL, connect_args=connect_args)


def init_db() -> None:
    """Создать таблицы (миграции для прода — отдельно)"""
    import app.models  # noqa: F401  регистрирует таблицы в metadata

    SQLModel.metadata.create_all(engine)
