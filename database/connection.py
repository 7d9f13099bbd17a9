"""Подключение к базе данных"""
from sqlalchemy import BigInteger, Integer
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from config import settings

# Создаем движок для асинхронной работы
engine = create_async_engine(
    settings.database_url,
    echo=settings.DB_ECHO,
    future=True
)

# Создаем фабрику сессий
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False
)

# Базовый класс для моделей
Base = declarative_base()

# Первичный ключ: BIGINT в PostgreSQL, INTEGER в SQLite (иначе нет автоинкремента)
PrimaryKey = BigInteger().with_variant(Integer, "sqlite")


async def init_db():
    """Создать таблицы, если их еще нет"""
    # Импорт регистрирует модели в метаданных
    import database.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
