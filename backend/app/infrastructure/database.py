from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from backend.app.config import get_settings
from backend.app.logging_config import get_logger

logger = get_logger("app.infrastructure.database")
settings = get_settings()

# Convert database URL for async driver
db_url = settings.database_url
if db_url.startswith("postgresql://"):
    db_url = db_url.replace("postgresql://", "postgresql+psycopg://", 1)
elif db_url.startswith("postgres://"):
    # Handle Supabase/Heroku-style URLs
    db_url = db_url.replace("postgres://", "postgresql+psycopg://", 1)

engine_options: dict = {"echo": False, "future": True, "pool_pre_ping": True}
if not db_url.startswith("sqlite"):
    engine_options.update(
        pool_size=5,
        max_overflow=10,
        pool_timeout=30,
        pool_recycle=1800,  # Recycle connections after 30 minutes
    )

engine = create_async_engine(db_url, **engine_options)

AsyncSessionLocal = async_sessionmaker(
    bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)


class Base(DeclarativeBase):
    pass


async def check_database_connectivity() -> bool:
    try:
        from sqlalchemy import text

        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Database connectivity check passed")
        return True
    except Exception as e:
        logger.error(f"Database connectivity check failed: {e}")
        return False
