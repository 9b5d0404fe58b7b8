from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from authz.core.config import get_settings

settings = get_settings()

# company_modules rows are locked with SELECT ... FOR UPDATE during provisioning.
engine = create_engine(
    settings.database_url,
    echo=settings.DEBUG,
    pool_pre_ping=True,
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    connect_args={
        "connect_timeout": settings.DB_CONNECT_TIMEOUT,
        "options": f"-c timezone=utc -c lock_timeout={settings.DB_LOCK_TIMEOUT_MS}",
    },
)

SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

Base = declarative_base()
