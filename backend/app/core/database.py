from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from .config import settings


class Base(DeclarativeBase):
    pass


def make_session_factory(url: str, echo: bool = False) -> sessionmaker:
    """DB URL → 비동기 세션 팩토리 (테스트는 sqlite+aiosqlite 사용)"""
    engine = create_async_engine(url, echo=echo)
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def create_tables(engine: AsyncEngine) -> None:
    """ORM 메타데이터 기준 테이블 생성 (로컬/테스트용)"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async_session = make_session_factory(settings.DATABASE_URL, echo=settings.DEBUG)


async def get_db() -> AsyncSession:
    """FastAPI 의존성: DB 세션 제공"""
    async with async_session() as session:
        try:
            yield session
        finally:
            await session.close()
