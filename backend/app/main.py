"""Trade Diary FastAPI 애플리케이션."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .core.database import async_session
from .core.migration import run_migrations
from .routers import auth, journal
from .services.supabase import Session

logger = logging.getLogger(__name__)


def _log_session_change(event: str, session: Session) -> None:
    logger.info("세션 변경: %s (%s)", event, session.user_id)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """앱 시작 시 DB 마이그레이션 + 세션 리스너 등록, 종료 시 인증 클라이언트 정리."""
    async with async_session() as session:
        try:
            await run_migrations(session)
        except Exception as e:
            logger.error("마이그레이션 실패: %s", e)

    unsubscribe = auth.auth_provider.on_session_change(_log_session_change)

    yield

    unsubscribe()
    await auth.auth_provider.close()


app = FastAPI(
    title="Trade Diary API",
    description="매매 기록 / 손익 달력 / 성과 요약 백엔드",
    version="0.1.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://localhost:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 라우터 등록
app.include_router(auth.router)
app.include_router(journal.router)


@app.get("/api/health")
async def health_check():
    return {"status": "ok"}
