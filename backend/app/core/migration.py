"""앱 시작 시 DB 스키마 마이그레이션 - 누락 테이블/인덱스 자동 생성."""

import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

MIGRATION_SQL = [
    # ── trades ──
    """
    CREATE TABLE IF NOT EXISTS trades (
        id VARCHAR(36) PRIMARY KEY,
        user_id VARCHAR(36) NOT NULL,
        trade_date DATE NOT NULL,
        ticker VARCHAR(20) NOT NULL,
        ticker_name VARCHAR(100),
        realized_profit DOUBLE PRECISION,
        reason TEXT,
        reflection TEXT,
        image_path VARCHAR(255),
        created_at TIMESTAMPTZ DEFAULT NOW(),
        updated_at TIMESTAMPTZ DEFAULT NOW()
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_trades_user_date ON trades(user_id, trade_date DESC)",
]


async def run_migrations(session: AsyncSession) -> None:
    """누락된 테이블/인덱스를 자동으로 생성."""
    for sql in MIGRATION_SQL:
        try:
            await session.execute(text(sql))
        except Exception as e:
            logger.warning("마이그레이션 SQL 실행 실패 (무시): %s", e)
    await session.commit()
    logger.info("DB 마이그레이션 완료")
