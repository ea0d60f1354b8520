"""매매 기록 저장소.

trades 테이블에 대한 사용자 단위 조회/등록/수정/삭제.
모든 연산은 소유 사용자(user_id) 조건을 함께 건다.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.trade import Trade
from .trade_record import TradeRecord, from_row

logger = logging.getLogger(__name__)

# 수정 가능한 컬럼 (화이트리스트)
INSERT_FIELDS = (
    "trade_date",
    "ticker",
    "ticker_name",
    "realized_profit",
    "reason",
    "reflection",
    "image_path",
)
UPDATE_FIELDS = ("reason", "reflection", "realized_profit")


class TradeStoreError(Exception):
    """저장소 연산 실패"""


class TradeStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_for_user(self, user_id: str) -> list[TradeRecord]:
        """사용자 기록 전체 (거래일 내림차순)"""
        try:
            result = await self.db.execute(
                select(Trade)
                .where(Trade.user_id == user_id)
                .order_by(Trade.trade_date.desc(), Trade.created_at.desc())
            )
        except SQLAlchemyError as e:
            logger.error("매매 기록 조회 실패: %s", e)
            raise TradeStoreError(str(e)) from e
        return [from_row(row) for row in result.scalars().all()]

    async def _get_row(self, user_id: str, trade_id: str) -> Optional[Trade]:
        result = await self.db.execute(
            select(Trade).where(Trade.id == trade_id, Trade.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def get(self, user_id: str, trade_id: str) -> Optional[TradeRecord]:
        try:
            row = await self._get_row(user_id, trade_id)
        except SQLAlchemyError as e:
            raise TradeStoreError(str(e)) from e
        return from_row(row) if row else None

    async def insert(self, user_id: str, fields: dict[str, Any]) -> TradeRecord:
        """기록 등록"""
        row = Trade(user_id=user_id, **{k: v for k, v in fields.items() if k in INSERT_FIELDS})
        self.db.add(row)
        try:
            await self.db.commit()
            await self.db.refresh(row)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("매매 기록 저장 실패: %s", e)
            raise TradeStoreError(str(e)) from e
        return from_row(row)

    async def update(self, user_id: str, trade_id: str, fields: dict[str, Any]) -> Optional[TradeRecord]:
        """지정된 컬럼만 수정. 대상이 없으면 None."""
        try:
            row = await self._get_row(user_id, trade_id)
            if row is None:
                return None
            for key, value in fields.items():
                if key in UPDATE_FIELDS:
                    setattr(row, key, value)
            row.updated_at = datetime.now(timezone.utc)
            await self.db.commit()
            await self.db.refresh(row)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("매매 기록 수정 실패 (%s): %s", trade_id, e)
            raise TradeStoreError(str(e)) from e
        return from_row(row)

    async def delete(self, user_id: str, trade_id: str) -> bool:
        """기록 삭제. 삭제된 행이 없으면 False."""
        try:
            result = await self.db.execute(
                delete(Trade).where(Trade.id == trade_id, Trade.user_id == user_id)
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("매매 기록 삭제 실패 (%s): %s", trade_id, e)
            raise TradeStoreError(str(e)) from e
        return result.rowcount > 0
