"""매매 기록 도메인 타입과 저장소 행 ↔ 기록 변환."""

import math
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..models.trade import Trade

_DECIMAL = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")


@dataclass(frozen=True)
class TradeRecord:
    id: str
    user_id: str
    trade_date: date
    ticker: str
    ticker_name: str = ""
    realized_profit: Optional[float] = None
    reason: Optional[str] = None
    reflection: Optional[str] = None
    image_path: Optional[str] = None
    image_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def has_profit(self) -> bool:
        """손익이 입력되어 있고 유한한 값인지"""
        return self.realized_profit is not None and math.isfinite(self.realized_profit)


def from_row(row: Trade) -> TradeRecord:
    """trades 행 → TradeRecord (빈 선택 필드는 None, 종목명은 빈 문자열)"""
    profit = row.realized_profit
    return TradeRecord(
        id=row.id,
        user_id=row.user_id,
        trade_date=row.trade_date,
        ticker=row.ticker,
        ticker_name=row.ticker_name or "",
        realized_profit=float(profit) if profit is not None else None,
        reason=row.reason or None,
        reflection=row.reflection or None,
        image_path=row.image_path or None,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def clean_text(value: Optional[str]) -> Optional[str]:
    """앞뒤 공백 제거, 비어 있으면 None"""
    if value is None:
        return None
    value = value.strip()
    return value or None


def parse_profit(value: Optional[str]) -> Optional[float]:
    """손익 입력값 파싱.

    빈 입력은 None(미입력). 부호/소수/지수를 포함한 10진수 표기만 허용하고
    ("1,500" 같은 천 단위 구분 기호는 불가), 그 외 또는 유한하지 않은 값은 ValueError.
    """
    if value is None or not value.strip():
        return None
    text = value.strip()
    if not _DECIMAL.fullmatch(text):
        raise ValueError(f"not a number: {value!r}")
    parsed = float(text)
    if not math.isfinite(parsed):
        raise ValueError(f"non-finite profit: {value!r}")
    return parsed
