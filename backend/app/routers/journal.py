"""매매일지 라우터 - 대시보드, 손익 달력, 기록 CRUD."""

import logging
import math
from datetime import date, datetime
from typing import Optional, Union
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.database import get_db
from ..core.security import get_current_session
from ..services.aggregation import (
    RangeWindow,
    ViewState,
    YearMonth,
    build_calendar,
    build_dashboard,
)
from ..services.supabase import ImageStorage, Session, SupabaseError, build_image_path, resolve_image_urls
from ..services.supabase.storage import attach_image_url
from ..services.trade_record import clean_text, parse_profit
from ..services.trade_store import TradeStore, TradeStoreError

router = APIRouter(prefix="/api/journal", tags=["journal"])
logger = logging.getLogger(__name__)

NOT_FOUND = "매매 기록을 찾을 수 없습니다"


def today() -> date:
    """설정된 타임존 기준 오늘 날짜"""
    return datetime.now(ZoneInfo(settings.TIMEZONE)).date()


def get_store(db: AsyncSession = Depends(get_db)) -> TradeStore:
    return TradeStore(db)


async def get_storage(session: Session = Depends(get_current_session)):
    """FastAPI 의존성: 로그인 사용자 토큰으로 접근하는 이미지 스토리지"""
    storage = ImageStorage(session.access_token)
    try:
        yield storage
    finally:
        await storage.close()


# ── 응답 모델 ──

class TradeEntryResponse(BaseModel):
    id: str
    trade_date: date
    ticker: str
    ticker_name: str
    realized_profit: Optional[float]
    reason: Optional[str]
    reflection: Optional[str]
    image_path: Optional[str]
    image_url: Optional[str]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    model_config = {"from_attributes": True}


class AnalyticsResponse(BaseModel):
    total_trades: int
    total_profit: float
    win_rate: Optional[float]
    profit_sample_count: int

    model_config = {"from_attributes": True}


class DashboardResponse(BaseModel):
    range: RangeWindow
    entries: list[TradeEntryResponse]
    page: int
    total_pages: int
    total_entries: int
    analytics: AnalyticsResponse


class DayCellResponse(BaseModel):
    key: str
    is_placeholder: bool
    day: Optional[int] = None
    profit: Optional[float] = None
    is_today: bool = False

    model_config = {"from_attributes": True}


class MonthSummaryResponse(BaseModel):
    gains: float
    losses: float
    net: float

    model_config = {"from_attributes": True}


class CalendarResponse(BaseModel):
    month: str
    label: str
    previous_month: Optional[str]
    next_month: Optional[str]
    cells: list[DayCellResponse]
    summary: MonthSummaryResponse


class TradeUpdate(BaseModel):
    reason: Optional[str] = None
    reflection: Optional[str] = None
    realized_profit: Union[float, str, None] = None


# ── 조회 ──

@router.get("", response_model=DashboardResponse)
async def get_dashboard(
    range_: RangeWindow = Query(RangeWindow.DAILY, alias="range"),
    search: str = "",
    page: int = Query(1, ge=1),
    session: Session = Depends(get_current_session),
    store: TradeStore = Depends(get_store),
    storage: ImageStorage = Depends(get_storage),
):
    """대시보드: 기간별 성과 요약 + 검색/페이지 적용된 기록 목록"""
    records = await _load_records(store, session)
    view = build_dashboard(
        records,
        ViewState(range=range_, search=search, page=page),
        today(),
        settings.PAGE_SIZE,
    )
    entries = await resolve_image_urls(view.page.items, storage)

    return DashboardResponse(
        range=view.range,
        entries=[TradeEntryResponse.model_validate(e) for e in entries],
        page=view.page.page,
        total_pages=view.page.total_pages,
        total_entries=view.page.total_items,
        analytics=AnalyticsResponse.model_validate(view.analytics),
    )


@router.get("/calendar", response_model=CalendarResponse)
async def get_calendar(
    month: Optional[str] = Query(None, description="대상 월 YYYY-MM (기본: 이번 달)"),
    session: Session = Depends(get_current_session),
    store: TradeStore = Depends(get_store),
):
    """손익 달력: 월 그리드 + 월간 이익/손실/합계"""
    target = None
    if month:
        try:
            target = YearMonth.parse(month)
        except ValueError:
            raise HTTPException(status_code=400, detail="월은 YYYY-MM 형식으로 지정해 주세요")

    records = await _load_records(store, session)
    view = build_calendar(records, ViewState(month=target), today())

    return CalendarResponse(
        month=str(view.month),
        label=view.label,
        previous_month=_neighbor_month(view.month, -1),
        next_month=_neighbor_month(view.month, 1),
        cells=[DayCellResponse.model_validate(c) for c in view.cells],
        summary=MonthSummaryResponse.model_validate(view.summary),
    )


@router.get("/{trade_id}", response_model=TradeEntryResponse)
async def get_entry(
    trade_id: str,
    session: Session = Depends(get_current_session),
    store: TradeStore = Depends(get_store),
    storage: ImageStorage = Depends(get_storage),
):
    """매매 기록 상세"""
    try:
        record = await store.get(session.user_id, trade_id)
    except TradeStoreError:
        raise HTTPException(status_code=502, detail="매매 기록을 불러오지 못했습니다. 잠시 후 다시 시도해 주세요.")
    if record is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return TradeEntryResponse.model_validate(await attach_image_url(record, storage))


# ── 등록 / 수정 / 삭제 ──

@router.post("", response_model=TradeEntryResponse, status_code=201)
async def create_entry(
    ticker: str = Form(...),
    trade_date: date = Form(...),
    ticker_name: str = Form(default=""),
    reason: str = Form(default=""),
    reflection: str = Form(default=""),
    realized_profit: str = Form(default=""),
    image: Optional[UploadFile] = File(default=None),
    session: Session = Depends(get_current_session),
    store: TradeStore = Depends(get_store),
    storage: ImageStorage = Depends(get_storage),
):
    """매매 기록 작성 (이미지가 있으면 먼저 업로드)"""
    ticker = ticker.strip().upper()
    if not ticker:
        raise HTTPException(status_code=400, detail="종목코드를 입력해 주세요")
    if trade_date > today():
        raise HTTPException(status_code=400, detail="거래일은 오늘 이후로 지정할 수 없습니다")

    try:
        profit = parse_profit(realized_profit)
    except ValueError:
        profit = None

    image_path = None
    if image is not None and image.filename:
        data = await image.read()
        if len(data) > settings.MAX_IMAGE_BYTES:
            raise HTTPException(status_code=400, detail="이미지 크기가 너무 큽니다")
        image_path = build_image_path(session.user_id, image.filename)
        try:
            await storage.upload(image_path, data, image.content_type)
        except SupabaseError as e:
            logger.error("이미지 업로드 실패: %s", e)
            raise HTTPException(status_code=502, detail=f"이미지 업로드에 실패했습니다: {e.message}")

    try:
        record = await store.insert(
            session.user_id,
            {
                "trade_date": trade_date,
                "ticker": ticker,
                "ticker_name": clean_text(ticker_name),
                "realized_profit": profit,
                "reason": clean_text(reason),
                "reflection": clean_text(reflection),
                "image_path": image_path,
            },
        )
    except TradeStoreError:
        if image_path:
            await _remove_image(storage, image_path)
        raise HTTPException(status_code=502, detail="매매 기록 저장에 실패했습니다.")

    return TradeEntryResponse.model_validate(await attach_image_url(record, storage))


@router.patch("/{trade_id}", response_model=TradeEntryResponse)
async def update_entry(
    trade_id: str,
    req: TradeUpdate,
    session: Session = Depends(get_current_session),
    store: TradeStore = Depends(get_store),
    storage: ImageStorage = Depends(get_storage),
):
    """매매 기록 수정 (매매 근거, 회고, 손익)"""
    fields: dict = {}
    submitted = req.model_dump(exclude_unset=True)
    if "reason" in submitted:
        fields["reason"] = clean_text(req.reason)
    if "reflection" in submitted:
        fields["reflection"] = clean_text(req.reflection)
    if "realized_profit" in submitted:
        try:
            fields["realized_profit"] = _profit_value(req.realized_profit)
        except ValueError:
            raise HTTPException(status_code=400, detail="손익은 숫자로 입력해 주세요.")

    try:
        record = await store.update(session.user_id, trade_id, fields)
    except TradeStoreError:
        raise HTTPException(status_code=502, detail="수정에 실패했습니다.")
    if record is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return TradeEntryResponse.model_validate(await attach_image_url(record, storage))


@router.delete("/{trade_id}", status_code=204)
async def delete_entry(
    trade_id: str,
    session: Session = Depends(get_current_session),
    store: TradeStore = Depends(get_store),
    storage: ImageStorage = Depends(get_storage),
):
    """매매 기록 삭제 (첨부 이미지 삭제 실패는 무시)"""
    try:
        record = await store.get(session.user_id, trade_id)
        if record is None:
            raise HTTPException(status_code=404, detail=NOT_FOUND)
        deleted = await store.delete(session.user_id, trade_id)
    except TradeStoreError:
        raise HTTPException(status_code=502, detail="삭제에 실패했습니다. 잠시 후 다시 시도해 주세요.")
    if not deleted:
        raise HTTPException(status_code=404, detail=NOT_FOUND)

    if record.image_path:
        await _remove_image(storage, record.image_path)


async def _load_records(store: TradeStore, session: Session):
    try:
        return await store.list_for_user(session.user_id)
    except TradeStoreError:
        raise HTTPException(
            status_code=502,
            detail="매매 기록을 불러오지 못했습니다. 잠시 후 다시 시도해 주세요.",
        )


async def _remove_image(storage: ImageStorage, path: str) -> None:
    try:
        await storage.delete(path)
    except SupabaseError as e:
        logger.warning("이미지 삭제 실패 (%s): %s", path, e)


def _profit_value(value: Union[float, str, None]) -> Optional[float]:
    if isinstance(value, str) or value is None:
        return parse_profit(value)
    if not math.isfinite(value):
        raise ValueError(f"non-finite profit: {value!r}")
    return float(value)


def _neighbor_month(month: YearMonth, offset: int) -> Optional[str]:
    """이전/다음 달 (날짜 범위 밖이면 None)"""
    try:
        return str(month.shift(offset))
    except ValueError:
        return None
