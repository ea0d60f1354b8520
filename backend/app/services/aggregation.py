"""매매 기록 집계.

전체 기록 목록과 화면 상태(기간, 달력 월, 검색어, 페이지)로부터
대시보드/달력 뷰를 매번 새로 계산한다. 모든 함수는 입력을 변경하지 않는
순수 함수이며, 같은 입력에 항상 같은 결과를 돌려준다.

- 기간 필터: daily / weekly / monthly / yearly / all
- 손익 달력: 월 그리드(일요일 시작 7열), 일별 순손익, 월간 이익/손실/합계
- 성과 요약: 거래 수, 총 손익, 승률
"""

import calendar
import math
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Iterable, Optional, Sequence

from .trade_record import TradeRecord


class RangeWindow(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    ALL = "all"


def _as_date(value: date | datetime) -> date:
    """시각 성분 제거 (자정 기준 달력 날짜)"""
    if isinstance(value, datetime):
        return value.date()
    return value


def sunday_weekday(day: date) -> int:
    """요일 인덱스 (일요일=0 … 토요일=6)"""
    return (day.weekday() + 1) % 7


# ══════════════════════════════════════
# 1. 기간 필터
# ══════════════════════════════════════

def range_bounds(window: RangeWindow, today: date | datetime) -> Optional[tuple[date, date]]:
    """기간의 [시작, 끝] (양끝 포함). all 은 None."""
    today = _as_date(today)
    window = RangeWindow(window)

    if window is RangeWindow.DAILY:
        return today, today
    if window is RangeWindow.WEEKLY:
        start = today - timedelta(days=sunday_weekday(today))
        return start, start + timedelta(days=6)
    if window is RangeWindow.MONTHLY:
        month = YearMonth.of(today)
        return month.first_day, month.last_day
    if window is RangeWindow.YEARLY:
        return date(today.year, 1, 1), date(today.year, 12, 31)
    return None


def filter_by_range(
    records: Sequence[TradeRecord],
    window: RangeWindow,
    today: date | datetime,
) -> list[TradeRecord]:
    """거래일이 기간 안에 드는 기록만 (입력 순서 유지)"""
    bounds = range_bounds(window, today)
    if bounds is None:
        return list(records)
    start, end = bounds
    return [r for r in records if start <= _as_date(r.trade_date) <= end]


# ══════════════════════════════════════
# 2. 손익 달력
# ══════════════════════════════════════

@dataclass(frozen=True, order=True)
class YearMonth:
    year: int
    month: int

    def __post_init__(self):
        if not date.min.year <= self.year <= date.max.year:
            raise ValueError(f"year out of range: {self.year}")
        if not 1 <= self.month <= 12:
            raise ValueError(f"month out of range: {self.month}")

    @classmethod
    def of(cls, day: date | datetime) -> "YearMonth":
        return cls(day.year, day.month)

    @classmethod
    def parse(cls, value: str) -> "YearMonth":
        """'YYYY-MM' → YearMonth"""
        year, _, month = value.strip().partition("-")
        return cls(int(year), int(month))

    def shift(self, months: int) -> "YearMonth":
        """n개월 이동 (음수면 이전 달)"""
        index = self.year * 12 + (self.month - 1) + months
        return YearMonth(index // 12, index % 12 + 1)

    @property
    def days_in_month(self) -> int:
        return calendar.monthrange(self.year, self.month)[1]

    @property
    def first_day(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def last_day(self) -> date:
        return date(self.year, self.month, self.days_in_month)

    @property
    def label(self) -> str:
        return f"{self.year}년 {self.month}월"

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


@dataclass(frozen=True)
class DayCell:
    key: str
    day: Optional[int] = None
    profit: Optional[float] = None  # None = 손익 데이터 없음 (0 과 구분)
    is_today: bool = False

    @property
    def is_placeholder(self) -> bool:
        return self.day is None


@dataclass(frozen=True)
class MonthSummary:
    gains: float = 0.0
    losses: float = 0.0  # 음수 그대로 합산
    net: float = 0.0


@dataclass(frozen=True)
class MonthView:
    month: YearMonth
    label: str
    cells: tuple[DayCell, ...]
    summary: MonthSummary


def daily_net_profit(records: Iterable[TradeRecord], month: YearMonth) -> dict[date, float]:
    """해당 월의 일별 순손익. 손익 미입력 기록은 건너뛴다."""
    nets: dict[date, float] = {}
    for record in records:
        if not record.has_profit:
            continue
        day = _as_date(record.trade_date)
        if (day.year, day.month) != (month.year, month.month):
            continue
        nets[day] = nets.get(day, 0.0) + record.realized_profit
    return nets


def summarize_month(nets: Iterable[float]) -> MonthSummary:
    """일 단위 순손익 → 월간 이익/손실/합계 (0 인 날은 어느 쪽에도 넣지 않음)"""
    gains = 0.0
    losses = 0.0
    for value in nets:
        if value > 0:
            gains += value
        elif value < 0:
            losses += value
    return MonthSummary(gains=gains, losses=losses, net=gains + losses)


def build_month_view(
    records: Sequence[TradeRecord],
    month: YearMonth,
    today: date | datetime,
) -> MonthView:
    """월 달력 그리드 생성.

    앞쪽 빈 칸은 1일의 요일(일요일=0)만큼, 뒤쪽 빈 칸은 전체 칸 수가
    7의 배수가 되도록 채운다. 날짜 칸의 key 는 날짜(YYYY-MM-DD),
    빈 칸의 key 는 위치 기반이다.
    """
    today = _as_date(today)
    nets = daily_net_profit(records, month)

    cells: list[DayCell] = []
    for i in range(sunday_weekday(month.first_day)):
        cells.append(DayCell(key=f"placeholder-start-{i}"))

    for day_number in range(1, month.days_in_month + 1):
        day = date(month.year, month.month, day_number)
        cells.append(
            DayCell(
                key=day.isoformat(),
                day=day_number,
                profit=nets.get(day),
                is_today=day == today,
            )
        )

    remainder = len(cells) % 7
    if remainder:
        for i in range(remainder, 7):
            cells.append(DayCell(key=f"placeholder-end-{i}"))

    return MonthView(
        month=month,
        label=month.label,
        cells=tuple(cells),
        summary=summarize_month(nets.values()),
    )


# ══════════════════════════════════════
# 3. 성과 요약
# ══════════════════════════════════════

@dataclass(frozen=True)
class Analytics:
    total_trades: int = 0
    total_profit: float = 0.0
    win_rate: Optional[float] = None  # 손익 입력 기록이 없으면 None
    profit_sample_count: int = 0


def summarize(records: Sequence[TradeRecord]) -> Analytics:
    """거래 수 / 총 손익 / 승률 (기록 단위, 기간 필터는 호출 측에서)"""
    total_profit = 0.0
    wins = 0
    samples = 0
    for record in records:
        if not record.has_profit:
            continue
        total_profit += record.realized_profit
        samples += 1
        if record.realized_profit > 0:
            wins += 1

    return Analytics(
        total_trades=len(records),
        total_profit=total_profit,
        win_rate=wins / samples if samples else None,
        profit_sample_count=samples,
    )


# ══════════════════════════════════════
# 4. 목록 검색 / 페이지
# ══════════════════════════════════════

@dataclass(frozen=True)
class Page:
    items: list[TradeRecord]
    page: int
    total_pages: int
    total_items: int


def search_records(records: Sequence[TradeRecord], term: str = "") -> list[TradeRecord]:
    """거래일 내림차순 정렬 후 종목코드/종목명 부분 일치 (대소문자 무시)"""
    ordered = sorted(records, key=lambda r: _as_date(r.trade_date), reverse=True)
    needle = (term or "").strip().lower()
    if not needle:
        return ordered
    return [
        r for r in ordered
        if needle in r.ticker.lower() or needle in (r.ticker_name or "").lower()
    ]


def paginate(records: Sequence[TradeRecord], page: int, page_size: int) -> Page:
    """page 는 1 ~ 마지막 페이지 범위로 보정"""
    total_pages = max(1, math.ceil(len(records) / page_size))
    page = min(max(page, 1), total_pages)
    start = (page - 1) * page_size
    return Page(
        items=list(records[start:start + page_size]),
        page=page,
        total_pages=total_pages,
        total_items=len(records),
    )


# ══════════════════════════════════════
# 5. 화면 상태 → 파생 뷰
# ══════════════════════════════════════

@dataclass(frozen=True)
class ViewState:
    range: RangeWindow = RangeWindow.DAILY
    month: Optional[YearMonth] = None  # None 이면 이번 달
    search: str = ""
    page: int = 1


@dataclass(frozen=True)
class DashboardView:
    range: RangeWindow
    page: Page
    analytics: Analytics = field(default_factory=Analytics)


def build_dashboard(
    records: Sequence[TradeRecord],
    state: ViewState,
    today: date | datetime,
    page_size: int,
) -> DashboardView:
    """기간 필터 → 성과 요약 → 검색 → 페이지"""
    in_range = filter_by_range(records, state.range, today)
    matched = search_records(in_range, state.search)
    return DashboardView(
        range=RangeWindow(state.range),
        page=paginate(matched, state.page, page_size),
        analytics=summarize(in_range),
    )


def build_calendar(records: Sequence[TradeRecord], state: ViewState, today: date | datetime) -> MonthView:
    month = state.month or YearMonth.of(_as_date(today))
    return build_month_view(records, month, today)
