"""KST 날짜 유틸"""
from datetime import date, datetime, timedelta, timezone
from typing import Optional

KST = timezone(timedelta(hours=9))

SATURDAY = 5
THURSDAY = 3


def today_kst() -> date:
    return datetime.now(KST).date()


def next_weekday(weekday: int, base: Optional[date] = None) -> date:
    """base 다음에 오는 요일 (weekday: 월=0 ... 일=6). 같은 요일이면 1주 뒤"""
    base = base or today_kst()
    days_until = (weekday - base.weekday()) % 7 or 7
    return base + timedelta(days=days_until)


def next_saturday(base: Optional[date] = None) -> date:
    """로또 추첨일"""
    return next_weekday(SATURDAY, base)


def next_thursday(base: Optional[date] = None) -> date:
    """연금복권 추첨일"""
    return next_weekday(THURSDAY, base)
