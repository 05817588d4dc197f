"""동행복권 수집기 공통 (세션 헤더, 에러, 날짜 파싱)"""
from datetime import date
from typing import Optional

import requests

DEFAULT_HEADERS = {
    'User-Agent': 'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36',
    'Accept': 'application/json, text/html;q=0.9, */*;q=0.8',
    'Accept-Language': 'ko-KR,ko;q=0.9,en-US;q=0.8,en;q=0.7',
    'Referer': 'https://www.dhlottery.co.kr/',
}


class DrawSourceError(RuntimeError):
    """당첨 번호 소스를 읽을 수 없음"""

    def __init__(self, message: str, source: str, detail: Optional[str] = None):
        super().__init__(message)
        self.source = source
        self.detail = detail or ''


def build_session() -> requests.Session:
    session = requests.Session()
    session.headers.update(DEFAULT_HEADERS)
    return session


def parse_yyyymmdd(value) -> Optional[date]:
    """'20250104' → date(2025, 1, 4). 형식이 다르면 None"""
    if value is None:
        return None
    text = str(value).strip()
    if len(text) != 8 or not text.isdigit():
        return None
    try:
        return date(int(text[:4]), int(text[4:6]), int(text[6:8]))
    except ValueError:
        return None
