"""테스트용 가짜 외부 클라이언트"""
from typing import Dict, List, Optional

import requests

from lottobot.collectors.base import DrawSourceError


class FakeTextClient:
    name = "fake"

    def __init__(self, available: bool = True, response: str = "", error: Optional[Exception] = None):
        self.available = available
        self.response = response
        self.error = error
        self.prompts: List[str] = []

    def is_available(self) -> bool:
        return self.available

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.response


class FakeRecommender:
    """고정 세트를 돌려주는 AI 추천기"""

    def __init__(self, sets: List[Dict]):
        self.sets = sets
        self.calls = []

    def recommend(self, recent_draws, count=2):
        self.calls.append((list(recent_draws), count))
        return self.sets[:count]


class FakeDrawSource:
    """get_latest_draw_no / get_draw_range 만 있는 당첨 번호 소스"""

    def __init__(self, draws: Dict[int, Dict], latest: Optional[int] = None, fail: bool = False):
        self.draws = draws
        self.latest = latest if latest is not None else max(draws, default=0)
        self.fail = fail
        self.range_calls = []

    def get_latest_draw_no(self) -> int:
        if self.fail:
            raise DrawSourceError("unavailable", "fake")
        return self.latest

    def get_draw_range(self, start: int, end: int) -> List[Dict]:
        self.range_calls.append((start, end))
        if self.fail:
            raise DrawSourceError("unavailable", "fake")
        return [self.draws[k] for k in sorted(self.draws) if start <= k <= end]


class FakeResponse:
    def __init__(self, payload=None, status_code: int = 200, text: str = ""):
        self.payload = payload
        self.status_code = status_code
        self.text = text

    def json(self):
        if self.payload is None:
            raise ValueError("no json")
        return self.payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class FakeSession:
    """URL 조각별로 응답(또는 예외)을 돌려주는 requests.Session 대역"""

    def __init__(self, routes):
        self.routes = routes
        self.calls = []
        self.headers = {}

    def get(self, url, params=None, **kwargs):
        self.calls.append((url, params))
        for fragment, result in self.routes:
            if fragment in url:
                if callable(result):
                    result = result(url, params)
                if isinstance(result, Exception):
                    raise result
                return result
        raise requests.ConnectionError(f"no route for {url}")
