"""동행복권 로또 6/45 API 클라이언트"""
import logging
import re
import time
from datetime import date, datetime
from typing import Dict, List, Optional

import requests
from bs4 import BeautifulSoup

from lottobot.collectors.base import DrawSourceError, build_session, parse_yyyymmdd

ALL_DRAWS_URL = "https://www.dhlottery.co.kr/lt645/selectPstLt645Info.do?srchLtEpsd=all"
LEGACY_URL = "https://www.dhlottery.co.kr/common.do?method=getLottoNumber&drwNo={}"
RESULT_URL = "https://www.dhlottery.co.kr/gameResult.do?method=byWin&drwNo={}"

# 로또 1회 추첨일 (이후 매주 토요일)
FIRST_DRAW_DATE = date(2002, 12, 7)

logger = logging.getLogger(__name__)


def _build_draw(draw_no: int, draw_date, numbers: List[int], bonus: int, **prizes) -> Dict:
    numbers = sorted(numbers)
    draw = {
        "draw_no": draw_no,
        "draw_date": draw_date,
        "n1": numbers[0],
        "n2": numbers[1],
        "n3": numbers[2],
        "n4": numbers[3],
        "n5": numbers[4],
        "n6": numbers[5],
        "bonus": bonus,
    }
    for key in ("prize_1st", "winners_1st", "prize_2nd", "winners_2nd", "prize_3rd", "winners_3rd"):
        draw[key] = prizes.get(key)
    return draw


def is_valid_draw(draw: Dict) -> bool:
    """6개 서로 다른 1~45 번호 + 보너스 1~45"""
    numbers = [draw.get(f"n{i}") for i in range(1, 7)]
    if not all(isinstance(n, int) and 1 <= n <= 45 for n in numbers):
        return False
    bonus = draw.get("bonus")
    return len(set(numbers)) == 6 and isinstance(bonus, int) and 1 <= bonus <= 45


class LottoAPIClient:
    def __init__(self, delay: float = 0.3, cache_ttl: float = 3600, session: Optional[requests.Session] = None):
        """
        Args:
            delay: 회차별 조회 시 호출 간 딜레이 (초) - 사이트 부하 방지
            cache_ttl: 전체 회차 캐시 유효 시간 (초)
        """
        self.delay = delay
        self.cache_ttl = cache_ttl
        self.session = session or build_session()
        self._cache: Dict[int, Dict] = {}
        self._cached_at: Optional[float] = None

    def get_all_draws(self) -> List[Dict]:
        """
        전체 회차 조회 (1시간 캐시)

        Raises:
            DrawSourceError: API 응답을 받을 수 없거나 형식이 다를 때
        """
        if self._is_cache_valid():
            logger.debug("Using cached lotto draw data")
            return [self._cache[k] for k in sorted(self._cache)]

        logger.info("Fetching all lotto draws from dhlottery API...")
        try:
            res = self.session.get(ALL_DRAWS_URL, timeout=15)
            res.raise_for_status()
            payload = res.json()
        except (requests.RequestException, ValueError) as e:
            raise DrawSourceError("로또 전체 회차 조회 실패", "dhlottery", str(e)) from e

        rows = (payload.get("data") or {}).get("list") if isinstance(payload, dict) else None
        if not isinstance(rows, list):
            raise DrawSourceError("로또 전체 회차 응답 형식 오류", "dhlottery", str(payload)[:200])

        draws: Dict[int, Dict] = {}
        for row in rows:
            draw = self._parse_all_draws_row(row)
            if draw is None:
                logger.warning(f"로또 회차 데이터 파싱 실패: {row}")
                continue
            draws[draw["draw_no"]] = draw

        logger.info(f"✅ 로또 {len(draws)}개 회차 조회")
        self._cache = draws
        self._cached_at = time.monotonic()
        return [draws[k] for k in sorted(draws)]

    def refresh_cache(self) -> None:
        self._cached_at = None
        self.get_all_draws()

    def get_latest_draw_no(self) -> int:
        """
        최신 회차 번호

        전체 회차 API 실패 시 추첨일 기준 추정 회차부터 역순으로 회차별 API 확인
        """
        try:
            draws = self.get_all_draws()
            if draws:
                latest = draws[-1]["draw_no"]
                logger.info(f"✅ 최신 회차: {latest}회")
                return latest
        except DrawSourceError as e:
            logger.warning(f"전체 회차 API 실패, 회차별 조회로 대체: {e} {e.detail}")

        estimated = (date.today() - FIRST_DRAW_DATE).days // 7 + 1
        logger.info(f"로또 회차 추정: {estimated}회")
        for draw_no in range(estimated, max(estimated - 20, 0), -1):
            if self._get_legacy_json(draw_no):
                logger.info(f"✅ 최신 회차: {draw_no}회 (회차별 API)")
                return draw_no
            time.sleep(self.delay)

        raise DrawSourceError("최신 회차 확인 실패", "dhlottery")

    def get_draw_range(self, start: int, end: int) -> List[Dict]:
        """start~end 회차 (없는 회차는 건너뜀, 회차 오름차순)"""
        if start > end:
            return []
        try:
            return [d for d in self.get_all_draws() if start <= d["draw_no"] <= end]
        except DrawSourceError as e:
            logger.warning(f"전체 회차 API 실패, 회차별 조회로 대체: {e}")

        draws = []
        for draw_no in range(start, end + 1):
            draw = self.get_lotto_draw(draw_no)
            if draw:
                draws.append(draw)
            time.sleep(self.delay)
        return draws

    def get_lotto_draw(self, draw_no: int) -> Optional[Dict]:
        """
        특정 회차 조회 (회차별 JSON API → HTML 파싱)

        Returns:
            회차 dict 또는 None (데이터 없음)
        """
        if self._is_cache_valid() and draw_no in self._cache:
            return self._cache[draw_no]

        data = self._get_legacy_json(draw_no)
        if data:
            logger.info(f"✅ 회차 {draw_no} 조회 성공 (JSON API)")
            return data

        draw = self._fetch_draw_html(draw_no)
        if draw:
            logger.info(f"✅ 회차 {draw_no} 조회 성공 (HTML 파싱)")
            return draw

        logger.info(f"회차 {draw_no} 데이터 없음")
        return None

    def _is_cache_valid(self) -> bool:
        if self._cached_at is None or not self._cache:
            return False
        return time.monotonic() - self._cached_at < self.cache_ttl

    @staticmethod
    def _parse_all_draws_row(row) -> Optional[Dict]:
        if not isinstance(row, dict):
            return None
        try:
            draw = _build_draw(
                int(row["ltEpsd"]),
                parse_yyyymmdd(row.get("ltRflYmd")),
                [int(row[f"tm{i}WnNo"]) for i in range(1, 7)],
                int(row["bnsWnNo"]),
                prize_1st=row.get("rnk1WnAmt"),
                winners_1st=row.get("rnk1WnNope"),
                prize_2nd=row.get("rnk2WnAmt"),
                winners_2nd=row.get("rnk2WnNope"),
                prize_3rd=row.get("rnk3WnAmt"),
                winners_3rd=row.get("rnk3WnNope"),
            )
        except (KeyError, TypeError, ValueError):
            return None
        if draw["draw_date"] is None or not is_valid_draw(draw):
            return None
        return draw

    def _get_legacy_json(self, draw_no: int) -> Optional[Dict]:
        """회차별 JSON API (common.do). 실패/미추첨이면 None"""
        try:
            res = self.session.get(LEGACY_URL.format(draw_no), timeout=10, allow_redirects=False)
            if res.status_code != 200:
                return None
            data = res.json()
        except (requests.RequestException, ValueError) as e:
            logger.debug(f"회차 {draw_no} JSON API 요청 실패: {e}")
            return None

        if not isinstance(data, dict) or data.get("returnValue") != "success":
            return None
        try:
            draw = _build_draw(
                int(data["drwNo"]),
                datetime.strptime(data["drwNoDate"], "%Y-%m-%d").date(),
                [int(data[f"drwtNo{i}"]) for i in range(1, 7)],
                int(data["bnusNo"]),
                prize_1st=data.get("firstWinamnt"),
                winners_1st=data.get("firstPrzwnerCo"),
            )
        except (KeyError, TypeError, ValueError):
            return None
        return draw if is_valid_draw(draw) else None

    def _fetch_draw_html(self, draw_no: int) -> Optional[Dict]:
        """당첨결과 HTML 페이지 파싱"""
        try:
            res = self.session.get(RESULT_URL.format(draw_no), timeout=10)
            res.raise_for_status()
        except requests.RequestException as e:
            logger.debug(f"HTML 조회 실패 (회차 {draw_no}): {e}")
            return None

        soup = BeautifulSoup(res.text, "html.parser")

        title = soup.select_one(".win_result h4 strong")
        if not title or str(draw_no) not in title.text:
            return None

        date_text = soup.select_one(".win_result .desc")
        date_match = re.search(r"(\d{4})\.\s*(\d{2})\.\s*(\d{2})", date_text.text) if date_text else None
        if not date_match:
            return None

        number_elems = soup.select(".win_result .num.win .ball_645")
        bonus_elem = soup.select_one(".win_result .num.bonus .ball_645")
        if len(number_elems) != 6 or not bonus_elem:
            return None

        try:
            numbers = [int(elem.text.strip()) for elem in number_elems]
            bonus = int(bonus_elem.text.strip())
            draw_date = date(int(date_match.group(1)), int(date_match.group(2)), int(date_match.group(3)))
        except ValueError:
            return None

        draw = _build_draw(draw_no, draw_date, numbers, bonus)
        return draw if is_valid_draw(draw) else None
