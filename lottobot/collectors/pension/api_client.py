"""동행복권 연금복권720+ API 클라이언트"""
import logging
import time
from collections import defaultdict
from typing import Dict, List, Optional

import requests

from lottobot.collectors.base import DrawSourceError, build_session, parse_yyyymmdd

RANGE_URL = "https://www.dhlottery.co.kr/pt720/selectPstPt720Info.do"

# 한 번에 조회할 최대 회차 수
PAGE_SIZE = 100
PRIZE_RANKS = 8
BONUS_SEQ_NO = 21
MAX_DRAW_PROBE = 5000

logger = logging.getLogger(__name__)


class PensionAPIClient:
    def __init__(self, delay: float = 0.3, session: Optional[requests.Session] = None):
        """
        Args:
            delay: 구간 조회 간 딜레이 (초)
        """
        self.delay = delay
        self.session = session or build_session()

    def get_draw_range(self, start: int, end: int) -> List[Dict]:
        """
        start~end 회차 조회 (100회차 단위, 회차 오름차순)

        실패한 구간은 건너뛰고, 모든 구간이 실패하면 DrawSourceError
        """
        if start > end:
            return []

        results: List[Dict] = []
        chunks = 0
        failures = 0
        chunk_start = start
        while chunk_start <= end:
            chunk_end = min(chunk_start + PAGE_SIZE - 1, end)
            chunks += 1
            try:
                rows = self._fetch_rows(chunk_start, chunk_end)
            except DrawSourceError as e:
                failures += 1
                logger.warning(f"연금복권 {chunk_start}~{chunk_end}회 조회 실패: {e.detail}")
                rows = []

            results.extend(self._parse_rows(rows))
            chunk_start = chunk_end + 1
            if chunk_start <= end:
                time.sleep(self.delay)

        if failures and failures == chunks:
            raise DrawSourceError("연금복권 회차 조회 실패", "dhlottery-pension", f"{start}~{end}")

        results.sort(key=lambda d: d["draw_no"])
        return results

    def get_latest_draw_no(self) -> int:
        """1회부터 100회차 단위로 조회해 마지막으로 응답이 있는 회차"""
        latest = 0
        for chunk_start in range(1, MAX_DRAW_PROBE + 1, PAGE_SIZE):
            chunk_end = chunk_start + PAGE_SIZE - 1
            draws = self.get_draw_range(chunk_start, chunk_end)
            if not draws:
                break
            latest = max(d["draw_no"] for d in draws)
            if len(draws) < PAGE_SIZE:
                break
            time.sleep(self.delay)

        if latest == 0:
            raise DrawSourceError("연금복권 최신 회차 확인 실패", "dhlottery-pension")
        logger.info(f"✅ 연금복권 최신 회차: {latest}회")
        return latest

    def _fetch_rows(self, start: int, end: int) -> List[Dict]:
        try:
            res = self.session.get(
                RANGE_URL,
                params={"srchStrPsltEpsd": start, "srchEndPsltEpsd": end},
                timeout=15,
            )
            res.raise_for_status()
            payload = res.json()
        except (requests.RequestException, ValueError) as e:
            raise DrawSourceError("연금복권 API 요청 실패", "dhlottery-pension", str(e)) from e

        data = payload.get("data") if isinstance(payload, dict) else None
        rows = data.get("result") if isinstance(data, dict) else None
        return rows if isinstance(rows, list) else []

    @staticmethod
    def _parse_rows(rows: List[Dict]) -> List[Dict]:
        """
        회차별 행 → 회차 dict

        psltSn 1 = 1등 (wnBndNo 조, wnRnkVl 6자리), 2~7 = 2~7등, 8 + wnSqNo 21 = 보너스(8등)
        """
        by_episode: Dict[int, List[Dict]] = defaultdict(list)
        for row in rows:
            if not isinstance(row, dict):
                continue
            try:
                by_episode[int(row["psltEpsd"])].append(row)
            except (KeyError, TypeError, ValueError):
                logger.warning(f"연금복권 행 파싱 실패: {row}")

        draws = []
        for draw_no, episode_rows in by_episode.items():
            group_no = None
            digits = None
            prizes: List[Optional[int]] = [None] * PRIZE_RANKS

            for row in episode_rows:
                seq = row.get("psltSn")
                if seq == 1:
                    band = str(row.get("wnBndNo") or "").strip()
                    if band.isdigit() and 1 <= int(band) <= 5:
                        group_no = int(band)
                    value = str(row.get("wnRnkVl") or "").strip()
                    if len(value) >= 6 and value[-6:].isdigit():
                        digits = value[-6:]

                if isinstance(seq, int) and 1 <= seq <= 7:
                    rank_idx = seq - 1
                elif seq == 8 and row.get("wnSqNo") == BONUS_SEQ_NO:
                    rank_idx = 7
                else:
                    continue
                prizes[rank_idx] = row.get("wnAmt")

            draws.append({
                "draw_no": draw_no,
                "draw_date": parse_yyyymmdd(episode_rows[0].get("psltRflYmd")),
                "group_no": group_no,
                "digits": digits,
                "prizes": prizes,
                "winners": [None] * PRIZE_RANKS,
            })
        return draws
