"""로또 통계 계산 - 번호별 출현 빈도 / 후보 번호"""
import logging
from collections import Counter
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

NUMBER_RANGE = range(1, 46)
TOP_SLICE = 10


def draw_numbers(draw: Dict) -> List[int]:
    """회차 dict에서 당첨 번호 6개 추출"""
    return [draw['n1'], draw['n2'], draw['n3'], draw['n4'], draw['n5'], draw['n6']]


class LottoStatsCalculator:
    @staticmethod
    def calculate_statistics(draws: List[Dict]) -> Dict:
        """
        전체 회차 번호별 출현 통계

        Args:
            draws: 회차 dict 목록 [{draw_no, n1..n6, bonus}, ...]

        Returns:
            {
                'total_draws': int,
                'frequencies': [{number, count, percentage, last_appeared}, ...]  (출현 많은 순),
                'most_frequent': 상위 10개,
                'least_frequent': 하위 10개 (적게 나온 순),
            }
        """
        if not draws:
            return {
                'total_draws': 0,
                'frequencies': [],
                'most_frequent': [],
                'least_frequent': [],
            }

        counter = Counter()
        last_appeared: Dict[int, int] = {}
        for draw in draws:
            for n in draw_numbers(draw):
                counter[n] += 1
                if draw['draw_no'] > last_appeared.get(n, 0):
                    last_appeared[n] = draw['draw_no']

        total_slots = len(draws) * 6
        frequencies = [
            {
                'number': n,
                'count': counter.get(n, 0),
                'percentage': counter.get(n, 0) / total_slots * 100,
                'last_appeared': last_appeared.get(n),
            }
            for n in NUMBER_RANGE
        ]
        # 안정 정렬: 같은 횟수면 번호 오름차순 유지
        frequencies.sort(key=lambda f: f['count'], reverse=True)

        return {
            'total_draws': len(draws),
            'frequencies': frequencies,
            'most_frequent': frequencies[:TOP_SLICE],
            'least_frequent': list(reversed(frequencies[-TOP_SLICE:])),
        }

    @staticmethod
    def get_candidate_numbers(draws: List[Dict], exclude_count: int = 20) -> List[int]:
        """
        하위 N개 번호를 제외한 후보 번호 (번호 오름차순)

        동률은 빈도 순위(출현 많은 순 목록의 순서)로 결정한다.
        데이터가 없으면 1~45 전체.
        """
        stats = LottoStatsCalculator.calculate_statistics(draws)
        if not stats['frequencies']:
            return list(NUMBER_RANGE)

        by_ascending = sorted(stats['frequencies'], key=lambda f: f['count'])
        excluded = {f['number'] for f in by_ascending[:exclude_count]}
        candidates = sorted(
            f['number'] for f in stats['frequencies'] if f['number'] not in excluded
        )

        logger.debug(
            "Candidate numbers (excluded %s least frequent): %s",
            exclude_count, ", ".join(map(str, candidates)),
        )
        return candidates

    @staticmethod
    def get_number_detail(draws: List[Dict], number: int) -> Optional[Dict]:
        """번호별 상세 정보"""
        stats = LottoStatsCalculator.calculate_statistics(draws)
        for f in stats['frequencies']:
            if f['number'] == number:
                return f
        return None
