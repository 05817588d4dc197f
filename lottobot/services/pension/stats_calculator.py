"""연금복권 통계 계산 - 자리별 숫자 빈도 / 순위별 추천 6자리"""
import logging
import random
from typing import Dict, List, Optional, Set

from lottobot.utils.random_source import get_rng, random_digits

logger = logging.getLogger(__name__)

DIGIT_LENGTH = 6


def is_valid_digits(digits: Optional[str]) -> bool:
    """6자리 숫자 문자열인지"""
    return (
        isinstance(digits, str)
        and len(digits) == DIGIT_LENGTH
        and all(c in "0123456789" for c in digits)
    )


class PensionStatsCalculator:
    @staticmethod
    def calculate_digit_frequency(draws: List[Dict]) -> Dict:
        """
        자리별(1~6번째) 숫자(0~9) 출현 빈도

        Returns:
            {
                'total_draws': 유효한 6자리가 있는 회차 수,
                'by_position': [[{digit, count}, ...] x 6]  (자리별 출현 많은 순)
            }
        """
        rows = [d['digits'] for d in draws if is_valid_digits(d.get('digits'))]
        if not rows:
            return {
                'total_draws': 0,
                'by_position': [[] for _ in range(DIGIT_LENGTH)],
            }

        counts = [[0] * 10 for _ in range(DIGIT_LENGTH)]
        for digits in rows:
            for pos, ch in enumerate(digits):
                counts[pos][int(ch)] += 1

        by_position = []
        for position_counts in counts:
            observed = [
                {'digit': digit, 'count': count}
                for digit, count in enumerate(position_counts)
                if count > 0
            ]
            observed.sort(key=lambda x: x['count'], reverse=True)
            by_position.append(observed)

        return {'total_draws': len(rows), 'by_position': by_position}

    @staticmethod
    def get_ranked_digit_sets(
        draws: List[Dict],
        k: int = 3,
        rng: Optional[random.Random] = None,
    ) -> List[str]:
        """
        순위별 추천 6자리 k세트 (0 = 자리별 최다 출현 숫자 조합)

        해당 순위 숫자가 없는 자리는 가장 낮은 순위 숫자로 대체한다.
        앞 순위와 겹치면 자리별로 다음 빈도 숫자 → 다른 숫자 순으로 바꿔 중복을 피한다.
        이력이 없으면 k개 모두 랜덤.
        """
        rng = rng or get_rng()
        freq = PensionStatsCalculator.calculate_digit_frequency(draws)

        if freq['total_draws'] == 0:
            logger.info("No pension history, generating %s random digit sets", k)
            results: List[str] = []
            while len(results) < k:
                digits = random_digits(rng, DIGIT_LENGTH)
                if digits not in results:
                    results.append(digits)
            return results

        by_position = freq['by_position']
        results = []
        used: Set[str] = set()
        for rank in range(k):
            digits = _pick_at_rank(by_position, rank, rng)
            if digits in used:
                digits = _make_distinct(digits, by_position, used, rng)
            used.add(digits)
            results.append(digits)
        return results


def _pick_at_rank(by_position: List[List[Dict]], rank: int, rng: random.Random) -> str:
    result = []
    for candidates in by_position:
        if not candidates:
            result.append(str(rng.randint(0, 9)))
            continue
        idx = min(rank, len(candidates) - 1)
        result.append(str(candidates[idx]['digit']))
    return "".join(result)


def _make_distinct(
    digits: str,
    by_position: List[List[Dict]],
    used: Set[str],
    rng: random.Random,
) -> str:
    arr = list(digits)

    # 1) 자리별로 빈도 순위가 다른 숫자로 교체
    for pos, candidates in enumerate(by_position):
        for cand in candidates:
            d = str(cand['digit'])
            if d == arr[pos]:
                continue
            trial = "".join(arr[:pos] + [d] + arr[pos + 1:])
            if trial not in used:
                return trial

    # 2) 자리별로 이전 값과 다른 아무 숫자
    for pos in range(DIGIT_LENGTH):
        for d in "0123456789":
            if d == arr[pos]:
                continue
            trial = "".join(arr[:pos] + [d] + arr[pos + 1:])
            if trial not in used:
                return trial

    # 3) 이웃 조합이 모두 사용된 경우
    while True:
        trial = random_digits(rng, DIGIT_LENGTH)
        if trial not in used:
            return trial
