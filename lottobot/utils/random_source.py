"""난수 소스 (RANDOM_SEED 설정 시 재현 가능)"""
import random
from typing import List, Optional

from lottobot.config import settings


def get_rng(seed: Optional[int] = None) -> random.Random:
    """시드가 주어지거나 RANDOM_SEED가 설정되어 있으면 고정 시드 Random 반환"""
    if seed is None:
        seed = settings.RANDOM_SEED
    return random.Random(seed)


def random_lotto_numbers(rng: random.Random, n: int = 6) -> List[int]:
    """1~45 중 서로 다른 n개 (오름차순)"""
    return sorted(rng.sample(range(1, 46), n))


def random_digits(rng: random.Random, length: int = 6) -> str:
    """0~9 숫자 length자리 문자열"""
    return "".join(str(rng.randint(0, 9)) for _ in range(length))
