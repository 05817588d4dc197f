"""AI 기반 로또 번호 추천 (검증 + 랜덤 폴백)"""
import json
import logging
import random
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, StrictInt, ValidationError, field_validator

from lottobot.ai.text_client import build_text_client
from lottobot.utils.random_source import get_rng, random_lotto_numbers

logger = logging.getLogger(__name__)

RECENT_DRAW_LIMIT = 10
DEFAULT_REASONING = "AI 추천"
NO_DATA_REASONING = "데이터 부족으로 랜덤 생성"
FALLBACK_REASONING = "AI 서버 연결 불가로 랜덤 생성"

_JSON_PATTERN = re.compile(r'\{[\s\S]*"recommendations"[\s\S]*\}')


class AiNumberSet(BaseModel):
    """AI 응답의 추천 1세트"""

    numbers: List[StrictInt]
    reasoning: Optional[str] = None

    @field_validator("numbers")
    @classmethod
    def check_numbers(cls, value: List[int]) -> List[int]:
        if len(value) != 6:
            raise ValueError(f"expected 6 numbers, got {len(value)}")
        if len(set(value)) != 6:
            raise ValueError("duplicate numbers")
        out_of_range = [n for n in value if n < 1 or n > 45]
        if out_of_range:
            raise ValueError(f"out of range: {out_of_range}")
        return value

    @field_validator("reasoning", mode="before")
    @classmethod
    def coerce_reasoning(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        return str(value).strip() or None


@dataclass(frozen=True)
class ValidSet:
    numbers: List[int]
    reasoning: str


@dataclass(frozen=True)
class InvalidSet:
    reason: str


def validate_candidate(raw: Any) -> Union[ValidSet, InvalidSet]:
    """응답 세트 1개 검증 → ValidSet / InvalidSet"""
    if not isinstance(raw, dict):
        return InvalidSet(f"not an object: {type(raw).__name__}")
    try:
        parsed = AiNumberSet.model_validate(raw)
    except ValidationError as e:
        return InvalidSet("; ".join(err["msg"] for err in e.errors()))
    return ValidSet(sorted(parsed.numbers), parsed.reasoning or DEFAULT_REASONING)


def extract_recommendations(text: str) -> Optional[List[Any]]:
    """응답 텍스트에서 {"recommendations": [...]} 추출. 실패 시 None"""
    if not text:
        return None
    match = _JSON_PATTERN.search(text)
    if not match:
        return None
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError:
        return None
    if not isinstance(parsed, dict):
        return None
    recommendations = parsed.get("recommendations")
    if not isinstance(recommendations, list):
        return None
    return recommendations


def build_prompt(recent_draws: List[Dict], count: int) -> str:
    draws_text = "\n".join(
        f"{i}. {', '.join(str(n) for n in d['numbers'])} + 보너스: {d['bonus']}"
        for i, d in enumerate(recent_draws, 1)
    )
    return f"""당신은 로또 번호 분석 전문가입니다.

[최근 당첨 번호]
{draws_text}

위 데이터를 분석하여 다음 회차에 나올 것 같은 로또 번호 6개를 {count}세트 추천해주세요.

각 세트는 1~45 사이의 서로 다른 숫자 6개로 구성되어야 합니다.
각 세트마다 왜 그 번호를 선택했는지 간단히 설명해주세요.

반드시 아래 JSON 형식으로만 응답해주세요:
{{
  "recommendations": [
    {{
      "numbers": [1, 2, 3, 4, 5, 6],
      "reasoning": "선택 이유"
    }}
  ]
}}"""


class AiRecommender:
    def __init__(self, client=None, rng: Optional[random.Random] = None):
        self.client = client or build_text_client()
        self.rng = rng or get_rng()

    def recommend(self, recent_draws: List[Dict], count: int = 2) -> List[Dict]:
        """
        AI 추천 번호 count세트 (항상 정확히 count개, 모두 유효)

        Args:
            recent_draws: 최근 회차 [{numbers: [...], bonus: int}, ...] (오래된 순)
            count: 추천 세트 수

        Returns:
            [{numbers, reasoning, is_fallback}, ...]
        """
        if count <= 0:
            return []
        logger.info(f"Generating {count} AI recommendations")

        if not recent_draws:
            logger.warning("No draws provided, generating random numbers")
            return self._fallback_sets(count, NO_DATA_REASONING)

        if not self.client.is_available():
            logger.warning(f"AI server ({self.client.name}) not available, returning random numbers")
            return self._fallback_sets(count, FALLBACK_REASONING)

        prompt = build_prompt(recent_draws[-RECENT_DRAW_LIMIT:], count)
        try:
            response = self.client.generate(prompt)
        except Exception as e:
            logger.error(f"Failed to get AI recommendation: {e}")
            return self._fallback_sets(count, FALLBACK_REASONING)

        candidates = extract_recommendations(response)
        if candidates is None:
            logger.error("Failed to parse AI response (no JSON recommendations)")
            return self._fallback_sets(count, FALLBACK_REASONING)

        results = []
        for idx in range(count):
            outcome = (
                validate_candidate(candidates[idx])
                if idx < len(candidates)
                else InvalidSet("missing set")
            )
            if isinstance(outcome, ValidSet):
                results.append({
                    'numbers': outcome.numbers,
                    'reasoning': outcome.reasoning,
                    'is_fallback': False,
                })
            else:
                logger.warning(f"AI set #{idx + 1} invalid ({outcome.reason}), using random fallback")
                results.append(self._fallback_set(FALLBACK_REASONING))
        return results

    def check_status(self) -> Dict:
        available = self.client.is_available()
        return {
            'available': available,
            'message': (
                f"{self.client.name} server is running"
                if available
                else f"{self.client.name} server is not available"
            ),
        }

    def _fallback_set(self, reasoning: str) -> Dict:
        return {
            'numbers': random_lotto_numbers(self.rng),
            'reasoning': reasoning,
            'is_fallback': True,
        }

    def _fallback_sets(self, count: int, reasoning: str) -> List[Dict]:
        return [self._fallback_set(reasoning) for _ in range(count)]
