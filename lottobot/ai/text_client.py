"""AI 텍스트 생성 클라이언트 (Ollama / Claude / OpenAI)"""
import logging
from typing import Optional

import httpx

from lottobot.config import settings

logger = logging.getLogger(__name__)


class AiClientError(RuntimeError):
    """AI 서버 호출 실패 (연결 불가, 타임아웃, 잘못된 응답)"""


class OllamaTextClient:
    """로컬 Ollama 서버 (/api/generate)"""

    name = "ollama"

    def __init__(
        self,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        self.base_url = (base_url or settings.OLLAMA_BASE_URL).rstrip("/")
        self.model = model or settings.OLLAMA_MODEL
        self.timeout = timeout if timeout is not None else settings.AI_TIMEOUT_SECONDS
        self.http = http_client or httpx.Client()

    def is_available(self) -> bool:
        """서버 상태 확인 (가벼운 GET /api/tags)"""
        try:
            response = self.http.get(f"{self.base_url}/api/tags", timeout=5.0)
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.warning(f"Ollama server is not available: {e}")
            return False

    def generate(self, prompt: str) -> str:
        logger.debug(f"Calling Ollama with model: {self.model}")
        try:
            response = self.http.post(
                f"{self.base_url}/api/generate",
                json={"model": self.model, "prompt": prompt, "stream": False},
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise AiClientError(f"Ollama request failed: {e}") from e

        text = data.get("response") if isinstance(data, dict) else None
        if not isinstance(text, str):
            raise AiClientError("Ollama response has no text")
        return text


class AnthropicTextClient:
    """Claude API"""

    name = "anthropic"

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None,
                 timeout: Optional[float] = None):
        self.api_key = api_key or settings.ANTHROPIC_API_KEY
        self.model = model or settings.ANTHROPIC_MODEL
        self.timeout = timeout if timeout is not None else settings.AI_TIMEOUT_SECONDS

    def is_available(self) -> bool:
        return bool(self.api_key)

    def generate(self, prompt: str) -> str:
        import anthropic

        try:
            client = anthropic.Anthropic(api_key=self.api_key, timeout=self.timeout)
            message = client.messages.create(
                model=self.model,
                max_tokens=1024,
                messages=[{"role": "user", "content": prompt}],
            )
            return message.content[0].text.strip()
        except anthropic.APIError as e:
            raise AiClientError(f"Claude API 호출 실패: {e}") from e


class OpenAITextClient:
    """OpenAI Chat Completions"""

    name = "openai"

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None,
                 timeout: Optional[float] = None):
        self.api_key = api_key or settings.OPENAI_API_KEY
        self.model = model or settings.OPENAI_MODEL
        self.timeout = timeout if timeout is not None else settings.AI_TIMEOUT_SECONDS

    def is_available(self) -> bool:
        return bool(self.api_key)

    def generate(self, prompt: str) -> str:
        import openai
        from openai import OpenAI

        try:
            client = OpenAI(api_key=self.api_key, timeout=self.timeout)
            response = client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": "당신은 로또 번호 분석 전문가입니다. 요청한 JSON 형식으로만 답하세요."},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=800,
                temperature=0.7,
            )
            return (response.choices[0].message.content or "").strip()
        except openai.OpenAIError as e:
            raise AiClientError(f"OpenAI API 호출 실패: {e}") from e


def build_text_client(provider: Optional[str] = None):
    """AI_PROVIDER 설정에 맞는 클라이언트 생성"""
    provider = (provider or settings.AI_PROVIDER).lower()
    if provider == "anthropic":
        return AnthropicTextClient()
    if provider == "openai":
        return OpenAITextClient()
    if provider != "ollama":
        logger.warning(f"Unknown AI_PROVIDER '{provider}', using ollama")
    return OllamaTextClient()
