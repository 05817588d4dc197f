import os
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv

load_dotenv()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


class Settings:
    APP_ENV: str = os.getenv("APP_ENV", "local")

    PROJECT_ROOT: Path = Path(__file__).resolve().parents[1]
    DEFAULT_DB_PATH: Path = PROJECT_ROOT / "lottobot.db"
    _RAW_DB_URL: Optional[str] = os.getenv("DB_URL")
    if _RAW_DB_URL:
        if _RAW_DB_URL.startswith("sqlite:///") and _RAW_DB_URL != "sqlite:///:memory:":
            raw_path = _RAW_DB_URL.replace("sqlite:///", "", 1)
            if raw_path.startswith("./") or not raw_path.startswith("/"):
                resolved = (PROJECT_ROOT / raw_path.lstrip("./")).resolve()
                DB_URL: str = f"sqlite:///{resolved.as_posix()}"
            else:
                DB_URL = _RAW_DB_URL
        else:
            DB_URL = _RAW_DB_URL
    else:
        DB_URL = f"sqlite:///{DEFAULT_DB_PATH.as_posix()}"

    # Telegram (결과/추천 알림)
    TELEGRAM_TOKEN: Optional[str] = os.getenv("TELEGRAM_TOKEN")
    TELEGRAM_CHAT_ID: Optional[str] = os.getenv("TELEGRAM_CHAT_ID")
    TELEGRAM_DRY_RUN: bool = os.getenv("TELEGRAM_DRY_RUN", "0") == "1"

    # AI 추천 (ollama | anthropic | openai)
    AI_PROVIDER: str = os.getenv("AI_PROVIDER", "ollama").lower()
    AI_TIMEOUT_SECONDS: float = float(os.getenv("AI_TIMEOUT_SECONDS", "60"))
    OLLAMA_BASE_URL: str = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
    OLLAMA_MODEL: str = os.getenv("OLLAMA_MODEL", "llama3.2:8b")
    ANTHROPIC_API_KEY: Optional[str] = os.getenv("ANTHROPIC_API_KEY")
    ANTHROPIC_MODEL: str = os.getenv("ANTHROPIC_MODEL", "claude-3-5-sonnet-20241022")
    OPENAI_API_KEY: Optional[str] = os.getenv("OPENAI_API_KEY")
    OPENAI_MODEL: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")

    # 난수 시드 (테스트/재현용, 비우면 시스템 난수)
    RANDOM_SEED: Optional[int] = (
        int(os.getenv("RANDOM_SEED")) if os.getenv("RANDOM_SEED") else None
    )

    # 로또 추천 구성
    LOTTO_EXCLUDE_COUNT: int = _env_int("LOTTO_EXCLUDE_COUNT", 20)
    LOTTO_STATISTICAL_GAMES: int = _env_int("LOTTO_STATISTICAL_GAMES", 3)
    LOTTO_AI_GAMES: int = _env_int("LOTTO_AI_GAMES", 2)

    # 연금복권 추천 구성 (순위 1개 = 조 1~5 5게임)
    PENSION_DIGIT_RANKS: int = _env_int("PENSION_DIGIT_RANKS", 1)

    # Scheduler (KST)
    SCHEDULER_ENABLED: bool = os.getenv("SCHEDULER_ENABLED", "1") == "1"
    SCHEDULER_TIMEZONE: str = os.getenv("SCHEDULER_TIMEZONE", "Asia/Seoul")
    LOTTO_GENERATE_CRON: str = os.getenv("LOTTO_GENERATE_CRON", "30 12 * * mon")
    LOTTO_VERIFY_CRON: str = os.getenv("LOTTO_VERIFY_CRON", "0 22 * * sat")
    PENSION_GENERATE_CRON: str = os.getenv("PENSION_GENERATE_CRON", "30 12 * * fri")
    PENSION_VERIFY_CRON: str = os.getenv("PENSION_VERIFY_CRON", "0 12 * * fri")
    LOTTO_SYNC_CRON: str = os.getenv("LOTTO_SYNC_CRON", "30 22 * * sat")
    PENSION_SYNC_CRON: str = os.getenv("PENSION_SYNC_CRON", "0 13 * * fri")


settings = Settings()
