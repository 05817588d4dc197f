"""
텔레그램 알림 (추천 번호 / 당첨 결과)
"""

import html
import logging
import time
from datetime import date
from typing import Dict, Optional

import httpx

from lottobot.config import settings
from lottobot.db.models import RecommendationType
from lottobot.utils.date_utils import next_saturday, next_thursday

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 4096
DIVIDER = "━━━━━━━━━━━━━━━━━━━━━━━━━"
GAME_EMOJIS = ["1️⃣", "2️⃣", "3️⃣", "4️⃣", "5️⃣"]
LOTTO_GAME_PRICE = 1000


def send_telegram_message_sync(chat_id: str, text: str, max_retries: int = 3) -> bool:
    """
    텔레그램 메시지 동기 전송 (네트워크 오류 시 재시도)

    Returns:
        bool: 전송 성공 여부
    """
    if len(text) > MAX_MESSAGE_LENGTH:
        logger.warning(f"Message too long: {len(text)} chars. Truncating to {MAX_MESSAGE_LENGTH}.")
        text = text[:MAX_MESSAGE_LENGTH - 50] + "\n\n... (메시지가 너무 길어 잘렸습니다)"
    if settings.TELEGRAM_DRY_RUN:
        logger.info("TELEGRAM_DRY_RUN enabled: skip send to %s (len=%s)", chat_id, len(text))
        return False

    token = settings.TELEGRAM_TOKEN
    if not token:
        logger.error("TELEGRAM_TOKEN is not set")
        return False

    url = f"https://api.telegram.org/bot{token}/sendMessage"

    for attempt in range(max_retries):
        try:
            response = httpx.post(
                url,
                json={
                    "chat_id": chat_id,
                    "text": text,
                    "parse_mode": "HTML",
                    "disable_web_page_preview": True,
                },
                timeout=10.0,
            )
            response.raise_for_status()
            logger.info(f"Message sent to {chat_id} (attempt {attempt + 1})")
            return True

        except (httpx.ConnectError, httpx.ReadError, httpx.TimeoutException) as e:
            if attempt < max_retries - 1:
                wait_time = 2 ** attempt
                logger.warning(
                    f"Network error sending to {chat_id} (attempt {attempt + 1}/{max_retries}): {e}. "
                    f"Retrying in {wait_time}s..."
                )
                time.sleep(wait_time)
            else:
                logger.error(f"Failed to send message to {chat_id} after {max_retries} attempts: {e}")
                return False

        except httpx.HTTPStatusError as e:
            # 4xx/5xx는 재시도하지 않음
            logger.error(f"HTTP error sending to {chat_id}: {e.response.status_code} - {e.response.text}")
            return False

        except httpx.HTTPError as e:
            logger.error(f"Unexpected error sending to {chat_id}: {e}", exc_info=True)
            return False

    return False


def _game_emoji(game_number: int) -> str:
    if 1 <= game_number <= len(GAME_EMOJIS):
        return GAME_EMOJIS[game_number - 1]
    return f"{game_number}."


def _match_emoji(matched_count: int, prize_rank: Optional[int]) -> str:
    if prize_rank == 1:
        return "🎉🎉🎉"
    if prize_rank == 2:
        return "🎉🎉"
    if prize_rank == 3:
        return "🎉"
    if prize_rank == 4:
        return "👍"
    if matched_count == 0:
        return "❌"
    return "⚪"


def _join(numbers) -> str:
    return ", ".join(str(n) for n in numbers)


def format_lotto_recommendation_message(summary: Dict, draw_date: Optional[date] = None) -> str:
    draw_date = draw_date or next_saturday()
    recs = summary['recommendations']
    lines = [
        f"🎰 <b>{summary['target_draw_no']}회 로또 번호 추천</b>",
        "",
        "📊 <b>통계 기반 (저빈도 제외):</b>",
    ]
    for rec in recs:
        if rec['rec_type'] == RecommendationType.STATISTICAL:
            lines.append(f"{_game_emoji(rec['game_number'])} {_join(rec['numbers'])}")

    ai_recs = [r for r in recs if r['rec_type'] == RecommendationType.AI]
    if ai_recs:
        lines.append("")
        lines.append("🤖 <b>AI 추천:</b>")
        for rec in ai_recs:
            lines.append(f"{_game_emoji(rec['game_number'])} {_join(rec['numbers'])}")
            lines.append(f"   └ <i>{html.escape(rec['ai_reasoning'] or '')}</i>")

    lines.append("")
    lines.append(f"💰 총 구매금액: {len(recs) * LOTTO_GAME_PRICE:,}원")
    lines.append(f"📅 추첨일: {draw_date.isoformat()}")
    return "\n".join(lines)


def format_lotto_result_message(summary: Dict) -> str:
    lines = [
        f"🎯 <b>{summary['draw_no']}회 당첨 결과</b>",
        "",
        f"당첨번호: <b>{_join(summary['winning_numbers'])}</b> + 🔴 {summary['bonus']}",
        "",
        DIVIDER,
    ]
    for rec_type, title in ((RecommendationType.STATISTICAL, "📊 <b>통계 기반:</b>"),
                            (RecommendationType.AI, "🤖 <b>AI 추천:</b>")):
        rows = [r for r in summary['results'] if r['rec_type'] == rec_type]
        if not rows:
            continue
        lines.append(title)
        for r in rows:
            prize_text = f" ({r['prize_rank']}등!)" if r['prize_rank'] else ""
            lines.append(
                f"{_game_emoji(r['game_number'])} {_join(r['numbers'])} → "
                f"{_match_emoji(r['matched_count'], r['prize_rank'])} {r['matched_count']}개{prize_text}"
            )
        lines.append("")
    lines.append(DIVIDER)

    best = summary['best_rank']
    if best is not None:
        game = next(r['game_number'] for r in summary['results'] if r['prize_rank'] == best)
        lines.append(f"🏆 이번 주 최고: {best}등 ({game}번 게임)")
    else:
        most = max((r['matched_count'] for r in summary['results']), default=0)
        lines.append(f"🏆 이번 주 최고: {most}개 일치")
    return "\n".join(lines)


def format_pension_recommendation_message(summary: Dict, draw_date: Optional[date] = None) -> str:
    draw_date = draw_date or next_thursday()
    lines = [
        f"🎱 <b>{summary['target_draw_no']}회 연금복권720+ 추천</b>",
        "",
        "📊 <b>통계 기반:</b>",
    ]
    for rec in summary['recommendations']:
        lines.append(f"{_game_emoji(rec['game_number'])} {rec['group_no']}조 {rec['digits']}")
    lines.append("")
    lines.append(f"📅 추첨일: {draw_date.isoformat()}")
    return "\n".join(lines)


def format_pension_result_message(summary: Dict) -> str:
    if summary['winning_group'] is not None and summary['winning_digits'] is not None:
        winning = f"{summary['winning_group']}조 {summary['winning_digits']}"
    else:
        winning = "(당첨번호 미등록)"

    lines = [
        f"🎱 <b>{summary['draw_no']}회 연금복권 당첨 결과</b>",
        "",
        f"당첨번호: <b>{winning}</b>",
        "",
        DIVIDER,
    ]
    for r in summary['results']:
        rank_text = f"{r['prize_rank']}등!" if r['prize_rank'] else "낙첨"
        lines.append(f"{_game_emoji(r['game_number'])} {r['group_no']}조 {r['digits']} → {rank_text}")
    lines.append(DIVIDER)

    best = summary['best_rank']
    if best is not None:
        game = next(r['game_number'] for r in summary['results'] if r['prize_rank'] == best)
        lines.append(f"🏆 이번 회 최고: {best}등 ({game}번 게임)")
    else:
        lines.append("🏆 이번 회: 낙첨")
    return "\n".join(lines)


def format_pension_sync_message(result: Dict) -> str:
    title = "🎱 <b>연금 당첨 데이터 동기화 완료</b>"
    if result['synced_count'] > 0:
        new_draws = ", ".join(str(n) for n in result['new_draws']) or "-"
        return (
            f"{title}\n\n"
            f"새로 반영: <b>{result['synced_count']}건</b> (회차 {new_draws})\n"
            f"범위: {result['start_draw_no']} ~ {result['end_draw_no']}회"
        )
    return (
        f"{title}\n\n"
        "변경 없음 (최신 상태 유지)\n"
        f"현재 최신: {result['end_draw_no']}회"
    )


def _send(kind: str, build_message) -> bool:
    """메시지 생성 + 전송. 실패해도 예외를 올리지 않음"""
    chat_id = settings.TELEGRAM_CHAT_ID
    if not chat_id:
        logger.warning(f"TELEGRAM_CHAT_ID is not set, {kind} message not sent")
        return False
    try:
        return send_telegram_message_sync(chat_id, build_message())
    except Exception as e:
        logger.error(f"❌ {kind} 알림 전송 실패: {e}", exc_info=True)
        return False


def send_lotto_recommendation(summary: Dict, draw_date: Optional[date] = None) -> bool:
    return _send("lotto recommendation", lambda: format_lotto_recommendation_message(summary, draw_date))


def send_lotto_result(summary: Dict) -> bool:
    return _send("lotto result", lambda: format_lotto_result_message(summary))


def send_pension_recommendation(summary: Dict, draw_date: Optional[date] = None) -> bool:
    return _send("pension recommendation", lambda: format_pension_recommendation_message(summary, draw_date))


def send_pension_result(summary: Dict) -> bool:
    return _send("pension result", lambda: format_pension_result_message(summary))


def send_pension_sync(result: Dict) -> bool:
    return _send("pension sync", lambda: format_pension_sync_message(result))
