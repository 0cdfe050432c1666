"""Discord status summary and webhook sender."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

from src.config import settings
from src.ledger.models import Phase, Severity

if TYPE_CHECKING:
    from src.ledger.tracker import AccountStatus

logger = logging.getLogger(__name__)

# Discord message content hard limit
MAX_CONTENT_LEN = 2000


def format_status_message(status: AccountStatus) -> str:
    """Account status block for pasting into Discord."""
    lines = [
        "🏆 **FUNDED ACCOUNT STATUS**",
        "```",
        f"Account: {status.account_tier} ${status.account_size:,.0f}",
        f"Phase: {status.current_phase}",
        f"Balance: ${status.current_balance:,.2f}",
    ]
    if status.current_phase != Phase.FUNDED:
        lines.append(f"Target: ${status.profit_target:,.2f}")
        lines.append(
            f"Progress: ${status.profit_progress:,.2f} ({status.profit_percentage:.1f}%)"
        )
    lines.append(f"Today P&L: ${status.today_pnl:,.2f}")
    lines.append(f"Max DD: ${status.max_drawdown:,.2f}")
    lines.append(f"Picks: {status.total_picks}/{settings.min_picks} minimum")
    if status.drawdown_protected:
        lines.append(f"Drawdown protection: ON (min bet ${status.risk_limits.min_risk:,.2f})")

    if status.violations:
        lines.append("")
        lines.append("⚠️ VIOLATIONS:")
        for v in status.violations:
            icon = "🚨" if v.severity == Severity.CRITICAL else "⚠️"
            lines.append(f"{icon} {v.message}")

    lines.append("```")
    return "\n".join(lines)


def send_message(text: str) -> bool:
    """Post text to the configured Discord webhook. Returns True on success.

    Never raises: notification failures must not affect the ledger.
    """
    if not settings.discord_webhook_url:
        logger.warning("Discord webhook not configured, skipping notification")
        return False

    if len(text) > MAX_CONTENT_LEN:
        text = text[: MAX_CONTENT_LEN - 4] + "\n```"

    try:
        resp = httpx.post(
            settings.discord_webhook_url,
            json={"content": text},
            timeout=settings.webhook_timeout_sec,
        )
        resp.raise_for_status()
        return True
    except httpx.HTTPStatusError as e:
        logger.error("Discord HTTP error %d: %s", e.response.status_code, e)
        return False
    except httpx.TimeoutException:
        logger.warning("Discord request timed out")
        return False
    except httpx.HTTPError:
        logger.exception("Failed to send Discord message")
        return False


def send_status(status: AccountStatus) -> bool:
    return send_message(format_status_message(status))
