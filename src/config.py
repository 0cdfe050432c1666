from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings

PROJECT_ROOT = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # Storage (accounts.json + account_{id}_data/config.json)
    data_dir: str = "data"

    # === Challenge rules ===
    daily_loss_limit_pct: float = 10.0  # of account size
    max_drawdown_limit_pct: float = 15.0  # of account size
    drawdown_protection_pct: float = 15.0  # below peak → min stake floor
    min_picks: int = 20
    inactivity_days: int = 5  # Funded only
    phase_profit_target_pct: float = 20.0  # of phase start balance

    # === Discord status webhook (optional) ===
    discord_webhook_url: str = ""
    webhook_timeout_sec: float = 10.0

    # === HTTP API ===
    api_title: str = "Funded Bet Tracker"

    # === Logging ===
    structured_logging: bool = False

    def resolved_data_dir(self) -> Path:
        p = Path(self.data_dir).expanduser()
        if p.is_absolute():
            return p
        return (PROJECT_ROOT / p).resolve()


settings = Settings()
