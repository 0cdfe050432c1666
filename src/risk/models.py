"""Risk data models.

RiskLimits (allowed stake range) and Violation (compliance breach).
"""

from __future__ import annotations

from dataclasses import dataclass

from src.ledger.models import Severity


@dataclass(frozen=True)
class RiskLimits:
    min_risk: float
    max_risk: float
    balance_for_calculation: float
    drawdown_protected: bool


@dataclass(frozen=True)
class Violation:
    type: str  # daily_loss | max_drawdown | pick_minimum | inactivity
    message: str
    severity: Severity
