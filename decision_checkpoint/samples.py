"""
Bundled sample questionnaires and JSON loaders.

Samples cover both ends of the rubric so a demo run (no network, no API
key) shows a systematic plan, a risky one, and a risk-profile scenario
that trips the cross-validation checks.

Decision files are JSON objects:

    {"name": "...", "answers": {"1-1": "...", "2-1": ["...", "..."], ...}}

A bare answers object is also accepted; the decision is then named after
the file.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from decision_checkpoint.questions import InvestmentDecision

SYSTEMATIC_ANSWERS: Dict[str, Any] = {
    "1-1": "Grow capital 8% annually over the next decade for retirement",
    "1-2": "Long-term (>5 years)",
    "1-3": "Moderate (fluctuation 10-25%)",
    "1-4": "Keep 20% in cash; low liquidity needs otherwise",
    "2-1": [
        "Fundamental Analysis (financial reports, industry position)",
        "Quantitative Analysis (factor backtest)",
    ],
    "2-2": "Matches my long-term goal of compounding growth",
    "2-3": "PE below 20, ROE above 15%, RSI and MACD confirmation",
    "3-1": "Buy when PE below 15 and price drops 10% from 52-week high",
    "3-2": "Take profit at 25% gain or target price",
    "3-3": "Stop loss at 8% below entry",
    "3-4": "Max single position size 10% of portfolio",
    "4-1": "Market risk, sector concentration, interest rate risk",
    "4-2": "Weekly review with price alerts and monitor earnings",
    "4-3": ["Stop-loss Orders", "Diversification (across 3+ unrelated industries)"],
    "4-4": "15%",
    "5-1": ["Company Filings", "Analyst Reports"],
    "5-2": "Cross-reference filings with analyst data and verify numbers",
    "5-3": "Earnings grow 10% yearly and rates stay stable",
    "6-1": "No",
    "6-2": "No",
    "6-3": "No",
    "6-4": "No",
    "6-5": "Yes",
    "6-6": "Use a written checklist and seek a second opinion before each trade",
    "7-1": "Diversified quality portfolio bought below fair value and held for the long run",
    "7-2": "Rising rates above 6% or a sector-wide earnings decline",
    "7-3": "Quarterly",
    "7-4": "Financial advisor",
}

SPECULATIVE_ANSWERS: Dict[str, Any] = {
    "1-1": "Double my money fast with high growth",
    "1-2": "Short-term (<1 year)",
    "1-3": "Aggressive (fluctuation >25%)",
    "1-4": "High, may need it for an emergency",
    "2-1": ["Technical Analysis (trend lines, volume)"],
    "2-2": "It's popular",
    "2-3": "Trend",
    "3-1": "When it feels right",
    "3-2": "Sell when up",
    "3-3": "Not sure",
    "3-4": "All in",
    "4-1": "None really",
    "4-2": "Check sometimes",
    "4-3": ["Stop-loss Orders"],
    "4-4": "Whatever",
    "5-1": ["Social Media (e.g., Douyin, Xiaohongshu)"],
    "5-2": "Trust it",
    "5-3": "It goes up",
    "6-1": "Yes",
    "6-2": "Yes",
    "6-3": "Yes",
    "6-4": "No",
    "6-5": "No",
    "6-6": "Nothing",
    "7-1": "Buy the hot stock",
    "7-2": "Nothing",
    "7-3": "Monthly",
}

BUILTIN_DECISIONS: List[Dict[str, Any]] = [
    {"name": "Diversified quality portfolio", "answers": SYSTEMATIC_ANSWERS},
    {"name": "Momentum punt", "answers": SPECULATIVE_ANSWERS},
]

# Over 50, wants to buy the dip with only a few years of experience
SAMPLE_RISK_ANSWERS: Dict[str, Any] = {
    "fin-1": "50%-80% (5 points)",
    "fin-2": "6-12 months (5 points)",
    "fin-3": "10%-30% (5 points)",
    "goal-1": "Return 11-15%, Loss ≤20% (Balanced, 7 points)",
    "goal-2": ">5 years (Long-term, 8 points)",
    "psych-1": "Buy more to average down (7 points)",
    "psych-2": "6-12 months (5 points)",
    "psych-3": '"I accept higher volatility for excess returns" (6 points)',
    "exp-1": "1-3 years (3 points)",
    "exp-2": ["P/E Ratio / P/B Ratio (+1 point)", "Sharpe Ratio / Maximum Drawdown (+2 points)"],
    "demo-1": ">50 years (-2 points)",
    "demo-2": "Corporate employee (+1 point)",
}


def load_sample_decisions() -> List[InvestmentDecision]:
    """Bundled sample decisions. No network required."""
    return [InvestmentDecision(name=d["name"], answers=d["answers"]) for d in BUILTIN_DECISIONS]


def load_sample_decision(name: Optional[str] = None) -> InvestmentDecision:
    """The first bundled decision, or the one with the given name."""
    decisions = load_sample_decisions()
    if name is None:
        return decisions[0]
    for decision in decisions:
        if decision.name == name:
            return decision
    raise KeyError(f"No sample decision named {name!r}")


def _read_json(path: Union[str, Path]) -> Any:
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def decision_from_dict(data: Mapping[str, Any], default_name: str = "") -> InvestmentDecision:
    if not isinstance(data, Mapping):
        raise ValueError("Decision JSON must be an object")
    if "answers" in data:
        answers = data["answers"]
        if not isinstance(answers, Mapping):
            raise ValueError("'answers' must be an object")
        return InvestmentDecision(name=str(data.get("name") or default_name), answers=answers)
    return InvestmentDecision(name=default_name, answers=data)


def load_decision_file(path: Union[str, Path]) -> InvestmentDecision:
    path = Path(path)
    return decision_from_dict(_read_json(path), default_name=path.stem)


def load_risk_answers_file(path: Union[str, Path]) -> Dict[str, Any]:
    data = _read_json(path)
    if not isinstance(data, dict):
        raise ValueError("Risk answers JSON must be an object")
    return data.get("answers", data) if isinstance(data.get("answers"), dict) else data
