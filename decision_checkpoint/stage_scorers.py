"""
Heuristic stage scorers.

One pure function per questionnaire stage. Each scorer starts from a base
score, applies fixed point deltas for presence, length and keyword/pattern
matches in its own stage's answers, and records a human-readable strength or
weakness for each rule that fires. Scores are clamped to [0, 100].

The rules are plain string checks: no randomness and no clock, so the same
AnswerSet always yields the same StageScore. Keyword lists cover both the
English and Chinese option wording.

Weakness strings double as lookup keys for the recommendation generator, so
they are defined once below as module constants.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from decision_checkpoint.questions import answer_text

# Answers shorter than this carry no usable information
MIN_VALID_ANSWER_LENGTH = 10

BASE_SCORE = 60
BIAS_STAGE_BASE_SCORE = 50


# ─── Weakness tags ────────────────────────────────────────────────────────────

GOALS_UNCLEAR = "Investment goals are unclear."
HORIZON_MISSING = "Investment time horizon is not specified."
SHORT_HORIZON_GROWTH_CONFLICT = "Short-term horizon may conflict with high-growth expectations."
TOLERANCE_HORIZON_MISMATCH = "Mismatch between risk tolerance and investment time horizon."
TOLERANCE_MISSING = "Risk tolerance is not specified."
LIQUIDITY_MISSING = "Liquidity needs are not specified."

METHOD_MISSING = "No investment method selected."
METHOD_RATIONALE_MISSING = "Rationale for method selection is not provided or insufficient."
METRICS_MISSING = "Key evaluation metrics are not specified."

BUY_RULES_MISSING = "Buy rules are unclear or not specified."
PROFIT_RULES_MISSING = "Profit-taking sell rules are not specified."
STOP_LOSS_MISSING = "Stop-loss rules are not specified."
POSITION_SIZING_MISSING = "Position sizing strategy is not specified."

RISKS_NOT_IDENTIFIED = "Major risks associated with the investment are not identified."
MONITORING_MISSING = "Risk monitoring methods are not specified."
MITIGATION_MISSING = "No risk mitigation methods selected."
MAX_LOSS_MISSING = "Maximum acceptable loss is not specified."

SOURCES_MISSING = "Information sources are not specified."
SOCIAL_MEDIA_ONLY = "Relies solely on social media as an information source."
SOCIAL_MEDIA_MIXED = "Includes less credible sources (e.g., social media) without sufficient balance."
VERIFICATION_MISSING = "Information verification methods are not specified."
ASSUMPTIONS_MISSING = "Key assumptions underlying the investment thesis are not identified."

BIAS_CHECK_LIMITED = "Limited self-check for potential cognitive biases."
BIAS_CHECK_INCOMPLETE = "Some cognitive bias self-check questions are unanswered."
BIAS_MEASURES_MISSING = "No measures defined to address potential cognitive biases."
BIASES_WITHOUT_COUNTERMEASURES = "Acknowledged biases without defining countermeasures."

SUMMARY_MISSING = "Investment decision summary/rationale is missing or too brief."
THESIS_BREAKERS_MISSING = "Potential thesis-invalidating factors are not identified."
REVIEW_MISSING = "The review process/frequency is not defined."


@dataclass(frozen=True)
class StageScore:
    """Score and feedback for one questionnaire stage."""
    score: int
    strengths: Tuple[str, ...] = ()
    weaknesses: Tuple[str, ...] = ()
    augmentation_details: Optional[Mapping[str, Any]] = None

    def to_dict(self) -> dict:
        d = {
            "score": self.score,
            "strengths": list(self.strengths),
            "weaknesses": list(self.weaknesses),
        }
        if self.augmentation_details is not None:
            d["augmentation_details"] = dict(self.augmentation_details)
        return d


def clamp_score(score: float) -> int:
    return int(max(0, min(100, score)))


def _finish(score: float, strengths: List[str], weaknesses: List[str]) -> StageScore:
    return StageScore(score=clamp_score(score), strengths=tuple(strengths), weaknesses=tuple(weaknesses))


def _choices(answers: Mapping[str, Any], question_id: str) -> List[str]:
    value = answers.get(question_id)
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    if isinstance(value, str) and value.strip():
        return [value.strip()]
    return []


def _has_content(text: str) -> bool:
    return len(text) > MIN_VALID_ANSWER_LENGTH


def _contains_any(text: str, keywords: Sequence[str]) -> bool:
    lower = text.lower()
    return any(kw.lower() in lower for kw in keywords)


def is_long_term(horizon: str) -> bool:
    return _contains_any(horizon, ("Long-term", ">5", "长期"))


def is_medium_term(horizon: str) -> bool:
    return _contains_any(horizon, ("Medium-term", "中期"))


def is_short_term(horizon: str) -> bool:
    return _contains_any(horizon, ("Short-term", "<1", "短期"))


def is_aggressive(tolerance: str) -> bool:
    return _contains_any(tolerance, ("Aggressive", "激进"))


def is_moderate(tolerance: str) -> bool:
    return _contains_any(tolerance, ("Moderate", "适中", "稳健"))


def is_conservative(tolerance: str) -> bool:
    return _contains_any(tolerance, ("Conservative", "保守"))


# ─── Stage 1: goals & risk ────────────────────────────────────────────────────

def score_goals_and_risk(answers: Mapping[str, Any]) -> StageScore:
    score = BASE_SCORE
    strengths: List[str] = []
    weaknesses: List[str] = []

    goals = answer_text(answers, "1-1")
    if _has_content(goals):
        score += 10
        strengths.append("Investment goals are clearly defined.")
    else:
        score -= 15
        weaknesses.append(GOALS_UNCLEAR)

    horizon = answer_text(answers, "1-2")
    if horizon:
        if is_long_term(horizon):
            score += 10
            strengths.append("Has a long-term investment perspective.")
        elif is_medium_term(horizon):
            score += 5
        elif _contains_any(goals, ("growth", "高收益")):
            score -= 10
            weaknesses.append(SHORT_HORIZON_GROWTH_CONFLICT)
    else:
        score -= 10
        weaknesses.append(HORIZON_MISSING)

    tolerance = answer_text(answers, "1-3")
    if tolerance:
        if (is_short_term(horizon) and is_aggressive(tolerance)) or \
                (is_long_term(horizon) and is_conservative(tolerance)):
            score -= 10
            weaknesses.append(TOLERANCE_HORIZON_MISMATCH)
        elif (is_long_term(horizon) or is_medium_term(horizon)) and is_moderate(tolerance):
            score += 10
            strengths.append("Risk tolerance is well-aligned with the investment time horizon.")
    else:
        score -= 10
        weaknesses.append(TOLERANCE_MISSING)

    liquidity = answer_text(answers, "1-4")
    if _has_content(liquidity):
        score += 5
        if _contains_any(liquidity, ("%", "need access", "liquid", "保留")):
            strengths.append("Liquidity needs are considered.")
    else:
        score -= 5
        weaknesses.append(LIQUIDITY_MISSING)

    return _finish(score, strengths, weaknesses)


# ─── Stage 2: investment method ───────────────────────────────────────────────

def score_investment_method(answers: Mapping[str, Any]) -> StageScore:
    score = BASE_SCORE
    strengths: List[str] = []
    weaknesses: List[str] = []

    methods = _choices(answers, "2-1")
    if methods:
        if len(methods) >= 2:
            score += 10
            strengths.append("Utilizes multiple investment methods.")
        else:
            score += 5
        has_fundamental = any(_contains_any(m, ("Fundamental", "基本面")) for m in methods)
        has_technical = any(_contains_any(m, ("Technical", "技术")) for m in methods)
        has_quant = any(_contains_any(m, ("Quantitative", "量化")) for m in methods)
        if has_fundamental and (has_technical or has_quant):
            score += 5
            strengths.append("Combines qualitative and quantitative analysis approaches.")
    else:
        score -= 20
        weaknesses.append(METHOD_MISSING)

    rationale = answer_text(answers, "2-2")
    if _has_content(rationale):
        if _contains_any(rationale, ("goal", "match", "目标", "匹配")):
            score += 10
            strengths.append("Method selection is justified and linked to investment goals.")
        else:
            score += 5
    else:
        score -= 10
        weaknesses.append(METHOD_RATIONALE_MISSING)

    metrics = answer_text(answers, "2-3")
    if _has_content(metrics):
        fundamental = re.search(r"\b(PE|PB|ROE|P/E|P/B)\b", metrics) is not None or \
            _contains_any(metrics, ("市盈率", "市净率"))
        technical = re.search(r"\b(MACD|RSI)\b", metrics) is not None or \
            _contains_any(metrics, ("moving average", "均线"))
        if fundamental and technical:
            score += 10
            strengths.append("Utilizes metrics from multiple analysis dimensions (e.g., fundamental, technical).")
        elif fundamental or technical:
            score += 5
            strengths.append("Specifies basic evaluation metrics.")
    else:
        score -= 10
        weaknesses.append(METRICS_MISSING)

    return _finish(score, strengths, weaknesses)


# ─── Stage 3: buy/sell rules ──────────────────────────────────────────────────

_BUY_SPECIFIC = re.compile(r"\b(RSI|MACD|PE|PB)\b|below|above|\d|移动平均|均线|低于|高于|突破|市盈率|市净率", re.I)
_PROFIT_SPECIFIC = re.compile(r"\d+(?:\.\d+)?\s*%|target|above|PE\s*>|PB\s*>|目标价|超过", re.I)
_STOP_SPECIFIC = re.compile(r"\d+(?:\.\d+)?\s*%|stop|loss|below|止损|跌破", re.I)
_POSITION_KEYWORDS = re.compile(r"position size|allocation|single|max|单笔|单个|仓位", re.I)


def score_trading_rules(answers: Mapping[str, Any]) -> StageScore:
    score = BASE_SCORE
    strengths: List[str] = []
    weaknesses: List[str] = []

    buy_rules = answer_text(answers, "3-1")
    if _has_content(buy_rules):
        if _BUY_SPECIFIC.search(buy_rules):
            score += 10
            strengths.append("Buy rules appear specific and potentially quantitative.")
        else:
            score += 5
    else:
        score -= 15
        weaknesses.append(BUY_RULES_MISSING)

    profit_rules = answer_text(answers, "3-2")
    if _has_content(profit_rules):
        if _PROFIT_SPECIFIC.search(profit_rules):
            score += 10
            strengths.append("Clear criteria for profit-taking are defined.")
        else:
            score += 5
    else:
        score -= 10
        weaknesses.append(PROFIT_RULES_MISSING)

    stop_rules = answer_text(answers, "3-3")
    if _has_content(stop_rules):
        if _STOP_SPECIFIC.search(stop_rules):
            score += 15
            strengths.append("Clear stop-loss strategy is defined.")
        else:
            score += 5
    else:
        score -= 15
        weaknesses.append(STOP_LOSS_MISSING)

    position_rules = answer_text(answers, "3-4")
    if _has_content(position_rules):
        if "%" in position_rules and _POSITION_KEYWORDS.search(position_rules):
            score += 10
            strengths.append("Specific position sizing strategy is outlined.")
        else:
            score += 5
    else:
        score -= 10
        weaknesses.append(POSITION_SIZING_MISSING)

    return _finish(score, strengths, weaknesses)


# ─── Stage 4: risk management ─────────────────────────────────────────────────

_RISK_SEPARATORS = re.compile(r"[,;/、，；]")
_MONITORING = re.compile(r"review|track|monitor|alert|定期|跟踪|监控|预警", re.I)


def score_risk_management(answers: Mapping[str, Any]) -> StageScore:
    score = BASE_SCORE
    strengths: List[str] = []
    weaknesses: List[str] = []

    risks = answer_text(answers, "4-1")
    if _has_content(risks):
        parts = [p for p in _RISK_SEPARATORS.split(risks) if p.strip()]
        if len(parts) >= 2:
            score += 10
            strengths.append("Identifies multiple potential risks.")
        else:
            score += 5
            strengths.append("Identifies at least one potential risk.")
    else:
        score -= 15
        weaknesses.append(RISKS_NOT_IDENTIFIED)

    monitoring = answer_text(answers, "4-2")
    if _has_content(monitoring):
        if _MONITORING.search(monitoring):
            score += 10
            strengths.append("Specifies methods for monitoring identified risks.")
        else:
            score += 5
    else:
        score -= 10
        weaknesses.append(MONITORING_MISSING)

    mitigations = _choices(answers, "4-3")
    if mitigations:
        score += 5
        if any(_contains_any(m, ("stop-loss", "stop loss", "止损")) for m in mitigations):
            score += 10
            strengths.append("Utilizes stop-loss orders for risk control.")
        if any(_contains_any(m, ("diversif", "分散")) for m in mitigations):
            score += 10
            strengths.append("Employs diversification to mitigate risk.")
        if any(_contains_any(m, ("hedg", "期权", "对冲")) for m in mitigations):
            score += 5
            strengths.append("Considers hedging strategies (e.g., options).")
    else:
        score -= 15
        weaknesses.append(MITIGATION_MISSING)

    max_loss = answer_text(answers, "4-4")
    if max_loss:
        if "%" in max_loss:
            score += 10
            strengths.append("Maximum acceptable loss is clearly quantified.")
        else:
            score += 5
    else:
        score -= 10
        weaknesses.append(MAX_LOSS_MISSING)

    return _finish(score, strengths, weaknesses)


# ─── Stage 5: information validation ──────────────────────────────────────────

_VERIFICATION = re.compile(r"cross-reference|cross-check|verify|validate|audit|交叉|验证|核实|审计", re.I)


def score_information_validation(answers: Mapping[str, Any]) -> StageScore:
    score = BASE_SCORE
    strengths: List[str] = []
    weaknesses: List[str] = []

    sources = _choices(answers, "5-1")
    if sources:
        score += 5
        credible = any(_contains_any(s, ("Filings", "Data", "Audits", "文件", "数据", "审计")) for s in sources)
        if len(sources) >= 2 or credible:
            score += 10
            strengths.append("Utilizes multiple or credible information sources.")
        social = [s for s in sources if _contains_any(s, ("Social Media", "社交媒体"))]
        if social and len(sources) == 1:
            score -= 10
            weaknesses.append(SOCIAL_MEDIA_ONLY)
        elif social:
            score -= 3
            weaknesses.append(SOCIAL_MEDIA_MIXED)
    else:
        score -= 15
        weaknesses.append(SOURCES_MISSING)

    verification = answer_text(answers, "5-2")
    if _has_content(verification):
        if _VERIFICATION.search(verification):
            score += 15
            strengths.append("Specifies methods for verifying information accuracy.")
        else:
            score += 5
    else:
        score -= 10
        weaknesses.append(VERIFICATION_MISSING)

    assumptions = answer_text(answers, "5-3")
    if _has_content(assumptions):
        score += 10
        strengths.append("Key underlying assumptions are identified.")
    else:
        score -= 10
        weaknesses.append(ASSUMPTIONS_MISSING)

    return _finish(score, strengths, weaknesses)


# ─── Stage 6: cognitive bias check ────────────────────────────────────────────

# "Yes" to 6-1..6-4 admits a bias; "No" to 6-5 (opposing views) does too
_BIAS_QUESTIONS = ("6-1", "6-2", "6-3", "6-4")
_OPPOSING_VIEWS_QUESTION = "6-5"
_STRONG_COUNTERMEASURES = re.compile(r"rule|checklist|second opinion|review|反向|强制", re.I)


def _is_yes(answer: str) -> bool:
    return answer.strip().lower() in ("yes", "是")


def _is_no(answer: str) -> bool:
    return answer.strip().lower() in ("no", "否")


def score_cognitive_bias(answers: Mapping[str, Any]) -> StageScore:
    score = BIAS_STAGE_BASE_SCORE
    strengths: List[str] = []
    weaknesses: List[str] = []

    checked = 0
    acknowledged = 0
    for question_id in _BIAS_QUESTIONS + (_OPPOSING_VIEWS_QUESTION,):
        answer = answer_text(answers, question_id)
        if not answer:
            continue
        checked += 1
        if question_id == _OPPOSING_VIEWS_QUESTION:
            acknowledged += 1 if _is_no(answer) else 0
        elif _is_yes(answer):
            acknowledged += 1

    score += checked * 3
    unanswered = len(_BIAS_QUESTIONS) + 1 - checked
    if checked >= 3:
        strengths.append("Awareness demonstrated by checking for multiple cognitive biases.")
    else:
        weaknesses.append(BIAS_CHECK_LIMITED)
    if unanswered:
        score -= unanswered * 2
        weaknesses.append(BIAS_CHECK_INCOMPLETE)

    if acknowledged:
        score -= acknowledged * 2
        strengths.append(f"Acknowledged potential bias(es) ({acknowledged}).")

    measures = answer_text(answers, "6-6")
    if _has_content(measures):
        score += 15
        strengths.append("Defined measures to address identified or potential biases.")
        if acknowledged and _STRONG_COUNTERMEASURES.search(measures):
            score += acknowledged * 3
    else:
        score -= 10
        weaknesses.append(BIAS_MEASURES_MISSING)
        if acknowledged:
            score -= 10
            weaknesses.append(BIASES_WITHOUT_COUNTERMEASURES)

    return _finish(score, strengths, weaknesses)


# ─── Stage 7: documentation & review ──────────────────────────────────────────

def score_documentation(answers: Mapping[str, Any]) -> StageScore:
    score = BASE_SCORE
    strengths: List[str] = []
    weaknesses: List[str] = []

    summary = answer_text(answers, "7-1")
    if len(summary) > MIN_VALID_ANSWER_LENGTH * 2:
        score += 15
        strengths.append("Investment decision and rationale are summarized.")
    elif summary:
        score += 5
    else:
        score -= 15
        weaknesses.append(SUMMARY_MISSING)

    change_factors = answer_text(answers, "7-2")
    if _has_content(change_factors):
        score += 15
        strengths.append("Potential factors that could invalidate the thesis are considered.")
    else:
        score -= 15
        weaknesses.append(THESIS_BREAKERS_MISSING)

    if answer_text(answers, "7-3"):
        score += 10
        strengths.append("A review frequency for the decision is established.")
    else:
        score -= 10
        weaknesses.append(REVIEW_MISSING)

    # Optional question: a reviewer only ever adds points
    if len(answer_text(answers, "7-4")) > 3:
        score += 5
        strengths.append("Includes provision for additional review (e.g., peer, advisor).")

    return _finish(score, strengths, weaknesses)


# ─── Dispatch ─────────────────────────────────────────────────────────────────

STAGE_SCORERS: Dict[int, Callable[[Mapping[str, Any]], StageScore]] = {
    1: score_goals_and_risk,
    2: score_investment_method,
    3: score_trading_rules,
    4: score_risk_management,
    5: score_information_validation,
    6: score_cognitive_bias,
    7: score_documentation,
}


def score_stage(stage_id: int, answers: Mapping[str, Any]) -> StageScore:
    """Score a single stage. An unknown stage id is a caller bug."""
    if isinstance(stage_id, bool) or stage_id not in STAGE_SCORERS:
        raise ValueError(f"Unknown stage id: {stage_id!r}")
    return STAGE_SCORERS[stage_id](answers)


def score_all_stages(answers: Mapping[str, Any]) -> Dict[int, StageScore]:
    return {stage_id: scorer(answers) for stage_id, scorer in STAGE_SCORERS.items()}
