"""
Decision insights.

A second, lighter reading of an AnswerSet that looks across stages rather
than within them: an internal-consistency score (0-10), likely cognitive
biases, contradictory answers, and up to three deeper recommendations.

Insights are informational. They are reported next to an evaluation but do
not feed into the total score or rating.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, List, Mapping, Tuple

from decision_checkpoint.questions import answer_text
from decision_checkpoint.stage_scorers import is_long_term

MAX_ADVANCED_RECOMMENDATIONS = 3
BASE_CONSISTENCY = 7.0

_PERCENT = re.compile(r"\d+%")
_NUMERIC = re.compile(r"\d+%|\d+\.\d+")
_VALUATION = re.compile(r"\bPE\b|\bPB\b|估值|valuation", re.I)
_TECH_INDICATORS = re.compile(r"MACD|RSI|KDJ|均线|支撑|阻力|moving average|support|resistance", re.I)
_HIGH_MAX_LOSS = re.compile(r"[3-9][0-9]%|100%")
_CONFLICTING_MAX_LOSS = re.compile(r"[2-9][0-9]%|100%")


def _choices(answers: Mapping[str, Any], question_id: str) -> List[str]:
    value = answers.get(question_id)
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return []


def _selected(choices: List[str], label: str) -> bool:
    return any(label in choice for choice in choices)


def _is_conservative(tolerance: str) -> bool:
    return "Conservative" in tolerance or "<10%" in tolerance or "保守" in tolerance


def _t(language: str, en: str, zh: str) -> str:
    return zh if language == "zh" else en


@dataclass(frozen=True)
class DecisionInsights:
    consistency_score: float
    potential_biases: Tuple[str, ...] = ()
    conflict_points: Tuple[str, ...] = ()
    advanced_recommendations: Tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "consistency_score": self.consistency_score,
            "potential_biases": list(self.potential_biases),
            "conflict_points": list(self.conflict_points),
            "advanced_recommendations": list(self.advanced_recommendations),
        }


def consistency_score(answers: Mapping[str, Any]) -> float:
    tolerance = answer_text(answers, "1-3")
    buy_rules = answer_text(answers, "3-1")
    sell_rules = answer_text(answers, "3-2")
    stop_rules = answer_text(answers, "3-3")
    conservative = _is_conservative(tolerance)
    score = BASE_CONSISTENCY

    lowered = buy_rules.lower()
    if conservative and ("leverage" in lowered or "margin" in lowered or "杠杆" in buy_rules or "保证金" in buy_rules):
        score -= 2

    has_quantified_stop = len(stop_rules) > 10 and bool(_PERCENT.search(stop_rules))
    if not has_quantified_stop and not conservative:
        score -= 1.5

    if _VALUATION.search(buy_rules) and not _VALUATION.search(sell_rules):
        score -= 1

    if len(buy_rules) > 10 and len(sell_rules) > 10 and len(stop_rules) > 10:
        score += 1

    if is_long_term(answer_text(answers, "1-2")) and "Monthly" in answer_text(answers, "7-3"):
        score += 0.5

    return max(0.0, min(10.0, score))


def potential_biases(answers: Mapping[str, Any], language: str = "en") -> List[str]:
    biases = []

    verification = answer_text(answers, "5-2").lower()
    if not any(k in verification for k in ("反向", "反对", "counter", "opposite", "opposing")):
        biases.append(_t(language,
                         "Confirmation bias: look for evidence that contradicts your thesis",
                         "确认偏差：考虑寻找反面证据检验投资假设"))

    sell_rules = answer_text(answers, "3-2")
    stop_rules = answer_text(answers, "3-3")
    if ((len(sell_rules) < 20 or not _PERCENT.search(sell_rules))
            and (len(stop_rules) < 20 or not _PERCENT.search(stop_rules))):
        biases.append(_t(language,
                         "Loss aversion: vague sell criteria make it easy to hold losing positions too long",
                         "损失厌恶：卖出标准不够明确，可能导致持有亏损资产过久"))

    if _HIGH_MAX_LOSS.search(answer_text(answers, "4-4")):
        biases.append(_t(language,
                         "Overconfidence: the maximum acceptable loss is very high",
                         "过度自信：设定的最大损失容忍度过高"))

    buy_rules = answer_text(answers, "3-1")
    if any(k in buy_rules.lower() for k in ("historical", "previous", "历史", "以前")):
        biases.append(_t(language,
                         "Anchoring: avoid using historical prices as the only reference point",
                         "锚定效应：避免过度依赖历史价格作为唯一参考点"))

    sources = answer_text(answers, "5-1").lower()
    if any(k in sources for k in ("social media", "forum", "社交媒体", "论坛")):
        biases.append(_t(language,
                         "Herding: treat social media and forums with care, they amplify crowd sentiment",
                         "从众心理：谨慎使用社交媒体/论坛作为信息来源，易受情绪影响"))

    return biases


def conflict_points(answers: Mapping[str, Any], language: str = "en") -> List[str]:
    conflicts = []

    if _is_conservative(answer_text(answers, "1-3")) and _CONFLICTING_MAX_LOSS.search(answer_text(answers, "4-4")):
        conflicts.append(_t(language,
                            "Risk tolerance does not match the maximum acceptable loss",
                            "风险承受能力与最大损失容忍度不匹配"))

    liquidity = answer_text(answers, "1-4")
    needs_high_liquidity = (
        any(k in liquidity.lower() for k in ("high", "immediate"))
        or "高流动性" in liquidity
        or "随时" in liquidity
    )
    if is_long_term(answer_text(answers, "1-2")) and needs_high_liquidity:
        conflicts.append(_t(language,
                            "A long-term goal conflicts with high liquidity needs",
                            "长期投资目标与高流动性需求存在冲突"))

    buy_rules = answer_text(answers, "3-1").lower()
    sell_rules = answer_text(answers, "3-2").lower()
    buy_on_valuation = "undervalued" in buy_rules or "低估值" in buy_rules
    sell_ignores_valuation = bool(sell_rules) and "overvalued" not in sell_rules and "高估值" not in sell_rules
    if buy_on_valuation and sell_ignores_valuation:
        conflicts.append(_t(language,
                            "Buying on valuation but selling without regard to valuation",
                            "买入基于估值但卖出未考虑估值回归"))

    methods = _choices(answers, "2-1")
    if _selected(methods, "Technical Analysis") and not _TECH_INDICATORS.search(answer_text(answers, "2-3")):
        conflicts.append(_t(language,
                            "Technical analysis selected but no technical indicators specified",
                            "选择了技术分析但未指定相关技术指标"))

    return conflicts


def advanced_recommendations(
    answers: Mapping[str, Any],
    score: float,
    biases: List[str],
    language: str = "en",
) -> List[str]:
    recs = []
    buy_rules = answer_text(answers, "3-1")
    sell_rules = answer_text(answers, "3-2")

    if buy_rules and not _NUMERIC.search(buy_rules):
        recs.append(_t(language,
                       'Quantify buy rules, e.g. "PE < 20" or "15% below the 52-week average"',
                       '将买入规则定量化，例如"PE<20"或"低于52周均价15%"等数值标准'))
    if sell_rules and not _NUMERIC.search(sell_rules):
        recs.append(_t(language,
                       'Set explicit sell thresholds, e.g. "take profit at 20%" or "PE > 30"',
                       '制定明确的卖出阈值，如"获利20%"或"PE>30"等具体标准'))

    methods = _choices(answers, "2-1")
    if _selected(methods, "Fundamental Analysis") and len(answer_text(answers, "2-2")) < 50:
        recs.append(_t(language,
                       "Flesh out the fundamental method: which financial metrics and target ranges",
                       "完善基本面分析方法论，明确关注的财务指标及其目标区间"))
    if _selected(methods, "Technical Analysis") and "moving average" not in buy_rules.lower() and "均线" not in buy_rules:
        recs.append(_t(language,
                       "A technical strategy needs explicit indicator-based triggers",
                       "技术分析策略应包含明确的技术指标触发条件"))

    if len(_choices(answers, "4-3")) <= 1:
        recs.append(_t(language,
                       "Layer your risk management: combine stop-losses, diversification and hedging",
                       "采用多层次风险管理策略，结合止损单、分散投资和适当对冲"))

    if is_long_term(answer_text(answers, "1-2")) and score < 6:
        recs.append(_t(language,
                       "Long-term investing needs a complete rule set and a regular review process",
                       "长期投资更需要完整的买卖规则体系和定期审查机制"))

    if biases:
        if len(biases) > 2:
            recs.append(_t(language,
                           "Use a pre-decision checklist to guard against cognitive biases systematically",
                           "建立决策前检查清单，系统性防范认知偏差"))
        else:
            name = re.split(r"[:：]", biases[0])[0]
            recs.append(_t(language, f"Plan a countermeasure for {name.lower()}", f"考虑针对{name}的对策"))

    return recs[:MAX_ADVANCED_RECOMMENDATIONS]


def analyze_decision(answers: Mapping[str, Any], language: str = "en") -> DecisionInsights:
    score = consistency_score(answers)
    biases = potential_biases(answers, language)
    return DecisionInsights(
        consistency_score=score,
        potential_biases=tuple(biases),
        conflict_points=tuple(conflict_points(answers, language)),
        advanced_recommendations=tuple(advanced_recommendations(answers, score, biases, language)),
    )
