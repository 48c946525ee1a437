"""
Recommendation generator.

Builds the advice list shown with an evaluation, in priority order:

  (a) one baseline recommendation for the rating tier
  (b) the adjustment layer's notes
  (c) advice for each weakness found, from a fixed lookup
  (d) horizon / liquidity context
  (e) suggestions returned by the augmentation analyses

The list is deduplicated on exact text (first occurrence wins) and capped.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from decision_checkpoint import stage_scorers as s
from decision_checkpoint.adjustments import liquidity_score
from decision_checkpoint.config import DEFAULT_CONFIG
from decision_checkpoint.questions import answer_text
from decision_checkpoint.rating import Rating
from decision_checkpoint.stage_scorers import StageScore, is_long_term, is_short_term

# (english, chinese)
BASELINE: Dict[Rating, Tuple[str, str]] = {
    Rating.HIGH_RISK: (
        "The strategy has major flaws. Pause investing and re-examine the whole decision framework.",
        "策略存在重大缺陷，建议暂停投资，重新审视整个决策框架。",
    ),
    Rating.CAUTIOUS: (
        "The strategy has clear gaps. Reduce the initial position and first improve risk management "
        "and information validation.",
        "策略有明显漏洞，建议降低初始仓位，优先完善风险管理和信息验证。",
    ),
    Rating.STABLE: (
        "The strategy is sound overall but some details need work. Re-check the key assumptions regularly.",
        "策略整体稳健，但部分细节需优化，建议定期复查关键假设。",
    ),
    Rating.SYSTEM: (
        "The strategy is systematic. Execute as planned and keep reviewing it regularly.",
        "策略系统性强，建议按计划执行，并保持定期审查。",
    ),
}

WEAKNESS_ADVICE: Dict[str, Tuple[str, str]] = {
    s.GOALS_UNCLEAR: (
        "Clarify and quantify your primary investment goals.",
        "明确并量化您的主要投资目标。",
    ),
    s.HORIZON_MISSING: (
        "Decide on an explicit time horizon for this investment.",
        "为该投资确定明确的投资期限。",
    ),
    s.SHORT_HORIZON_GROWTH_CONFLICT: (
        "Lower growth expectations or extend the horizon; high growth rarely fits a short horizon.",
        "降低增长预期或延长投资期限，短期内难以实现高增长。",
    ),
    s.TOLERANCE_HORIZON_MISMATCH: (
        "Reassess whether your risk tolerance fits your investment horizon.",
        "重新评估风险承受能力与投资期限的匹配度。",
    ),
    s.TOLERANCE_MISSING: (
        "State how much fluctuation you can tolerate.",
        "说明您能承受的波动幅度。",
    ),
    s.LIQUIDITY_MISSING: (
        "Describe your specific liquidity requirements for this investment.",
        "详细说明您对投资流动性的具体要求。",
    ),
    s.METHOD_MISSING: (
        "Choose at least one core investment analysis method.",
        "至少选择一种核心投资分析方法。",
    ),
    s.METHOD_RATIONALE_MISSING: (
        "Explain why you chose this method and how it links to your goals.",
        "详细阐述您选择该投资方法的原因及其与目标的关联。",
    ),
    s.METRICS_MISSING: (
        "Specify the key financial or technical metrics you will evaluate.",
        "明确您将用来评估投资的关键财务或技术指标。",
    ),
    s.BUY_RULES_MISSING: (
        "Quantify your buy triggers, e.g. specific prices or indicator thresholds.",
        "量化您的买入触发条件，例如具体的价格、指标阈值。",
    ),
    s.PROFIT_RULES_MISSING: (
        "Set explicit profit-taking targets or conditions.",
        "设定明确的止盈目标或条件。",
    ),
    s.STOP_LOSS_MISSING: (
        "Set explicit stop-loss rules to limit downside risk.",
        "设定明确的止损规则以控制下行风险。",
    ),
    s.POSITION_SIZING_MISSING: (
        "Define position sizing rules, such as a per-trade cap and a total exposure limit.",
        "制定清晰的仓位管理规则，如单笔投资上限、总仓位限制等。",
    ),
    s.RISKS_NOT_IDENTIFIED: (
        "Identify the main risks of this investment (market, credit, liquidity, etc.).",
        "全面识别与该投资相关的主要风险（市场、信用、流动性等）。",
    ),
    s.MONITORING_MISSING: (
        "Explain how you will track and monitor the identified risks.",
        "说明您将如何跟踪和监控已识别的风险。",
    ),
    s.MITIGATION_MISSING: (
        "Select at least one risk mitigation method, such as stop-losses, diversification or hedging.",
        "选择至少一种风险缓解措施，如止损、分散投资或对冲。",
    ),
    s.MAX_LOSS_MISSING: (
        "Quantify the maximum loss you can accept (percentage or amount).",
        "量化您可以承受的最大潜在损失（百分比或金额）。",
    ),
    s.SOURCES_MISSING: (
        "List the main information sources you rely on.",
        "列出您依赖的主要信息来源。",
    ),
    s.SOCIAL_MEDIA_ONLY: (
        "Do not rely on social media alone; use reliable, professional sources.",
        "避免仅依赖社交媒体信息，寻求更可靠、专业的信源。",
    ),
    s.SOCIAL_MEDIA_MIXED: (
        "Balance social media input with filings or professional research.",
        "用公司公告或专业研究平衡社交媒体信息。",
    ),
    s.VERIFICATION_MISSING: (
        "Build a habit or process for cross-checking information.",
        "建立信息交叉验证的习惯或流程。",
    ),
    s.ASSUMPTIONS_MISSING: (
        "Write down the key assumptions your decision depends on.",
        "明确支撑您投资决策的关键假设条件。",
    ),
    s.BIAS_CHECK_LIMITED: (
        "Systematically check for common cognitive biases such as anchoring and overconfidence.",
        "系统性地检查常见的认知偏差（如锚定、过度自信等）。",
    ),
    s.BIAS_CHECK_INCOMPLETE: (
        "Answer every bias self-check question before committing capital.",
        "在投入资金前回答所有认知偏差自检问题。",
    ),
    s.BIAS_MEASURES_MISSING: (
        "Define concrete countermeasures for identified or potential cognitive biases.",
        "针对已识别或潜在的认知偏差，制定具体的应对措施。",
    ),
    s.BIASES_WITHOUT_COUNTERMEASURES: (
        "Define concrete countermeasures for identified or potential cognitive biases.",
        "针对已识别或潜在的认知偏差，制定具体的应对措施。",
    ),
    s.SUMMARY_MISSING: (
        "Record your decision logic more clearly and completely.",
        "更清晰、完整地记录您的投资决策逻辑。",
    ),
    s.THESIS_BREAKERS_MISSING: (
        "Think through and record what would invalidate your investment thesis.",
        "思考并记录哪些情况发生可能使您的投资逻辑不再成立。",
    ),
    s.REVIEW_MISSING: (
        "Set a clear review cycle or trigger for this decision.",
        "设定明确的投资决策复盘周期或触发条件。",
    ),
}

SHORT_HORIZON_ADVICE = (
    "With a short horizon, keep the capital you may need within a year in cash or liquid assets.",
    "投资期限较短，请将一年内可能需要的资金保留为现金或高流动性资产。",
)
LONG_HORIZON_ADVICE = (
    "With a long horizon, avoid reacting to short-term volatility; rebalance on a schedule instead.",
    "投资期限较长，避免对短期波动做出反应，按计划定期再平衡。",
)
HIGH_LIQUIDITY_ADVICE = (
    "Your liquidity needs are high; keep an emergency reserve outside this investment.",
    "您的流动性需求较高，请在该投资之外保留应急资金。",
)

# Liquidity score below which the needs count as high
HIGH_LIQUIDITY_NEED_SCORE = 50

SUGGESTION_PREFIX: Dict[int, Tuple[str, str]] = {
    3: ("Logic suggestion: ", "建议(逻辑): "),
    4: ("Risk suggestion: ", "建议(风险): "),
    6: ("Bias suggestion: ", "建议(偏差): "),
}


def _pick(pair: Tuple[str, str], language: str) -> str:
    return pair[1] if language == "zh" else pair[0]


def contextual_advice(answers: Mapping[str, Any], language: str = "en") -> List[str]:
    advice = []
    horizon = answer_text(answers, "1-2")
    if is_short_term(horizon):
        advice.append(_pick(SHORT_HORIZON_ADVICE, language))
    elif is_long_term(horizon):
        advice.append(_pick(LONG_HORIZON_ADVICE, language))

    liquidity = answer_text(answers, "1-4")
    if liquidity.strip() and liquidity_score(liquidity) < HIGH_LIQUIDITY_NEED_SCORE:
        advice.append(_pick(HIGH_LIQUIDITY_ADVICE, language))
    return advice


def augmentation_suggestions(stage_scores: Mapping[int, StageScore], language: str = "en") -> List[str]:
    suggestions = []
    for stage_id in sorted(SUGGESTION_PREFIX):
        stage = stage_scores.get(stage_id)
        if stage is None or not stage.augmentation_details:
            continue
        prefix = _pick(SUGGESTION_PREFIX[stage_id], language)
        for suggestion in stage.augmentation_details.get("suggestions", ()):
            suggestions.append(prefix + suggestion)
    return suggestions


def dedupe(items: Sequence[str], limit: Optional[int] = None) -> List[str]:
    """Drop repeats (first occurrence wins) and truncate to `limit`."""
    seen = set()
    unique = []
    for item in items:
        if item in seen:
            continue
        seen.add(item)
        unique.append(item)
    return unique[:limit] if limit is not None else unique


def recommend(
    rating: Rating,
    stage_scores: Mapping[int, StageScore],
    answers: Mapping[str, Any],
    notes: Sequence[str] = (),
    language: str = "en",
    limit: Optional[int] = None,
) -> List[str]:
    """
    Generate the prioritized, deduplicated advice list.

    Args:
        rating: Final rating (after adjustments)
        stage_scores: Stage scores, possibly augmented
        answers: The evaluated AnswerSet (for horizon/liquidity context)
        notes: Adjustment notes to surface
        language: "en" or "zh"
        limit: Maximum number of items (default from EngineConfig)

    Returns:
        Recommendation strings, baseline first
    """
    items: List[str] = [_pick(BASELINE[Rating(rating)], language)]
    items.extend(notes)

    for stage_id in sorted(stage_scores):
        for weakness in stage_scores[stage_id].weaknesses:
            advice = WEAKNESS_ADVICE.get(weakness)
            if advice:
                items.append(_pick(advice, language))

    items.extend(contextual_advice(answers, language))
    items.extend(augmentation_suggestions(stage_scores, language))

    return dedupe(items, limit if limit is not None else DEFAULT_CONFIG.max_recommendations)
