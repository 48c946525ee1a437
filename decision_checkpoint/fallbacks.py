"""
Local rule-based fallback analyses.

Used when the external analysis service is not reachable (or keeps returning
garbage). Each fallback mirrors the service's output shape: a 0-10
consistency score, conflict points, suggestions and a reasoning path.

Scoring: start at 60/100, add points for each quantified or specific
element found, divide by 10. The fallbacks are pure string checks and never
raise; missing inputs simply score as absent.
"""

from __future__ import annotations

import re
from typing import Callable, Dict, List, Mapping

from decision_checkpoint.analysis import (
    SOURCE_FALLBACK,
    AugmentationKind,
    AugmentationResult,
)

FALLBACK_BASE_SCORE = 60

_NUMERIC = re.compile(r"\d+\s*%|\d+\.\d+")
_RISK_MITIGATION = re.compile(r"对冲|分散|止损|hedg|diversif|stop[ -]?loss", re.I)
_BIAS_TYPES = re.compile(
    r"锚定|过度自信|确认偏误|损失厌恶|羊群效应|anchoring|overconfidence|confirmation|loss aversion|herding",
    re.I,
)
_SPECIFIC_MEASURES = re.compile(
    r"规则|机械化|第三方|反向思考|rule|mechanical|third[ -]party|contrarian|checklist|second opinion",
    re.I,
)

# Minimum length of a descriptive answer to count as "detailed"
DETAILED_ANSWER_LENGTH = 30


def _pick(language: str, en: str, zh: str) -> str:
    return zh if language == "zh" else en


def _build(
    kind: AugmentationKind,
    score: int,
    findings: List[tuple],
    reasoning: str,
) -> AugmentationResult:
    score = max(0, min(100, score))
    return AugmentationResult(
        kind=kind,
        consistency_score=score / 10,
        conflict_points=tuple(conflict for conflict, _ in findings),
        suggestions=tuple(suggestion for _, suggestion in findings),
        reasoning_path=reasoning,
        source=SOURCE_FALLBACK,
    )


def fallback_logic_analysis(inputs: Mapping[str, str], language: str = "en") -> AugmentationResult:
    """Quantified buy/sell/stop-loss rules and a named mitigation each add 10 points."""
    has_numeric_buy = bool(_NUMERIC.search(inputs.get("buy_rules", "")))
    has_numeric_sell = bool(_NUMERIC.search(inputs.get("sell_rules", "")))
    has_numeric_stop = bool(_NUMERIC.search(inputs.get("stop_loss_rules", "")))
    has_mitigation = bool(_RISK_MITIGATION.search(inputs.get("risk_management", "")))

    score = FALLBACK_BASE_SCORE
    findings = []
    if has_numeric_buy:
        score += 10
    else:
        findings.append((
            _pick(language, "Buy rules lack specific numerical standards", "买入规则缺乏具体数值标准"),
            _pick(language,
                  "Add specific numerical standards to buy rules, such as PE ratio, price thresholds, etc.",
                  "为买入规则添加具体的数值标准，如PE比率、价格阈值等"),
        ))
    if has_numeric_sell:
        score += 10
    else:
        findings.append((
            _pick(language, "Sell rules lack specific numerical standards", "卖出规则缺乏具体数值标准"),
            _pick(language,
                  "Add specific numerical standards to sell rules, such as target prices, profit-taking percentages, etc.",
                  "为卖出规则添加具体的数值标准，如目标价格、止盈比例等"),
        ))
    if has_numeric_stop:
        score += 10
    else:
        findings.append((
            _pick(language, "Stop-loss rules lack specific numerical standards", "止损规则缺乏具体数值标准"),
            _pick(language,
                  "Add specific numerical standards to stop-loss rules, such as maximum loss percentage, etc.",
                  "为止损规则添加具体的数值标准，如最大损失比例等"),
        ))
    if has_mitigation:
        score += 10
    else:
        findings.append((
            _pick(language, "Insufficient risk management measures", "风险管理措施不足"),
            _pick(language,
                  "Add specific risk mitigation measures, such as asset diversification, hedging strategies, etc.",
                  "添加具体的风险缓解措施，如资产分散、对冲策略等"),
        ))

    reasoning = _pick(
        language,
        "Evaluation based on the clarity and quantification of rules; quantified rules "
        "make investment discipline easier to keep",
        "基于规则的明确性和量化程度进行评估，量化的规则更有助于保持投资纪律性",
    )
    return _build(AugmentationKind.LOGIC_CONSISTENCY, score, findings, reasoning)


def fallback_risk_analysis(inputs: Mapping[str, str], language: str = "en") -> AugmentationResult:
    """Quantified tolerance (+10), detailed risk list (+15) and quantified max loss (+15)."""
    has_numeric_tolerance = bool(_NUMERIC.search(inputs.get("risk_tolerance", "")))
    has_detailed_risks = len(inputs.get("risk_identification", "")) > DETAILED_ANSWER_LENGTH
    has_numeric_max_loss = bool(_NUMERIC.search(inputs.get("max_loss", "")))

    score = FALLBACK_BASE_SCORE
    findings = []
    if has_numeric_tolerance:
        score += 10
    else:
        findings.append((
            _pick(language, "Risk tolerance description is not specific enough", "风险承受能力描述不够具体"),
            _pick(language,
                  "Quantify risk tolerance, such as acceptable maximum drawdown percentage or volatility",
                  "量化风险承受能力，如可接受的最大回撤比例或波动率"),
        ))
    if has_detailed_risks:
        score += 15
    else:
        findings.append((
            _pick(language, "Risk identification is not comprehensive", "风险识别不够全面"),
            _pick(language,
                  "List in detail the potential market risks, liquidity risks, policy risks, etc.",
                  "详细列出可能面临的市场风险、流动性风险、政策风险等"),
        ))
    if has_numeric_max_loss:
        score += 15
    else:
        findings.append((
            _pick(language, "Maximum acceptable loss is not quantified", "最大可接受损失未量化"),
            _pick(language,
                  "Clearly set a specific percentage or amount for the maximum acceptable loss",
                  "明确设定最大可接受损失的具体比例或金额"),
        ))

    reasoning = _pick(
        language,
        "Evaluation based on the specificity and quantification of risk descriptions; clear "
        "risk definitions help formulate matching risk management strategies",
        "基于风险描述的具体性和量化程度进行评估，明确的风险界定有助于制定匹配的风险管理策略",
    )
    return _build(AugmentationKind.RISK_CONSISTENCY, score, findings, reasoning)


def fallback_bias_analysis(inputs: Mapping[str, str], language: str = "en") -> AugmentationResult:
    """Named bias types (+15), a detailed plan (+10) and concrete mechanisms (+15)."""
    awareness = inputs.get("bias_checks", "")
    plan = inputs.get("mitigation_plan", "")
    mentions_bias_types = bool(_BIAS_TYPES.search(awareness) or _BIAS_TYPES.search(plan))
    has_detailed_plan = len(plan) > DETAILED_ANSWER_LENGTH
    has_specific_measures = bool(_SPECIFIC_MEASURES.search(plan))

    score = FALLBACK_BASE_SCORE
    findings = []
    if mentions_bias_types:
        score += 15
    else:
        findings.append((
            _pick(language, "Specific types of cognitive biases not clearly identified", "未明确识别具体的认知偏差类型"),
            _pick(language,
                  "List the main cognitive biases that may affect decision-making, such as anchoring "
                  "effect, overconfidence, confirmation bias, etc.",
                  "列出可能影响决策的主要认知偏差，如锚定效应、过度自信、确认偏误等"),
        ))
    if has_detailed_plan:
        score += 10
    else:
        findings.append((
            _pick(language, "Lack of detailed bias mitigation measures", "缺乏详细的偏差缓解措施"),
            _pick(language,
                  "Describe in detail specific measures to address each cognitive bias",
                  "详细描述如何应对每种认知偏差的具体措施"),
        ))
    if has_specific_measures:
        score += 15
    else:
        findings.append((
            _pick(language, "Mitigation measures lack operability", "缓解措施缺乏可操作性"),
            _pick(language,
                  "Add specific executable measures, such as setting up mechanical trading rules, "
                  "introducing third-party reviews, etc.",
                  "添加具体可执行的措施，如设置机械化交易规则、引入第三方审核等"),
        ))

    reasoning = _pick(
        language,
        "Evaluation based on the depth of understanding of cognitive biases and the specificity "
        "of mitigation measures; specific, operable measures are more effective",
        "基于对认知偏差的认识深度和缓解措施的具体性进行评估，具体可操作的措施更有效",
    )
    return _build(AugmentationKind.COGNITIVE_BIAS, score, findings, reasoning)


FALLBACKS: Dict[AugmentationKind, Callable[[Mapping[str, str], str], AugmentationResult]] = {
    AugmentationKind.LOGIC_CONSISTENCY: fallback_logic_analysis,
    AugmentationKind.RISK_CONSISTENCY: fallback_risk_analysis,
    AugmentationKind.COGNITIVE_BIAS: fallback_bias_analysis,
}


def run_fallback(kind: AugmentationKind, inputs: Mapping[str, str], language: str = "en") -> AugmentationResult:
    return FALLBACKS[AugmentationKind(kind)](inputs or {}, language)
