"""
Risk-profile scorer.

Scores the twelve-question risk questionnaire into one of five investor
profiles (conservative, steady, balanced, progressive, aggressive).

Scoring:
  1. Each answer's points are read from its option label ("(7 points)",
     "（7分）"); a multi-select answer takes its highest selected value.
  2. Points are normalized to a percentage of the question's maximum, and
     averaged per category (financial, goal, psychological, experience).
  3. Category averages are combined with weights 0.4/0.3/0.2/0.1, the
     demographic modifier (age, income stability) is added unweighted and
     the result is clamped to [0, 100].
  4. Cross-validation overrides run in order:
       - progressive return goal with a weak financial position: capped at
         the top of the balanced band
       - "buy the dip" reaction with little experience: needs_verification,
         small penalty
       - over 50 with a preliminary progressive/aggressive band:
         needs_warning, small penalty
  5. The band is looked up on the final score.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from decision_checkpoint.aggregator import round_half_up
from decision_checkpoint.config import DEFAULT_CONFIG, RiskProfileConfig
from decision_checkpoint.logging_config import get_logger
from decision_checkpoint.questions import answer_text, is_blank

logger = get_logger(__name__)

FINANCIAL = "financial"
GOAL = "goal"
PSYCHOLOGICAL = "psychological"
EXPERIENCE = "experience"
DEMOGRAPHIC = "demographic"
SCORED_CATEGORIES = (FINANCIAL, GOAL, PSYCHOLOGICAL, EXPERIENCE)


@dataclass(frozen=True)
class RiskQuestion:
    id: str
    category: str
    text_en: str
    text_zh: str
    options_en: Tuple[str, ...]
    options_zh: Tuple[str, ...]
    multi: bool = False
    required: bool = True

    def options(self, language: str = "en") -> Tuple[str, ...]:
        return self.options_zh if language == "zh" else self.options_en

    @property
    def max_points(self) -> int:
        return max(extract_points(o) or 0 for o in self.options_en)

    def to_dict(self, language: str = "en") -> dict:
        return {
            "id": self.id,
            "category": self.category,
            "text": self.text_zh if language == "zh" else self.text_en,
            "kind": "multi-choice" if self.multi else "single-choice",
            "required": self.required,
            "options": list(self.options(language)),
        }


RISK_QUESTIONS: Tuple[RiskQuestion, ...] = (
    RiskQuestion(
        "fin-1", FINANCIAL,
        "What percentage of your liquid assets is available for investment "
        "(excluding real estate and emergency funds)?",
        "您的可投资资产（不含房产、应急资金）占流动资产的比例是？",
        ("<20% (1 point)", "20%-50% (3 points)", "50%-80% (5 points)", ">80% (7 points)"),
        ("<20%（1分）", "20%-50%（3分）", "50%-80%（5分）", ">80%（7分）"),
    ),
    RiskQuestion(
        "fin-2", FINANCIAL,
        "How long could your emergency funds maintain your lifestyle without income?",
        "您的应急资金可维持无收入状态的生活时间？",
        ("<3 months (1 point)", "3-6 months (3 points)", "6-12 months (5 points)", ">12 months (7 points)"),
        ("<3个月（1分）", "3-6个月（3分）", "6-12个月（5分）", ">12个月（7分）"),
    ),
    RiskQuestion(
        "fin-3", FINANCIAL,
        "What percentage of your monthly income goes to debt payments (mortgage, loans, etc.)?",
        "您的负债（房贷、消费贷等）占月收入的比例？",
        (">50% (1 point)", "30%-50% (3 points)", "10%-30% (5 points)", "<10% (7 points)"),
        (">50%（1分）", "30%-50%（3分）", "10%-30%（5分）", "<10%（7分）"),
    ),
    RiskQuestion(
        "goal-1", GOAL,
        "What is your expected annual return? What is the maximum annual loss you can accept?",
        "您对年化收益的期望是？可接受的最大年度亏损是？",
        (
            "Return ≤5%, Loss ≤3% (Conservative, 3 points)",
            "Return 6-10%, Loss ≤10% (Steady, 5 points)",
            "Return 11-15%, Loss ≤20% (Balanced, 7 points)",
            "Return >15%, Loss >20% (Progressive, 9 points)",
        ),
        (
            "收益≤5%，亏损≤3%（保守型，3分）",
            "收益6-10%，亏损≤10%（稳健型，5分）",
            "收益11-15%，亏损≤20%（平衡型，7分）",
            "收益>15%，亏损>20%（进取型，9分）",
        ),
    ),
    RiskQuestion(
        "goal-2", GOAL,
        "How long do you plan to hold this investment?",
        "您计划持有该投资的时间？",
        (
            "<1 year (Short-term, 2 points)",
            "1-3 years (Medium-short term, 4 points)",
            "3-5 years (Medium-term, 6 points)",
            ">5 years (Long-term, 8 points)",
        ),
        ("<1年（短期，2分）", "1-3年（中短期，4分）", "3-5年（中期，6分）", ">5年（长期，8分）"),
    ),
    RiskQuestion(
        "psych-1", PSYCHOLOGICAL,
        "If your investment portfolio drops 15% in a single month, you would:",
        "如果投资组合单月下跌15%，您会？",
        (
            "Sell everything immediately (1 point)",
            "Sell a portion to stop losses (3 points)",
            "Maintain current positions (5 points)",
            "Buy more to average down (7 points)",
        ),
        ("立即全部卖出（1分）", "卖出部分止损（3分）", "保持现状（5分）", "加仓摊低成本（7分）"),
    ),
    RiskQuestion(
        "psych-2", PSYCHOLOGICAL,
        "How long can you accept consecutive losses?",
        "您能接受连续亏损的时间长度是？",
        (
            "Cannot accept any annual loss (1 point)",
            "≤6 months (3 points)",
            "6-12 months (5 points)",
            ">12 months (7 points)",
        ),
        ("无法接受任何年度亏损（1分）", "≤6个月（3分）", "6-12个月（5分）", ">12个月（7分）"),
    ),
    RiskQuestion(
        "psych-3", PSYCHOLOGICAL,
        "Which statement best reflects your attitude?",
        "以下哪句话最符合您的态度？",
        (
            '"I just want to preserve capital, low returns are fine" (2 points)',
            '"I hope for steady growth with occasional small losses" (4 points)',
            '"I accept higher volatility for excess returns" (6 points)',
            '"I am willing to endure extreme volatility for doubling opportunities" (8 points)',
        ),
        (
            "“我只要保本，收益低没关系”（2分）",
            "“希望稳步增值，偶尔小亏损”（4分）",
            "“接受较高波动以换取超额收益”（6分）",
            "“愿意承受剧烈波动追求翻倍机会”（8分）",
        ),
    ),
    RiskQuestion(
        "exp-1", EXPERIENCE,
        "How many years of active investment experience (stocks, funds, etc.) do you have?",
        "您有几年主动投资（股票、基金等）经验？",
        ("No experience (1 point)", "1-3 years (3 points)", "3-5 years (5 points)", ">5 years (7 points)"),
        ("无经验（1分）", "1-3年（3分）", "3-5年（5分）", ">5年（7分）"),
    ),
    RiskQuestion(
        "exp-2", EXPERIENCE,
        "What is your level of understanding of the following concepts?",
        "您对以下概念的了解程度？",
        (
            "P/E Ratio / P/B Ratio (+1 point)",
            "Sharpe Ratio / Maximum Drawdown (+2 points)",
            "Options Hedging Strategies (+3 points)",
            "Factor Investment Models (+4 points)",
        ),
        ("市盈率/市净率（+1分）", "夏普比率/最大回撤（+2分）", "期权对冲策略（+3分）", "因子投资模型（+4分）"),
        multi=True,
    ),
    RiskQuestion(
        "demo-1", DEMOGRAPHIC,
        "Your age range",
        "您的年龄阶段",
        ("<30 years (+3 points)", "30-50 years (+1 point)", ">50 years (-2 points)"),
        ("<30岁（+3分）", "30-50岁（+1分）", ">50岁（-2分）"),
    ),
    RiskQuestion(
        "demo-2", DEMOGRAPHIC,
        "Your income stability",
        "您的收入稳定性",
        (
            "Government/Public sector (+2 points)",
            "Corporate employee (+1 point)",
            "Freelancer/Entrepreneur (-1 point)",
        ),
        ("公务员/事业单位（+2分）", "企业雇员（+1分）", "自由职业/创业（-1分）"),
    ),
)

RISK_QUESTIONS_BY_ID: Mapping[str, RiskQuestion] = {q.id: q for q in RISK_QUESTIONS}

# (keywords, modifier), first match wins
AGE_MODIFIERS: Tuple[Tuple[Tuple[str, ...], int], ...] = (
    (("<30",), 3),
    (("30-50",), 1),
    ((">50",), -2),
)
INCOME_MODIFIERS: Tuple[Tuple[Tuple[str, ...], int], ...] = (
    (("Government", "Public sector", "公务员", "事业单位"), 2),
    (("Corporate", "企业雇员"), 1),
    (("Freelancer", "Entrepreneur", "自由职业", "创业"), -1),
)

PROGRESSIVE_GOAL_KEYWORDS = ("Progressive", "进取型")
BUY_THE_DIP_KEYWORDS = ("average down", "lower average cost", "lower cost", "add more", "buy more", "加仓", "摊低成本")
INEXPERIENCED_KEYWORDS = ("No experience", "1-3 years", "无经验", "1-3年")
OVER_50_KEYWORDS = (">50",)
HIGH_RISK_PROFILES = ("progressive", "aggressive")

# profile type -> language -> (name, description, recommendation)
PROFILES: Dict[str, Dict[str, Tuple[str, str, str]]] = {
    "conservative": {
        "en": ("Conservative", "Extremely averse to losses, prioritizes capital preservation",
               "Money market funds + Treasury bonds >80%"),
        "zh": ("保守型", "极端厌恶亏损，优先保本", "货币基金+国债>80%"),
    },
    "steady": {
        "en": ("Steady", "Accepts small fluctuations for stable returns",
               "Bond funds + Dividend stocks 60% + Index ETFs"),
        "zh": ("稳健型", "接受小幅波动换取稳定收益", "债券基金+红利股60%+指数ETF"),
    },
    "balanced": {
        "en": ("Balanced", "Seeks balance between returns and risks",
               "Balanced stock-bond allocation + Sector rotation"),
        "zh": ("平衡型", "收益与风险均衡追求", "股债均衡配置+行业轮动"),
    },
    "progressive": {
        "en": ("Progressive", "Actively takes on risk for excess returns",
               "Growth stocks + Leveraged ETFs + Alternative assets"),
        "zh": ("进取型", "主动承担风险获取超额收益", "成长股+杠杆ETF+另类资产"),
    },
    "aggressive": {
        "en": ("Aggressive", "Seeks extremely high returns, tolerates massive volatility",
               "Cryptocurrencies + Futures + Angel investments"),
        "zh": ("激进型", "追求极高收益，容忍巨幅波动", "加密货币+期货+天使投资"),
    },
}

_POINTS_EN = re.compile(r"([+-]?\d+)\s*points?\)", re.I)
_POINTS_ZH = re.compile(r"([+-]?\d+)\s*分\s*[）)]")
_LABEL_SUFFIX = re.compile(r"\s*[（(][^（()）]*[)）]\s*$")
_QUOTES = "\"“”'"


@dataclass(frozen=True)
class RiskAssessmentResult:
    score: int
    profile_type: str
    name: str
    description: str
    recommendation: str
    needs_verification: bool = False
    needs_warning: bool = False
    components: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "profile_type": self.profile_type,
            "name": self.name,
            "description": self.description,
            "recommendation": self.recommendation,
            "needs_verification": self.needs_verification,
            "needs_warning": self.needs_warning,
            "components": dict(self.components),
        }


def extract_points(option_text: str) -> Optional[int]:
    """Point value embedded in an option label, e.g. "(7 points)" or "（+1分）"."""
    if not isinstance(option_text, str):
        return None
    for pattern in (_POINTS_EN, _POINTS_ZH):
        match = pattern.search(option_text)
        if match:
            return int(match.group(1))
    return None


def _option_label(text: str) -> str:
    """Option text without its trailing points label or quotes, for comparison."""
    return _LABEL_SUFFIX.sub("", text).strip().strip(_QUOTES).strip().casefold()


def _single_points(question: RiskQuestion, answer: str) -> int:
    points = extract_points(answer)
    if points is not None:
        return points
    # Bare option text without the points label: it must name an option exactly
    label = _option_label(answer)
    if not label:
        return 0
    for option in question.options_en + question.options_zh:
        if _option_label(option) == label:
            return extract_points(option) or 0
    return 0


def answer_points(question: RiskQuestion, answer: Any) -> int:
    if is_blank(answer):
        return 0
    if isinstance(answer, (list, tuple)):
        return max((_single_points(question, str(a)) for a in answer), default=0)
    return _single_points(question, str(answer))


def _contains_any(text: str, keywords: Sequence[str]) -> bool:
    lower = text.lower()
    return any(k.lower() in lower for k in keywords)


def _modifier(text: str, table) -> int:
    for keywords, value in table:
        if _contains_any(text, keywords):
            return value
    return 0


def demographic_modifier(answers: Mapping[str, Any]) -> int:
    return (_modifier(answer_text(answers, "demo-1"), AGE_MODIFIERS)
            + _modifier(answer_text(answers, "demo-2"), INCOME_MODIFIERS))


def category_averages(answers: Mapping[str, Any]) -> Dict[str, float]:
    """Average normalized (0-100) score per scored category; 0 for a category with no answers."""
    totals: Dict[str, List[float]] = {c: [] for c in SCORED_CATEGORIES}
    for question in RISK_QUESTIONS:
        if question.category not in totals or question.id not in answers:
            continue
        points = answer_points(question, answers[question.id])
        totals[question.category].append(points / question.max_points * 100)
    return {c: (sum(v) / len(v) if v else 0.0) for c, v in totals.items()}


def profile_for_score(score: int, config: Optional[RiskProfileConfig] = None) -> str:
    bands = (config or DEFAULT_CONFIG.risk_profile).bands
    for profile_type, low, high in bands:
        if low <= score <= high:
            return profile_type
    raise ValueError(f"No risk profile band covers score {score!r}")


def score_risk_profile(
    answers: Mapping[str, Any],
    language: str = "en",
    config: Optional[RiskProfileConfig] = None,
) -> RiskAssessmentResult:
    """
    Score a risk questionnaire.

    Missing answers count as zero points; check_required_risk_answers() is
    the place to reject incomplete questionnaires.
    """
    config = config or DEFAULT_CONFIG.risk_profile
    averages = category_averages(answers)
    weighted = sum(averages[c] * config.category_weights[c] for c in SCORED_CATEGORIES)
    modifier = demographic_modifier(answers)
    score = max(0.0, min(100.0, weighted + modifier))
    penalties: List[Dict[str, Any]] = []

    # Progressive return goal without the financial capacity for it
    if (_contains_any(answer_text(answers, "goal-1"), PROGRESSIVE_GOAL_KEYWORDS)
            and averages[FINANCIAL] < config.low_financial_score):
        cap = next(high for name, _, high in config.bands if name == config.aggressive_goal_cap_profile)
        if score > cap:
            penalties.append({"rule": "progressive_goal_low_financial", "cap": cap, "before": round(score, 2)})
            score = float(cap)

    pre_penalty = score

    needs_verification = False
    if (_contains_any(answer_text(answers, "psych-1"), BUY_THE_DIP_KEYWORDS)
            and _contains_any(answer_text(answers, "exp-1"), INEXPERIENCED_KEYWORDS)):
        needs_verification = True
        score = max(0.0, score - config.verification_penalty)
        penalties.append({"rule": "buy_the_dip_inexperienced", "penalty": config.verification_penalty})

    needs_warning = False
    preliminary = profile_for_score(round_half_up(score), config)
    if _contains_any(answer_text(answers, "demo-1"), OVER_50_KEYWORDS) and preliminary in HIGH_RISK_PROFILES:
        needs_warning = True
        score = max(0.0, score - config.warning_penalty)
        penalties.append({"rule": "over_50_high_risk", "penalty": config.warning_penalty})

    final_score = round_half_up(score)
    profile_type = profile_for_score(final_score, config)
    name, description, recommendation = PROFILES[profile_type]["zh" if language == "zh" else "en"]

    components = {
        "category_averages": {c: round(v, 2) for c, v in averages.items()},
        "weighted_score": round(weighted, 2),
        "demographic_modifier": modifier,
        "pre_penalty_score": round(pre_penalty, 2),
        "preliminary_profile": preliminary,
        "penalties": penalties,
    }

    logger.info(
        "risk_profile_scored",
        score=final_score,
        profile_type=profile_type,
        needs_verification=needs_verification,
        needs_warning=needs_warning,
    )
    return RiskAssessmentResult(
        score=final_score,
        profile_type=profile_type,
        name=name,
        description=description,
        recommendation=recommendation,
        needs_verification=needs_verification,
        needs_warning=needs_warning,
        components=components,
    )


def check_required_risk_answers(answers: Mapping[str, Any]) -> List[str]:
    """Ids of required risk questions with no answer, in questionnaire order."""
    return [q.id for q in RISK_QUESTIONS if q.required and is_blank(answers.get(q.id))]
