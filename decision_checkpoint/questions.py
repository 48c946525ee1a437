"""
Investment checkpoint question catalog and input validation.

The questionnaire has seven stages. Question ids are "<stage>-<n>" and are
the stable keys of an AnswerSet:

  1  Goals & risk            4  Risk management          7  Documentation
  2  Investment method       5  Information validation
  3  Buy/sell rules          6  Cognitive bias check

The catalog is used for validation only; scoring never looks at question
text or option lists.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple


class AnswerKind(str, Enum):
    SHORT_TEXT = "short-text"
    LONG_TEXT = "long-text"
    SINGLE_CHOICE = "single-choice"
    MULTI_CHOICE = "multi-choice"
    DATE = "date"


@dataclass(frozen=True)
class Question:
    id: str
    text: str
    kind: AnswerKind
    required: bool = True
    options: Tuple[str, ...] = ()

    @property
    def stage(self) -> int:
        return int(self.id.split("-")[0])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "stage": self.stage,
            "text": self.text,
            "kind": self.kind.value,
            "required": self.required,
            "options": list(self.options),
        }


HORIZON_OPTIONS = ("Short-term (<1 year)", "Medium-term (1-5 years)", "Long-term (>5 years)")
TOLERANCE_OPTIONS = (
    "Conservative (fluctuation <10%)",
    "Moderate (fluctuation 10-25%)",
    "Aggressive (fluctuation >25%)",
)
METHOD_OPTIONS = (
    "Fundamental Analysis (financial reports, industry position)",
    "Technical Analysis (trend lines, volume)",
    "Quantitative Analysis (factor backtest)",
    "Passive Investing (index tracking)",
)
MITIGATION_OPTIONS = (
    "Stop-loss Orders",
    "Diversification (across 3+ unrelated industries)",
    "Options Hedging",
)
SOURCE_OPTIONS = (
    "Company Filings",
    "Bloomberg/Reuters Data",
    "Analyst Reports",
    "Independent Third-party Audits",
    "Social Media (e.g., Douyin, Xiaohongshu)",
)
YES_NO = ("Yes", "No")
REVIEW_OPTIONS = ("Monthly", "Quarterly", "Event-driven (e.g., earnings release)")


_T, _L = AnswerKind.SHORT_TEXT, AnswerKind.LONG_TEXT
_S, _M = AnswerKind.SINGLE_CHOICE, AnswerKind.MULTI_CHOICE

QUESTIONS: Tuple[Question, ...] = (
    Question("1-1", "What are your primary investment goals?", _L),
    Question("1-2", "What is your time horizon for this investment?", _S, options=HORIZON_OPTIONS),
    Question("1-3", "How would you describe your risk tolerance?", _S, options=TOLERANCE_OPTIONS),
    Question("1-4", "What are your liquidity needs for this investment?", _L),
    Question("2-1", "Which investment method(s) will you use?", _M, options=METHOD_OPTIONS),
    Question("2-2", "Why do you believe this method is suitable for your goals?", _L),
    Question("2-3", "What are the key metrics you will use to evaluate potential investments?", _L),
    Question("3-1", "What specific criteria will trigger a buy decision?", _L),
    Question("3-2", "What specific criteria will trigger a sell decision (profit taking)?", _L),
    Question("3-3", "What specific criteria will trigger a sell decision (loss mitigation)?", _L),
    Question("3-4", "How will you manage position sizing?", _L),
    Question("4-1", "What are the major risks associated with this investment?", _L),
    Question("4-2", "How will you monitor these risks?", _L),
    Question("4-3", "What methods will you use to mitigate these risks?", _M, options=MITIGATION_OPTIONS),
    Question("4-4", "What is the maximum potential loss you are willing to accept?", _T),
    Question("5-1", "What sources of information will you use for research?", _M, options=SOURCE_OPTIONS),
    Question("5-2", "How will you verify the accuracy of this information?", _L),
    Question("5-3", "What are the key assumptions underlying your investment thesis?", _L),
    Question("6-1", "Are you anchoring on the initial purchase price?", _S, options=YES_NO),
    Question("6-2", "Are you overconfident in your ability to predict performance?", _S, options=YES_NO),
    Question("6-3", "Are you following the crowd (herd behavior)?", _S, options=YES_NO),
    Question("6-4", "Are you ignoring potential losses?", _S, options=YES_NO),
    Question("6-5", "Have you considered opposing viewpoints?", _S, options=YES_NO),
    Question("6-6", "What measures will you take to address identified biases?", _L),
    Question("7-1", "Summarize your investment decision and rationale", _L),
    Question("7-2", "What potential factors could change your investment thesis?", _L),
    Question("7-3", "When will you review this investment decision?", _S, options=REVIEW_OPTIONS),
    Question("7-4", "Who else will review this decision (if applicable)?", _T, required=False),
)

QUESTIONS_BY_ID: Mapping[str, Question] = MappingProxyType({q.id: q for q in QUESTIONS})
STAGE_IDS: Tuple[int, ...] = (1, 2, 3, 4, 5, 6, 7)

# Field id used for the decision name in validation errors
NAME_FIELD = "name"


def questions_for_stage(stage_id: int) -> List[Question]:
    if stage_id not in STAGE_IDS:
        raise ValueError(f"Unknown stage id: {stage_id!r}")
    return [q for q in QUESTIONS if q.stage == stage_id]


@dataclass(frozen=True)
class InvestmentDecision:
    """A named decision and its (read-only) answer set."""
    name: str
    answers: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "answers", snapshot_answers(self.answers))

    def to_dict(self) -> dict:
        return {"name": self.name, "answers": thaw_answers(self.answers)}


def snapshot_answers(answers: Mapping[str, Any]) -> Mapping[str, Any]:
    """Copy an answer set into a read-only mapping (lists become tuples)."""
    frozen: Dict[str, Any] = {}
    for key, value in (answers or {}).items():
        if isinstance(value, (list, tuple, set, frozenset)):
            value = tuple(value)
        frozen[str(key)] = value
    return MappingProxyType(frozen)


def thaw_answers(answers: Mapping[str, Any]) -> Dict[str, Any]:
    return {k: list(v) if isinstance(v, tuple) else v for k, v in answers.items()}


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, frozenset)):
        return len(value) == 0
    return False


def answer_text(answers: Mapping[str, Any], question_id: str) -> str:
    """An answer as plain text: choice lists are joined with ", ", strings are stripped."""
    value = answers.get(question_id)
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return str(value).strip()


def missing_required(answers: Mapping[str, Any], questions: Optional[Tuple[Question, ...]] = None) -> List[str]:
    """Ids of required questions with no (or an empty) answer, in catalog order."""
    return [q.id for q in (questions or QUESTIONS) if q.required and is_blank(answers.get(q.id))]


def validate_decision(decision: InvestmentDecision) -> List[str]:
    """
    Required-field validation, run before any scoring.

    Returns:
        Field ids that are missing: "name" first when the decision name is
        blank, followed by the missing question ids. Empty when valid.
    """
    errors: List[str] = []
    if is_blank(decision.name):
        errors.append(NAME_FIELD)
    errors.extend(missing_required(decision.answers))
    return errors


def _is_date(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        datetime.date.fromisoformat(value[:10])
    except ValueError:
        return False
    return True


def answer_matches_kind(question: Question, value: Any) -> bool:
    """Check one answer against the question's expected kind and options."""
    kind = question.kind
    if kind in (AnswerKind.SHORT_TEXT, AnswerKind.LONG_TEXT):
        return isinstance(value, str)
    if kind == AnswerKind.SINGLE_CHOICE:
        return isinstance(value, str) and (not question.options or value in question.options)
    if kind == AnswerKind.MULTI_CHOICE:
        if not isinstance(value, (list, tuple)):
            return False
        return all(isinstance(v, str) and (not question.options or v in question.options) for v in value)
    if kind == AnswerKind.DATE:
        return _is_date(value)
    return False


def validate_answer_types(answers: Mapping[str, Any]) -> List[str]:
    """
    Ids of answers that do not fit their question (unknown ids included).

    Blank answers are skipped here; missing_required() reports those.
    """
    errors: List[str] = []
    for question_id, value in answers.items():
        if is_blank(value):
            continue
        question = QUESTIONS_BY_ID.get(question_id)
        if question is None or not answer_matches_kind(question, value):
            errors.append(question_id)
    return errors
