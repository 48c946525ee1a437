"""
External augmentation client.

For each analysis kind the client builds a fixed prompt from the relevant
answers, sends it through a transport and parses the JSON verdict:

    consistencyScore  0-10 (0-100 accepted and rescaled)
    conflictPoints    list of strings
    suggestions       list of strings
    reasoningPath     free text

Every attempt is bounded by a timeout. Transport errors, timeouts and
unparseable responses are retried under a RetryPolicy (3 attempts, fixed 1 s
backoff by default). When the budget is exhausted the kind's local fallback
runs, so augment() always returns a well-formed AugmentationResult and never
raises an AugmentationError.

The three kinds are independent and run concurrently in augment_all().
"""

from __future__ import annotations

import asyncio
import json
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_fixed

from decision_checkpoint.analysis import (
    SOURCE_SERVICE,
    AugmentationKind,
    AugmentationResult,
    build_all_inputs,
)
from decision_checkpoint.config import Settings
from decision_checkpoint.errors import (
    AugmentationError,
    AugmentationTimeout,
    MalformedResponseError,
    TransportError,
)
from decision_checkpoint.fallbacks import run_fallback
from decision_checkpoint.logging_config import get_logger
from decision_checkpoint.transport import AnalysisTransport

logger = get_logger(__name__)


# ─── Prompt templates ─────────────────────────────────────────────────────────

_RESPONSE_FORMAT_EN = """
Return a JSON object with the following fields:
1. consistencyScore: {score_label} (0-10)
2. conflictPoints: Array of {conflict_label}
3. suggestions: Array of improvement suggestions
4. reasoningPath: Your analytical reasoning process"""

_RESPONSE_FORMAT_ZH = """
请返回包含以下字段的JSON：
1. consistencyScore: {score_label}(0-10)
2. conflictPoints: {conflict_label}数组
3. suggestions: 改进建议数组
4. reasoningPath: 你的分析推理过程"""

PROMPT_TEMPLATES: Dict[AugmentationKind, Dict[str, str]] = {
    AugmentationKind.LOGIC_CONSISTENCY: {
        "en": (
            "Please evaluate the logical consistency of the following investment strategy:\n"
            "Buy rules: {buy_rules}\n"
            "Sell rules: {sell_rules}\n"
            "Stop-loss rules: {stop_loss_rules}\n"
            "Risk management: {risk_management}\n"
            + _RESPONSE_FORMAT_EN.format(
                score_label="Logical consistency score",
                conflict_label="potential conflict points",
            )
        ),
        "zh": (
            "请评估以下投资策略的逻辑自洽性：\n"
            "买入规则：{buy_rules}\n"
            "卖出规则：{sell_rules}\n"
            "止损规则：{stop_loss_rules}\n"
            "风险管理：{risk_management}\n"
            + _RESPONSE_FORMAT_ZH.format(score_label="逻辑自洽性评分", conflict_label="潜在矛盾点")
        ),
    },
    AugmentationKind.RISK_CONSISTENCY: {
        "en": (
            "Please evaluate the risk consistency of the following investment strategy:\n"
            "Risk tolerance: {risk_tolerance}\n"
            "Risk identification: {risk_identification}\n"
            "Maximum loss tolerance: {max_loss}\n"
            + _RESPONSE_FORMAT_EN.format(
                score_label="Risk consistency score",
                conflict_label="potential conflict points",
            )
        ),
        "zh": (
            "请评估以下投资策略的风险一致性：\n"
            "风险承受能力：{risk_tolerance}\n"
            "风险识别：{risk_identification}\n"
            "最大损失容忍度：{max_loss}\n"
            + _RESPONSE_FORMAT_ZH.format(score_label="风险一致性评分", conflict_label="潜在矛盾点")
        ),
    },
    AugmentationKind.COGNITIVE_BIAS: {
        "en": (
            "Please evaluate the following investor's cognitive bias management:\n"
            "Cognitive bias awareness: {bias_checks}\n"
            "Bias mitigation measures: {mitigation_plan}\n"
            + _RESPONSE_FORMAT_EN.format(
                score_label="Cognitive bias management score",
                conflict_label="potential cognitive bias issues",
            )
        ),
        "zh": (
            "请评估以下投资者的认知偏差管理：\n"
            "认知偏差意识：{bias_checks}\n"
            "偏差缓解措施：{mitigation_plan}\n"
            + _RESPONSE_FORMAT_ZH.format(score_label="认知偏差管理评分", conflict_label="潜在认知偏差问题")
        ),
    },
}

SUPPORTED_LANGUAGES = ("en", "zh")


def compose_prompt(kind: AugmentationKind, inputs: Mapping[str, str], language: str = "en") -> str:
    """Fill the kind's template. Same inputs always give the same prompt."""
    templates = PROMPT_TEMPLATES[AugmentationKind(kind)]
    template = templates.get(language, templates["en"])
    values = {key: (value or "-") for key, value in inputs.items()}
    try:
        return template.format(**values)
    except KeyError as exc:
        raise ValueError(f"Missing input {exc} for {AugmentationKind(kind).value}") from exc


# ─── Response parsing ─────────────────────────────────────────────────────────

_SCORE_KEYS = ("consistencyScore", "consistency_score", "effectiveness_score", "effectivenessScore", "score")
_CONFLICT_KEYS = ("conflictPoints", "conflict_points", "potential_issues", "potentialIssues")
_SUGGESTION_KEYS = ("suggestions", "improvement_suggestions", "improvementSuggestions")
_REASONING_KEYS = ("reasoningPath", "reasoning_path", "reasoning")

_FENCE_OPEN = re.compile(r"^```[\w-]*\s*\n?")
_FENCE_CLOSE = re.compile(r"\n?```\s*$")


def strip_code_fences(text: str) -> str:
    """Remove a ```json ... ``` wrapper if the model added one."""
    text = text.strip()
    text = _FENCE_OPEN.sub("", text, count=1)
    text = _FENCE_CLOSE.sub("", text, count=1)
    return text.strip()


def _first(data: Mapping[str, Any], keys) -> Any:
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


def _string_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if v is not None and str(v).strip()]
    return [str(value)]


def normalize_score(value: Any) -> float:
    """Coerce a reported score to the 0-10 scale (0-100 scores are divided by 10)."""
    if isinstance(value, bool):
        raise MalformedResponseError(f"Score is not a number: {value!r}")
    try:
        score = float(value)
    except (TypeError, ValueError, OverflowError) as exc:
        raise MalformedResponseError(f"Score is not a number: {type(value).__name__}") from exc
    if score != score:  # NaN
        raise MalformedResponseError("Score is NaN")
    if score > 10:
        score = score / 10
    return max(0.0, min(10.0, score))


def _load_object(kind: AugmentationKind, text: str) -> Any:
    try:
        return json.loads(text)
    except (ValueError, RecursionError) as exc:
        raise MalformedResponseError(f"{kind.value}: response is not JSON") from exc


def parse_response(kind: AugmentationKind, text: str) -> AugmentationResult:
    """
    Parse the service's reply into an AugmentationResult.

    Raises:
        MalformedResponseError: not JSON, not an object, or no usable score
    """
    cleaned = strip_code_fences(text or "")
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        # Some models wrap the object in prose; fall back to the outermost braces
        start, end = cleaned.find("{"), cleaned.rfind("}")
        if start == -1 or end <= start:
            raise MalformedResponseError(f"{kind.value}: response is not JSON")
        data = _load_object(kind, cleaned[start:end + 1])
    except (ValueError, RecursionError) as exc:
        # Oversized integers and very deep nesting fail outside JSONDecodeError
        raise MalformedResponseError(f"{kind.value}: response is not JSON") from exc

    if not isinstance(data, dict):
        raise MalformedResponseError(f"{kind.value}: expected a JSON object")

    raw_score = _first(data, _SCORE_KEYS)
    if raw_score is None:
        raise MalformedResponseError(f"{kind.value}: no consistency score in response")

    reasoning = _first(data, _REASONING_KEYS)
    return AugmentationResult(
        kind=kind,
        consistency_score=normalize_score(raw_score),
        conflict_points=tuple(_string_list(_first(data, _CONFLICT_KEYS))),
        suggestions=tuple(_string_list(_first(data, _SUGGESTION_KEYS))),
        reasoning_path=str(reasoning) if reasoning is not None else None,
        source=SOURCE_SERVICE,
    )


# ─── Client ───────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class RetryPolicy:
    """Attempt budget for one analysis kind."""
    max_attempts: int = 3
    backoff_seconds: float = 1.0
    timeout_seconds: float = 15.0

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.backoff_seconds < 0 or self.timeout_seconds <= 0:
            raise ValueError("backoff must be >= 0 and timeout > 0")

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryPolicy":
        return cls(
            max_attempts=settings.analysis_max_retries + 1,
            backoff_seconds=settings.analysis_backoff_seconds,
            timeout_seconds=settings.analysis_timeout_seconds,
        )


class AugmentationClient:
    """
    Runs the external analyses with timeout, retry and fallback.

    Args:
        transport: Anything with `async request(kind, text) -> str`
        policy: Retry/timeout budget per kind
    """

    def __init__(self, transport: AnalysisTransport, policy: Optional[RetryPolicy] = None):
        self.transport = transport
        self.policy = policy or RetryPolicy()

    async def _attempt(self, kind: AugmentationKind, prompt: str) -> AugmentationResult:
        try:
            text = await asyncio.wait_for(
                self.transport.request(kind, prompt),
                timeout=self.policy.timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            raise AugmentationTimeout(
                f"{kind.value}: no response within {self.policy.timeout_seconds}s"
            ) from exc
        except AugmentationError:
            raise
        except Exception as exc:
            # Third-party transports may raise anything; retry it like a transport error
            raise TransportError(f"{kind.value}: {exc}") from exc
        return parse_response(kind, text)

    async def augment(
        self,
        kind: AugmentationKind,
        inputs: Mapping[str, str],
        language: str = "en",
    ) -> AugmentationResult:
        """Analyse one kind; falls back to the local rules when the budget runs out."""
        kind = AugmentationKind(kind)
        prompt = compose_prompt(kind, inputs, language)
        result: Optional[AugmentationResult] = None

        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type(AugmentationError),
                stop=stop_after_attempt(self.policy.max_attempts),
                wait=wait_fixed(self.policy.backoff_seconds),
                reraise=True,
            ):
                with attempt:
                    attempt_number = attempt.retry_state.attempt_number
                    logger.debug(
                        "augmentation_attempt",
                        kind=kind.value,
                        attempt=attempt_number,
                        max_attempts=self.policy.max_attempts,
                    )
                    try:
                        result = await self._attempt(kind, prompt)
                    except AugmentationError as exc:
                        logger.warning(
                            "augmentation_attempt_failed",
                            kind=kind.value,
                            attempt=attempt_number,
                            error_type=type(exc).__name__,
                            error=str(exc),
                        )
                        raise
        except AugmentationError as exc:
            logger.warning(
                "augmentation_fallback",
                kind=kind.value,
                attempts=self.policy.max_attempts,
                error=str(exc),
            )
            return run_fallback(kind, inputs, language)

        logger.info(
            "augmentation_succeeded",
            kind=kind.value,
            consistency_score=result.consistency_score,
            conflicts=len(result.conflict_points),
        )
        return result

    async def augment_all(
        self,
        answers: Mapping[str, Any],
        language: str = "en",
    ) -> Dict[AugmentationKind, AugmentationResult]:
        """Run the three kinds concurrently; one kind's failure never affects another."""
        inputs = build_all_inputs(answers)
        results = await asyncio.gather(
            *(self.augment(kind, kind_inputs, language) for kind, kind_inputs in inputs.items())
        )
        return dict(zip(inputs, results))
