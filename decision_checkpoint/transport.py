"""
Transports for the external analysis service.

The augmentation client only needs one capability from a transport:

    await transport.request(kind, prompt) -> response text

A transport may raise; the client treats every failure as retryable.
Two implementations ship here:

  ChatCompletionsTransport  OpenAI-compatible /v1/chat/completions endpoint
                            (DeepSeek by default), called with requests in a
                            worker thread so the event loop is not blocked.
  StaticTransport           canned responses keyed by analysis kind, for
                            demos and tests.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Mapping, Optional, Protocol, Tuple, Union

import requests

from decision_checkpoint.analysis import AugmentationKind
from decision_checkpoint.config import Settings
from decision_checkpoint.errors import TransportError
from decision_checkpoint.logging_config import get_logger

logger = get_logger(__name__)


class AnalysisTransport(Protocol):
    async def request(self, kind: AugmentationKind, text: str) -> str:
        ...


SYSTEM_PROMPTS: Dict[AugmentationKind, str] = {
    AugmentationKind.LOGIC_CONSISTENCY: (
        "You are an investment expert evaluating the logical consistency of investment "
        "decisions. Return evaluation results in JSON format only."
    ),
    AugmentationKind.RISK_CONSISTENCY: (
        "You are an investment risk expert evaluating the risk consistency of investment "
        "decisions. Return evaluation results in JSON format only."
    ),
    AugmentationKind.COGNITIVE_BIAS: (
        "You are an investment psychology expert evaluating cognitive biases in investment "
        "decisions. Return evaluation results in JSON format only."
    ),
}


class ChatCompletionsTransport:
    """
    Blocking HTTP client for an OpenAI-compatible chat completions API.

    Args:
        api_key: Bearer token
        base_url: Service root, e.g. "https://api.deepseek.com"
        model: Model name sent with every request
        timeout: Per-request socket timeout in seconds
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.deepseek.com",
        model: str = "deepseek-chat",
        timeout: float = 15.0,
    ):
        if not api_key:
            raise ValueError("api_key is required")
        self.api_key = api_key
        self.url = base_url.rstrip("/") + "/v1/chat/completions"
        self.model = model
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "ChatCompletionsTransport":
        return cls(
            api_key=settings.analysis_api_key or "",
            base_url=settings.analysis_base_url,
            model=settings.analysis_model,
            timeout=settings.analysis_timeout_seconds,
        )

    async def request(self, kind: AugmentationKind, text: str) -> str:
        return await asyncio.to_thread(self._post, AugmentationKind(kind), text)

    def _post(self, kind: AugmentationKind, text: str) -> str:
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPTS[kind]},
                {"role": "user", "content": text},
            ],
            "response_format": {"type": "json_object"},
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

        try:
            res = requests.post(self.url, json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            raise TransportError(f"{kind.value}: request failed: {exc}") from exc

        if res.status_code >= 400:
            raise TransportError(f"{kind.value}: service returned HTTP {res.status_code}")

        try:
            data = res.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise TransportError(f"{kind.value}: unexpected response envelope") from exc

        if not isinstance(content, str) or not content.strip():
            raise TransportError(f"{kind.value}: empty completion")

        logger.debug("analysis_response_received", kind=kind.value, chars=len(content))
        return content


Response = Union[str, Exception]


class StaticTransport:
    """
    In-process transport returning canned responses.

    A response that is an Exception instance is raised instead of returned.
    A list of responses is consumed one per call (the last one repeats), which
    lets a test script "fail twice, then succeed".
    """

    def __init__(self, responses: Mapping[Any, Union[Response, List[Response]]], default: Optional[Response] = None):
        self._responses: Dict[AugmentationKind, List[Response]] = {}
        for kind, value in responses.items():
            self._responses[AugmentationKind(kind)] = list(value) if isinstance(value, list) else [value]
        self.default = default
        self.calls: List[Tuple[AugmentationKind, str]] = []

    def call_count(self, kind: AugmentationKind) -> int:
        return sum(1 for k, _ in self.calls if k == kind)

    async def request(self, kind: AugmentationKind, text: str) -> str:
        kind = AugmentationKind(kind)
        self.calls.append((kind, text))

        queue = self._responses.get(kind)
        if queue:
            response = queue.pop(0) if len(queue) > 1 else queue[0]
        else:
            response = self.default

        if response is None:
            raise TransportError(f"{kind.value}: no canned response")
        if isinstance(response, Exception):
            raise response
        return response
