"""
Exception hierarchy for the decision checkpoint engine.

Only AnswerValidationError ever reaches a caller of the pipeline. The
augmentation errors are raised inside the client and consumed by its
retry/fallback loop.
"""

from __future__ import annotations

from typing import List, Sequence


class CheckpointError(Exception):
    """Base class for all engine errors."""


class AnswerValidationError(CheckpointError):
    """Required answers are missing; carries the offending field ids."""

    def __init__(self, fields: Sequence[str]):
        self.fields: List[str] = list(fields)
        super().__init__(f"Input validation failed: {', '.join(self.fields)}")


class AugmentationError(CheckpointError):
    """An attempt to reach the external analysis service failed."""


class TransportError(AugmentationError):
    """The transport could not deliver the request or got a bad status."""


class AugmentationTimeout(AugmentationError):
    """A single attempt exceeded the configured timeout."""


class MalformedResponseError(AugmentationError):
    """The service answered, but not with the expected JSON payload."""
