from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class SentimentBucket(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class BackendMode(str, Enum):
    LOCAL = "local"
    REMOTE = "remote"


@dataclass(frozen=True)
class RawSentiment:
    """
    Backend-native judgment before normalization.

    - label: POSITIVE|NEGATIVE (local) or POSITIVE|NEGATIVE|NEUTRAL (remote)
    - score: backend confidence in [0, 1]
    """

    label: str
    score: float


@dataclass(frozen=True)
class ClassificationResult:
    """
    Standardized sentiment output.

    - bucket: positive|negative|neutral
    - confidence: passed through from the backend unchanged
    - mode: backend that produced the result (captured when the call was issued)
    - item: classified text
    """

    bucket: SentimentBucket
    confidence: float
    mode: BackendMode
    item: str
