from __future__ import annotations

from analyzer.sentiment_types import (
    BackendMode,
    ClassificationResult,
    RawSentiment,
    SentimentBucket,
)

# Scores at or below this never produce a polar bucket.
POLARITY_THRESHOLD = 0.5


def map_sentiment(label: str, score: float) -> SentimentBucket:
    """
    Map a raw (label, score) pair to a three-bucket sentiment.

    The same rule is used for every backend, so equal confidence values mean
    the same thing regardless of where they came from. NEUTRAL (remote only)
    always maps to neutral.
    """
    if label == "POSITIVE" and score > POLARITY_THRESHOLD:
        return SentimentBucket.POSITIVE
    if label == "NEGATIVE" and score > POLARITY_THRESHOLD:
        return SentimentBucket.NEGATIVE
    return SentimentBucket.NEUTRAL


def normalize(raw: RawSentiment, mode: BackendMode, item: str) -> ClassificationResult:
    return ClassificationResult(
        bucket=map_sentiment(raw.label, raw.score),
        confidence=raw.score,
        mode=mode,
        item=item,
    )
