from __future__ import annotations

from analyzer.sentiment_types import BackendMode, ClassificationResult, SentimentBucket

BUCKET_LABELS = {
    SentimentBucket.POSITIVE: "Positive",
    SentimentBucket.NEGATIVE: "Negative",
    SentimentBucket.NEUTRAL: "Neutral",
}

MODE_LABELS = {
    BackendMode.LOCAL: "Local model",
    BackendMode.REMOTE: "API mode",
}

LOADING_MODEL = "Loading local model (may take 30-60 s on first visit)..."
MODEL_LOAD_FAILED = "Model load failed."
LOCAL_FAILED_HINT = "Local model failed to load. Select local mode again to retry, or switch to API mode."
NO_EVENT_LOOP = "Cannot load the local model outside a running event loop."


def format_confidence(confidence: float) -> str:
    return f"{confidence * 100:.1f}% confidence"


def render_result(result: ClassificationResult) -> str:
    """e.g. "Positive: 98.0% confidence (local mode)"."""
    return f"{BUCKET_LABELS[result.bucket]}: {format_confidence(result.confidence)} ({result.mode.value} mode)"


def ready_status(review_count: int, mode: BackendMode) -> str:
    return f"Ready! {review_count} reviews loaded. ({MODE_LABELS[mode]})"


def local_failed_status(review_count: int) -> str:
    return f"{review_count} reviews loaded. Local model failed, switch to API mode."
