from __future__ import annotations

from analyzer.display import local_failed_status, ready_status, render_result
from analyzer.sentiment_types import BackendMode, ClassificationResult, SentimentBucket


def test_render_result_shows_bucket_percentage_and_mode():
    result = ClassificationResult(
        bucket=SentimentBucket.POSITIVE,
        confidence=0.98,
        mode=BackendMode.LOCAL,
        item="Great product!",
    )
    assert render_result(result) == "Positive: 98.0% confidence (local mode)"


def test_status_lines():
    assert ready_status(2, BackendMode.LOCAL) == "Ready! 2 reviews loaded. (Local model)"
    assert ready_status(5, BackendMode.REMOTE) == "Ready! 5 reviews loaded. (API mode)"
    assert local_failed_status(3) == "3 reviews loaded. Local model failed, switch to API mode."
