from __future__ import annotations

import asyncio
import json
import logging
import re
from dataclasses import dataclass
from typing import Any

import requests

from analyzer.errors import HttpError
from analyzer.http_client import HttpClient
from analyzer.sentiment_types import RawSentiment

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    'Classify the sentiment. Reply with ONLY valid JSON: {"label":"POSITIVE","score":0.95}. '
    "Label must be POSITIVE, NEGATIVE, or NEUTRAL. Score is your confidence 0.0-1.0. No other text."
)

# Confidence used whenever the reply carries no usable score.
FALLBACK_SCORE = 0.7

BODY_EXCERPT_CHARS = 120

_CODE_FENCE_RE = re.compile(r"^```(?:json)?\s*([\s\S]*?)\s*```$", re.IGNORECASE)


@dataclass(frozen=True)
class RemoteConfig:
    base_url: str
    model: str
    max_tokens: int
    temperature: float


class RemoteBackend:
    """
    Hosted chat-completion model used as a sentiment classifier.

    - one POST per classify() call, no retry
    - reply parsed as {"label", "score"}; falls back to keyword search when the
      model ignores the format, so a 2xx reply always yields a RawSentiment
    """

    def __init__(self, cfg: RemoteConfig, http: HttpClient):
        self._cfg = cfg
        self._http = http

    @property
    def endpoint(self) -> str:
        return f"{self._cfg.base_url.rstrip('/')}/chat/completions"

    def build_request_body(self, item: str) -> dict[str, Any]:
        return {
            "model": self._cfg.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": item},
            ],
            "max_tokens": self._cfg.max_tokens,
            "temperature": self._cfg.temperature,
        }

    async def classify(self, item: str, credential: str) -> RawSentiment:
        """
        Raises:
            HttpError: non-2xx response (status, body excerpt) or network failure (status 0)
        """
        return await asyncio.to_thread(self._classify_sync, item, credential)

    def _classify_sync(self, item: str, credential: str) -> RawSentiment:
        headers = {
            "Content-Type": "application/json",
            "Authorization": "Bearer " + credential,
        }
        try:
            resp = self._http.post_json(self.endpoint, self.build_request_body(item), headers=headers)
        except requests.RequestException as e:
            raise HttpError(0, str(e)) from e

        if not resp.ok:
            raise HttpError(resp.status_code, (resp.text or "")[:BODY_EXCERPT_CHARS])

        try:
            data = resp.json()
        except ValueError:
            data = None
        raw = extract_reply_text(data)
        logger.debug("Remote reply: model=%s chars=%s", self._cfg.model, len(raw))
        return parse_reply(raw)


def extract_reply_text(data: Any) -> str:
    """Return choices[0].message.content stripped, or "" if the shape is off."""
    if not isinstance(data, dict):
        return ""
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return ""
    first = choices[0]
    message = first.get("message") if isinstance(first, dict) else None
    content = message.get("content") if isinstance(message, dict) else None
    if not isinstance(content, str):
        return ""
    return content.strip()


def parse_reply(raw: str) -> RawSentiment:
    """
    Two-tier parse. Never raises.

    1. JSON object with a string (or missing) label: label uppercased (NEUTRAL if
       missing), score if numeric and within [0, 1] else 0.7
    2. anything else, including a non-string label: POSITIVE / NEGATIVE
       substring search (case-insensitive), NEUTRAL if neither, score 0.7
    """
    text = raw.strip()
    fenced = _CODE_FENCE_RE.match(text)
    if fenced:
        text = fenced.group(1)

    try:
        parsed = json.loads(text)
    except ValueError:
        parsed = None

    if isinstance(parsed, dict) and isinstance(parsed.get("label"), (str, type(None))):
        label = (parsed.get("label") or "NEUTRAL").upper()
        score = parsed.get("score")
        if isinstance(score, bool) or not isinstance(score, (int, float)) or not 0.0 <= score <= 1.0:
            score = FALLBACK_SCORE
        return RawSentiment(label=label, score=float(score))

    upper = raw.upper()
    label = "NEUTRAL"
    if "POSITIVE" in upper:
        label = "POSITIVE"
    elif "NEGATIVE" in upper:
        label = "NEGATIVE"
    return RawSentiment(label=label, score=FALLBACK_SCORE)
