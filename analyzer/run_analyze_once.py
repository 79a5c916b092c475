from __future__ import annotations

import asyncio
import json
import logging
import sys

from analyzer.dataset import load_reviews
from analyzer.errors import LoadError
from analyzer.http_client import HttpClient, HttpConfig
from analyzer.local_backend import LocalBackend, LocalModelConfig
from analyzer.orchestrator import ModeOrchestrator
from analyzer.preferences import CREDENTIAL_KEY, GAS_URL_KEY, PreferenceStore
from analyzer.remote_backend import RemoteBackend, RemoteConfig
from analyzer.sentiment_types import BackendMode
from analyzer.settings import AnalyzerSettings, load_settings
from analyzer.telemetry import build_sink

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _seed_preferences(s: AnalyzerSettings) -> PreferenceStore:
    store = PreferenceStore(s.preferences_path)
    if s.openrouter_api_key and not store.get(CREDENTIAL_KEY):
        store.set(CREDENTIAL_KEY, s.openrouter_api_key)
    if s.gas_url and not store.get(GAS_URL_KEY):
        store.set(GAS_URL_KEY, s.gas_url)
    return store


async def _run(orchestrator: ModeOrchestrator) -> int:
    logger.info("Starting: mode=%s", orchestrator.mode.value)
    print(await orchestrator.start())

    outcome = await orchestrator.analyze()
    print(
        json.dumps(
            {
                "review": outcome.item,
                "mode": outcome.result.mode.value if outcome.result else orchestrator.mode.value,
                "bucket": outcome.result.bucket.value if outcome.result else None,
                "confidence": outcome.result.confidence if outcome.result else None,
                "status": outcome.status,
            },
            ensure_ascii=False,
            indent=2,
        )
    )
    return 0 if outcome.ok else 1


def main() -> None:
    s = load_settings()

    http = HttpClient(HttpConfig(timeout_sec=s.request_timeout_sec, user_agent=s.user_agent))
    store = _seed_preferences(s)

    try:
        reviews = load_reviews(s.reviews_source, http)
    except LoadError as e:
        logger.error("Initialization failed: %s", e)
        print("Failed to load reviews.")
        sys.exit(1)

    telemetry_http = HttpClient(HttpConfig(timeout_sec=s.telemetry_timeout_sec, user_agent=s.user_agent))
    sink = build_sink(s.telemetry_backend, telemetry_http, store)

    orchestrator = ModeOrchestrator(
        local=LocalBackend(
            LocalModelConfig(
                model_id=s.local_model_id,
                max_chars=s.local_max_chars,
                device=s.local_device,
            )
        ),
        remote=RemoteBackend(
            RemoteConfig(
                base_url=s.openrouter_base_url,
                model=s.openrouter_model,
                max_tokens=s.openrouter_max_tokens,
                temperature=s.openrouter_temperature,
            ),
            http,
        ),
        store=store,
        telemetry=sink,
        reviews=reviews,
        mode=BackendMode(s.analyzer_mode.strip().lower()),
        user_agent=s.user_agent,
    )

    async def _session() -> int:
        try:
            return await _run(orchestrator)
        finally:
            await sink.drain()

    try:
        code = asyncio.run(_session())
    finally:
        sink.close()
    sys.exit(code)


if __name__ == "__main__":
    main()
