from __future__ import annotations

import asyncio
import json
import logging
import os
import platform
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from kafka import KafkaProducer
from kafka.errors import KafkaError

from analyzer.http_client import HttpClient
from analyzer.preferences import GAS_URL_KEY, PreferenceStore

logger = logging.getLogger(__name__)

MetaValue = Union[str, int, float]

APP_PAGE = "sentiment-analyzer"


@dataclass(frozen=True)
class TelemetryEvent:
    event: str
    variant: str = ""
    meta: dict[str, MetaValue] = field(default_factory=dict)


def base_meta(user_agent: str, page: str = APP_PAGE) -> dict[str, MetaValue]:
    """Common meta fields attached to every event."""
    return {"page": page, "ua": f"{user_agent} python/{platform.python_version()}"}


class TelemetrySink(ABC):
    """
    Best-effort event recorder.

    deliver() sends one event and may raise; emit() schedules delivery in a
    worker thread and never raises or blocks the caller. Delivery failures are
    logged and dropped.
    """

    def __init__(self) -> None:
        self._pending: set[asyncio.Task] = set()

    @abstractmethod
    def deliver(self, event: TelemetryEvent) -> str:
        """Send one event synchronously. Returns a short status line."""
        ...

    def emit(self, event: TelemetryEvent) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._deliver_quietly(event)
            return
        task = loop.create_task(asyncio.to_thread(self._deliver_quietly, event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for scheduled deliveries (used before shutdown)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def close(self) -> None:
        pass

    def _deliver_quietly(self, event: TelemetryEvent) -> None:
        try:
            status = self.deliver(event)
            logger.debug("Telemetry: event=%s status=%s", event.event, status)
        except Exception as e:
            logger.warning("Telemetry delivery failed: event=%s err=%s", event.event, e)


class NullTelemetrySink(TelemetrySink):
    def deliver(self, event: TelemetryEvent) -> str:
        return "Logging disabled."


class GasTelemetrySink(TelemetrySink):
    """
    Posts events to a Google Apps Script Web App (which appends a sheet row).

    Form fields: event, variant, userId, ts (epoch ms), meta (JSON).
    Skips delivery when no URL is stored.
    """

    def __init__(self, http: HttpClient, store: PreferenceStore):
        super().__init__()
        self._http = http
        self._store = store

    def deliver(self, event: TelemetryEvent) -> str:
        url = self._store.get(GAS_URL_KEY)
        if not url:
            return "Missing Web App URL. Save one first."

        fields = {
            "event": event.event,
            "variant": event.variant or "",
            "userId": self._store.get_or_create_uid(),
            "ts": str(int(time.time() * 1000)),
            "meta": json.dumps(event.meta or {}, ensure_ascii=False),
        }
        status = self._http.post_form(url, fields)
        if not 200 <= status < 300:
            logger.warning("Log failed: status=%s", status)
            return f"HTTP {status}"
        return "Logged"


@dataclass(frozen=True)
class KafkaTelemetryConfig:
    """
    Kafka producer configuration for telemetry events.

    Environment variables:
      - KAFKA_BOOTSTRAP_SERVERS: "host1:9092,host2:9092"
      - KAFKA_TOPIC: "analyzer.events"
      - KAFKA_CLIENT_ID: optional
      - KAFKA_ACKS: "all" | "1" | "0" (default: "1")
      - KAFKA_SEND_TIMEOUT_SEC: float (default: 10)
    """

    bootstrap_servers: str
    topic: str
    client_id: str = "sentiment-analyzer-telemetry"
    acks: str = "1"
    send_timeout_sec: float = 10.0

    @staticmethod
    def from_env() -> "KafkaTelemetryConfig":
        bootstrap = os.getenv("KAFKA_BOOTSTRAP_SERVERS", "").strip()
        topic = os.getenv("KAFKA_TOPIC", "").strip()
        if not bootstrap or not topic:
            raise ValueError(
                "Missing Kafka env vars. Required: KAFKA_BOOTSTRAP_SERVERS, KAFKA_TOPIC"
            )
        return KafkaTelemetryConfig(
            bootstrap_servers=bootstrap,
            topic=topic,
            client_id=os.getenv("KAFKA_CLIENT_ID", "").strip() or "sentiment-analyzer-telemetry",
            acks=os.getenv("KAFKA_ACKS", "1").strip() or "1",
            send_timeout_sec=float(os.getenv("KAFKA_SEND_TIMEOUT_SEC", "10")),
        )


class KafkaTelemetrySink(TelemetrySink):
    """
    Publishes the same payload as GasTelemetrySink to a Kafka topic.

    - Key: userId (bytes)
    - Value: JSON (UTF-8)
    """

    def __init__(self, cfg: KafkaTelemetryConfig, store: PreferenceStore, producer: Optional[Any] = None):
        super().__init__()
        self.cfg = cfg
        self._store = store
        self._producer = producer or self._build_producer(cfg)

    def deliver(self, event: TelemetryEvent) -> str:
        uid = self._store.get_or_create_uid()
        payload = {
            "event": event.event,
            "variant": event.variant or "",
            "userId": uid,
            "ts": int(time.time() * 1000),
            "meta": dict(event.meta or {}),
        }
        future = self._producer.send(self.cfg.topic, key=uid.encode("utf-8"), value=payload)
        try:
            metadata = future.get(timeout=self.cfg.send_timeout_sec)
        except KafkaError as e:
            logger.error("Kafka produce failed: event=%s err=%s", event.event, e)
            raise
        logger.debug(
            "Produced: topic=%s partition=%s offset=%s",
            metadata.topic, metadata.partition, metadata.offset
        )
        return "Logged"

    def close(self) -> None:
        try:
            self._producer.flush(timeout=10)
        finally:
            self._producer.close(timeout=10)

    def _build_producer(self, cfg: KafkaTelemetryConfig) -> KafkaProducer:
        logger.info(
            "Kafka telemetry producer ready: bootstrap=%s topic=%s client_id=%s",
            cfg.bootstrap_servers, cfg.topic, cfg.client_id
        )
        return KafkaProducer(
            bootstrap_servers=[s.strip() for s in cfg.bootstrap_servers.split(",") if s.strip()],
            client_id=cfg.client_id,
            acks=cfg.acks,
            key_serializer=lambda k: k,  # already bytes
            value_serializer=lambda v: json.dumps(v, ensure_ascii=False).encode("utf-8"),
        )


def build_sink(backend: str, http: HttpClient, store: PreferenceStore) -> TelemetrySink:
    """
    Pick a sink by name: "gas" | "kafka" | "none".

    A Kafka sink that cannot be configured degrades to NullTelemetrySink.
    """
    name = backend.strip().lower()
    if name == "gas":
        return GasTelemetrySink(http, store)
    if name == "kafka":
        try:
            return KafkaTelemetrySink(KafkaTelemetryConfig.from_env(), store)
        except (ValueError, KafkaError) as e:
            logger.warning("Kafka telemetry unavailable, logging disabled: err=%s", e)
            return NullTelemetrySink()
    return NullTelemetrySink()
