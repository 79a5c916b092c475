from __future__ import annotations

import logging
import os
import sys

from analyzer.http_client import HttpClient, HttpConfig
from analyzer.preferences import GAS_URL_KEY, PreferenceStore, save_telemetry_url
from analyzer.settings import load_settings
from analyzer.telemetry import TelemetryEvent, base_meta, build_sink

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

# name -> (event, variant)
EVENTS = {
    "cta_a": ("cta_click", "A"),
    "cta_b": ("cta_click", "B"),
    "heartbeat": ("heartbeat", ""),
}


def main() -> None:
    """
    Send one event to the telemetry sink and print the delivery status.

    Environment:
      - LOG_EVENT: cta_a | cta_b | heartbeat (default: heartbeat)
      - GAS_URL: optional; validated (must end with /exec) and saved first
    """
    s = load_settings()
    store = PreferenceStore(s.preferences_path)
    store.get_or_create_uid()

    if s.gas_url and store.get(GAS_URL_KEY) != s.gas_url:
        try:
            print(save_telemetry_url(store, s.gas_url))
        except ValueError as e:
            print(f"Invalid URL: {e}")
            sys.exit(2)

    name = os.getenv("LOG_EVENT", "heartbeat").strip().lower()
    if name not in EVENTS:
        print(f"Unknown event {name!r}; choose one of: {', '.join(sorted(EVENTS))}")
        sys.exit(2)
    event, variant = EVENTS[name]

    http = HttpClient(HttpConfig(timeout_sec=s.telemetry_timeout_sec, user_agent=s.user_agent))
    sink = build_sink(s.telemetry_backend, http, store)
    try:
        status = sink.deliver(TelemetryEvent(event=event, variant=variant, meta=base_meta(s.user_agent)))
    except Exception as e:
        logger.warning("Event delivery failed: event=%s err=%s", event, e)
        status = f"Error: {e}"
    finally:
        sink.close()
    print(status)


if __name__ == "__main__":
    main()
