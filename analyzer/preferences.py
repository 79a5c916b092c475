from __future__ import annotations

import json
import logging
import uuid
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

UID_KEY = "uid"
GAS_URL_KEY = "gas_url"
CREDENTIAL_KEY = "openrouter_key"


class PreferenceStore:
    """
    Small JSON-file key/value store for per-user preferences.

    Keys in use:
      - uid: stable pseudo user id for telemetry
      - gas_url: Apps Script Web App URL for telemetry
      - openrouter_key: remote backend credential (never logged)

    A missing or unreadable file behaves as an empty store.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)
        self._values = self._load()

    def get(self, key: str) -> Optional[str]:
        value = self._values.get(key)
        return value if isinstance(value, str) and value else None

    def set(self, key: str, value: str) -> None:
        self._values[key] = value
        self._save()

    def remove(self, key: str) -> None:
        if self._values.pop(key, None) is not None:
            self._save()

    def get_or_create_uid(self) -> str:
        uid = self.get(UID_KEY)
        if not uid:
            uid = str(uuid.uuid4())
            self.set(UID_KEY, uid)
        return uid

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Preferences unreadable, starting empty: path=%s err=%s", self.path, e)
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _save(self) -> None:
        if self.path.parent and not self.path.parent.exists():
            self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self._values, ensure_ascii=False, indent=2), encoding="utf-8")


def save_credential(store: PreferenceStore, key: str) -> str:
    """
    Store the remote API key. Returns a status line.

    Raises:
        ValueError: blank key
    """
    key = key.strip()
    if not key:
        raise ValueError("Enter an API key first.")
    store.set(CREDENTIAL_KEY, key)
    return "API key saved."


def save_telemetry_url(store: PreferenceStore, url: str) -> str:
    """
    Store or clear the Apps Script URL. Returns a status line.

    Raises:
        ValueError: non-empty URL not ending with /exec
    """
    url = url.strip()
    if url and not url.endswith("/exec"):
        raise ValueError("URL must end with /exec")
    if url:
        store.set(GAS_URL_KEY, url)
        return "GAS URL saved. Logs will be sent to Google Sheets."
    store.remove(GAS_URL_KEY)
    return "GAS URL removed. Logging disabled."
