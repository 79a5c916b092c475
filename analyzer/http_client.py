from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import requests

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HttpConfig:
    timeout_sec: float
    user_agent: str


class HttpClient:
    """
    Thin HTTP client wrapper:
    - Timeout
    - Exactly one attempt per call (callers decide what a failure means)
    - Logs meaningful failures

    Header values passed per request (e.g. Authorization) are never logged.
    """

    def __init__(self, config: HttpConfig, session: Optional[requests.Session] = None):
        self._cfg = config
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": self._cfg.user_agent})

    @property
    def user_agent(self) -> str:
        return self._cfg.user_agent

    def get_text(self, url: str) -> str:
        """
        GET an URL and return response body as text.

        Raises:
            requests.HTTPError: non-2xx response
            requests.RequestException: network errors
        """
        try:
            resp = self._session.get(url, timeout=self._cfg.timeout_sec)
            resp.raise_for_status()
        except requests.RequestException as e:
            logger.error("HTTP GET failed: url=%s err=%s", url, e)
            raise
        resp.encoding = "utf-8"
        return resp.text

    def post_json(
            self,
            url: str,
            payload: Mapping[str, Any],
            headers: Optional[Mapping[str, str]] = None,
    ) -> requests.Response:
        """
        POST a JSON body and return the raw response, whatever its status.

        Raises:
            requests.RequestException: network errors
        """
        try:
            resp = self._session.post(
                url,
                json=dict(payload),
                headers=dict(headers or {}),
                timeout=self._cfg.timeout_sec,
            )
        except requests.RequestException as e:
            logger.error("HTTP POST failed: url=%s err=%s", url, e)
            raise
        if not resp.ok:
            logger.warning("HTTP POST non-2xx: url=%s status=%s", url, resp.status_code)
        return resp

    def post_form(self, url: str, fields: Mapping[str, str]) -> int:
        """
        POST url-encoded form fields with no custom headers (a "simple" request,
        which Apps Script Web Apps accept without a preflight).

        Returns:
            HTTP status code.

        Raises:
            requests.RequestException: network errors
        """
        resp = self._session.post(url, data=dict(fields), timeout=self._cfg.timeout_sec)
        return resp.status_code
