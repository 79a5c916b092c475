from __future__ import annotations

import csv
import io
import logging
from pathlib import Path

import requests

from analyzer.errors import LoadError
from analyzer.http_client import HttpClient

logger = logging.getLogger(__name__)

TEXT_COLUMN = "text"


def load_reviews(source: str, http: HttpClient) -> list[str]:
    """
    Load review texts from a tab-separated file with a header row.

    source may be a local path or an http(s) URL. Only the "text" column is
    used; blank rows are dropped.

    Raises:
        LoadError: source unreachable, no "text" column, or zero usable reviews
    """
    raw = _read_source(source, http)
    reviews = parse_reviews_tsv(raw)
    if not reviews:
        raise LoadError(f"No reviews found in {source}")
    logger.info("Loaded reviews: count=%s source=%s", len(reviews), source)
    return reviews


def parse_reviews_tsv(raw: str) -> list[str]:
    """
    Raises:
        LoadError: header row lacks a "text" column
    """
    reader = csv.DictReader(io.StringIO(raw), delimiter="\t", quoting=csv.QUOTE_NONE)
    if reader.fieldnames is None:
        return []
    if TEXT_COLUMN not in reader.fieldnames:
        raise LoadError(f'Reviews file has no "{TEXT_COLUMN}" column')

    reviews: list[str] = []
    for row in reader:
        text = row.get(TEXT_COLUMN)
        if isinstance(text, str) and text.strip():
            reviews.append(text)
    return reviews


def _read_source(source: str, http: HttpClient) -> str:
    if source.startswith(("http://", "https://")):
        try:
            return http.get_text(source)
        except requests.RequestException as e:
            status = getattr(e.response, "status_code", None)
            detail = f"HTTP {status}" if status else str(e)
            raise LoadError(f"{detail} loading {source}") from e

    try:
        return Path(source).read_text(encoding="utf-8")
    except OSError as e:
        raise LoadError(f"Cannot read reviews file {source}: {e}") from e
