from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class AnalyzerSettings(BaseSettings):
    """
    Environment-driven settings for the review sentiment analyzer.
    """

    model_config = SettingsConfigDict(env_prefix="", env_file=".env", extra="ignore")

    # ---- Dataset ----
    # Local path or http(s) URL of a TSV file with a "text" column
    reviews_source: str = Field(default="reviews_test.tsv", alias="REVIEWS_SOURCE")

    # ---- Mode ----
    # "local" | "remote"; starting mode before any user switch
    analyzer_mode: str = Field(default="local", alias="ANALYZER_MODE")

    # ---- Local model ----
    local_model_id: str = Field(
        default="distilbert-base-uncased-finetuned-sst-2-english",
        alias="LOCAL_MODEL_ID",
    )
    local_max_chars: int = Field(default=512, alias="LOCAL_MAX_CHARS")
    # Device: "auto" | "cpu" | "cuda"
    local_device: str = Field(default="auto", alias="LOCAL_DEVICE")

    # ---- Remote model (OpenRouter chat completions) ----
    openrouter_base_url: str = Field(default="https://openrouter.ai/api/v1", alias="OPENROUTER_BASE_URL")
    openrouter_model: str = Field(default="google/gemini-3-flash-preview", alias="OPENROUTER_MODEL")
    openrouter_max_tokens: int = Field(default=30, alias="OPENROUTER_MAX_TOKENS")
    openrouter_temperature: float = Field(default=0.0, alias="OPENROUTER_TEMPERATURE")
    # Seeds the preference store if set; never logged
    openrouter_api_key: str = Field(default="", alias="OPENROUTER_API_KEY")

    # ---- HTTP ----
    request_timeout_sec: float = Field(default=30.0, alias="ANALYZER_REQUEST_TIMEOUT_SEC")
    user_agent: str = Field(default="review-sentiment-analyzer/0.1", alias="ANALYZER_USER_AGENT")

    # ---- Preferences ----
    preferences_path: str = Field(default=".analyzer_prefs.json", alias="ANALYZER_PREFERENCES_PATH")

    # ---- Telemetry ----
    # "gas" | "kafka" | "none"
    telemetry_backend: str = Field(default="gas", alias="TELEMETRY_BACKEND")
    # Google Apps Script Web App URL ending with /exec; seeds the preference store if set
    gas_url: str = Field(default="", alias="GAS_URL")
    telemetry_timeout_sec: float = Field(default=10.0, alias="TELEMETRY_TIMEOUT_SEC")


def load_settings() -> AnalyzerSettings:
    return AnalyzerSettings()
