"""Application configuration for the LLM usage dashboard."""

from __future__ import annotations

from pathlib import Path

OPENAI_API_BASE_URL = "https://api.openai.com/v1"
ANTHROPIC_API_BASE_URL = "https://api.anthropic.com/v1"
OPENROUTER_API_BASE_URL = "https://openrouter.ai/api/v1"
ANTHROPIC_VERSION = "2023-06-01"

OPENAI_USAGE_ENDPOINT = "/usage"
OPENAI_MODELS_ENDPOINT = "/models"
ANTHROPIC_MODELS_ENDPOINT = "/models"
OPENROUTER_KEY_ENDPOINT = "/auth/key"

ANTHROPIC_USAGE_NOTE = "Anthropic usage tracking requires session history parsing"

REQUEST_TIMEOUT_SECONDS = 10.0
MAX_RETRIES = 2
REFRESH_INTERVAL_SECONDS = 300
HISTORY_LIMIT = 100

COST_ALERT_THRESHOLD_USD = 100.0
BILLING_PROGRESS_ALERT_PERCENT = 80

DEFAULT_BILLING_CYCLE_DAY = 1
DEFAULT_DASHBOARD_PASSWORD = "changeme"

PROJECT_ROOT = Path(__file__).resolve().parent.parent
PRICING_YAML = PROJECT_ROOT / "data" / "pricing.yaml"
DEFAULT_SETTINGS_FILE = PROJECT_ROOT / "settings.json"

ENV_DASHBOARD_PASSWORD = "DASHBOARD_PASSWORD"
ENV_OPENAI_API_KEY = "OPENAI_API_KEY"
ENV_ANTHROPIC_API_KEY = "ANTHROPIC_API_KEY"
ENV_OPENROUTER_API_KEY = "OPENROUTER_API_KEY"
ENV_OPENAI_BILLING_DATE = "OPENAI_BILLING_DATE"
ENV_ANTHROPIC_BILLING_DATE = "ANTHROPIC_BILLING_DATE"
ENV_OPENROUTER_BILLING_DATE = "OPENROUTER_BILLING_DATE"
ENV_ENCRYPTION_KEY = "ENCRYPTION_KEY"
ENV_SETTINGS_FILE = "SETTINGS_FILE"
ENV_LOG_LEVEL = "LOG_LEVEL"

PROVIDER_LABELS = {
    "openai": "OpenAI",
    "anthropic": "Anthropic",
    "openrouter": "OpenRouter",
}
