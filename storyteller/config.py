"""Hub configuration (providers, conversations, signal bridge, webhooks).

Settings are a tree of pydantic models. load_settings() reads an optional
JSON file (stored keys override defaults and nested sections fill in whatever
the file leaves out), then applies environment overrides for secrets and
endpoints. Environment variables may come from a .env file.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from storyteller.llm import ProviderId
from storyteller.models import WebhookEvent


# ── LLM providers ────────────────────────────────────────


class OllamaSettings(BaseModel):
    endpoint: str = "http://localhost:11434"
    model: str = "mistral:7b-instruct"
    timeout: float = Field(default=60.0, ge=10, le=300)
    temperature: float = 0.7
    top_p: float = 0.9
    repeat_penalty: float = 1.1
    num_predict: int = 60  # ~1-2 sentences


class ClaudeSettings(BaseModel):
    api_key: str = ""
    model: str = "claude-sonnet-4-20250514"
    api_url: str = "https://api.anthropic.com/v1/messages"
    api_version: str = "2023-06-01"
    max_tokens: int = 1024


class OpenAISettings(BaseModel):
    api_key: str = ""
    model: str = "gpt-4o"
    api_url: str = "https://api.openai.com/v1/chat/completions"
    max_tokens: int = 1024
    temperature: float = 0.8


class LLMSettings(BaseModel):
    provider: ProviderId = ProviderId.OLLAMA
    response_timeout: float = Field(default=30.0, ge=5, le=120)
    max_concurrent_requests: int = Field(default=4, ge=1, le=64)
    ollama: OllamaSettings = Field(default_factory=OllamaSettings)
    claude: ClaudeSettings = Field(default_factory=ClaudeSettings)
    openai: OpenAISettings = Field(default_factory=OpenAISettings)


# ── Conversations ────────────────────────────────────────


class ConversationSettings(BaseModel):
    max_history: int = Field(default=20, ge=5, le=100)
    persist: bool = True
    max_persisted_messages: int = Field(default=50, ge=10, le=200)
    min_seconds_between_messages: float = Field(default=1.0, ge=0, le=10)
    conversation_timeout: float = 60.0
    include_world_context: bool = True
    max_knowledge_entries: int = Field(default=3, ge=0, le=10)


# ── Signal bridge + webhooks ─────────────────────────────


class BridgeSettings(BaseModel):
    enabled: bool = True
    tick_seconds: float = Field(default=0.05, gt=0)
    scan_interval_ticks: int = Field(default=10, ge=1, le=200)
    detection_radius: int = Field(default=5, ge=1, le=16)
    cooldown_ticks: int = Field(default=40, ge=0, le=200)
    emit_on_events: bool = True


def _empty_urls() -> dict[WebhookEvent, str]:
    return {event: "" for event in WebhookEvent}


class WebhookSettings(BaseModel):
    enabled: bool = True
    timeout_ms: int = Field(default=5000, ge=1000, le=30000)
    urls: dict[WebhookEvent, str] = Field(default_factory=_empty_urls)

    def url_for(self, event: WebhookEvent) -> str:
        return self.urls.get(event, "")


class Settings(BaseModel):
    data_dir: Path = Path("data")
    llm: LLMSettings = Field(default_factory=LLMSettings)
    conversations: ConversationSettings = Field(default_factory=ConversationSettings)
    bridge: BridgeSettings = Field(default_factory=BridgeSettings)
    webhooks: WebhookSettings = Field(default_factory=WebhookSettings)

    @property
    def conversations_dir(self) -> Path:
        return self.data_dir / "conversations"


# ── Loading ──────────────────────────────────────────────

# env var → (section path, key)
_ENV_OVERRIDES: dict[str, tuple[tuple[str, ...], str]] = {
    "STORYTELLER_PROVIDER": (("llm",), "provider"),
    "OLLAMA_ENDPOINT": (("llm", "ollama"), "endpoint"),
    "OLLAMA_MODEL": (("llm", "ollama"), "model"),
    "CLAUDE_API_KEY": (("llm", "claude"), "api_key"),
    "CLAUDE_MODEL": (("llm", "claude"), "model"),
    "OPENAI_API_KEY": (("llm", "openai"), "api_key"),
    "OPENAI_MODEL": (("llm", "openai"), "model"),
    "STORYTELLER_DATA_DIR": ((), "data_dir"),
}


def load_settings(path: Path | None = None, *, env_file: Path | None = None) -> Settings:
    """Read settings from `path` (if it exists) and apply environment overrides."""
    load_dotenv(env_file)
    stored: dict = {}
    if path is not None and path.is_file():
        stored = json.loads(path.read_text())

    for var, (section, key) in _ENV_OVERRIDES.items():
        value = os.getenv(var)
        if not value:
            continue
        target = stored
        for part in section:
            target = target.setdefault(part, {})
        target[key] = value.strip().lower() if key == "provider" else value

    return Settings.model_validate(stored)


def save_settings(settings: Settings, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(settings.model_dump_json(indent=2))


def configure_logging(debug: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
