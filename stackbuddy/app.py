"""
StackBuddy Application - Single entry point for the forms assistant.

Usage:
    from stackbuddy import StackBuddy

    app = StackBuddy("config.yaml")

    # One-shot answer
    reply = await app.chat("Give me an overview of form 12345")

    # Monitored conversation turn
    session = await app.handle_message(
        "conv-1", envelope, callbacks, get_history, get_unread, deliver
    )
"""

import logging
import os
import re
from typing import Any, Dict, Optional, Sequence, Tuple

import yaml

from .forms import FormsApiClient, FormsApiConfig, FormsService, build_forms_catalog
from .intent import IntentResult
from .llm import LLMConfig, OpenAIClient
from .models import MessageEnvelope
from .orchestrator import AgentConfig, FormsAgent, MonitorConfig, MonitoringSession
from .protocols import DeliveryCallback, HistoryEntry, HistoryProvider, UnreadMessageQuery
from .streaming import DelayedResponse, StreamCallbacks

logger = logging.getLogger(__name__)

SUPPORTED_PROVIDERS = ("openai",)

_KNOWN_KEYS = {
    "llm": {"provider", "model", "api_key", "base_url", "temperature", "max_tokens", "timeout", "max_retries"},
    "forms": {"base_url", "api_key", "timeout"},
    "monitor": {"poll_interval", "no_tool_timeout", "session_timeout", "emit_status_updates"},
    "agent": {"name", "system_prompt", "enabled_tools", "max_tokens"},
}


def _load_config(path: str) -> dict:
    """Read YAML config file with ${VAR} environment variable substitution."""
    with open(path, "r", encoding="utf-8") as f:
        raw = f.read()

    # Replace ${VAR} with environment variable values
    def _replace_env(match):
        var_name = match.group(1)
        value = os.environ.get(var_name)
        if value is None:
            raise ValueError(
                f"Environment variable '{var_name}' not set "
                f"(referenced in config file '{path}')"
            )
        return value

    resolved = re.sub(r"\$\{(\w+)\}", _replace_env, raw)
    return yaml.safe_load(resolved) or {}


def _warn_unknown_keys(cfg: Dict[str, Any]) -> None:
    for section, value in cfg.items():
        if section not in _KNOWN_KEYS:
            logger.warning(f"Ignoring unknown config section: '{section}'")
            continue
        if not isinstance(value, dict):
            continue
        for key in value:
            if key not in _KNOWN_KEYS[section]:
                logger.warning(f"Ignoring unknown config key: '{section}.{key}'")


def _section(cfg: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = cfg.get(name) or {}
    if not isinstance(value, dict):
        raise ValueError(f"Config section '{name}' must be a mapping")
    return value


class StackBuddy:
    """
    StackBuddy application entry point.

    Sync constructor reads and validates config; clients are created on the
    first call that needs them.

    Args:
        config: Path to YAML configuration file, or an already loaded dict.

    Example:
        app = StackBuddy("config.yaml")
        reply = await app.chat("Remove the logic from form 12345")
    """

    def __init__(self, config):
        self._config = config if isinstance(config, dict) else _load_config(config)
        _warn_unknown_keys(self._config)

        llm_cfg = _section(self._config, "llm")
        provider = llm_cfg.get("provider", "openai")
        if provider not in SUPPORTED_PROVIDERS:
            raise ValueError(
                f"Unsupported llm.provider '{provider}' (supported: {', '.join(SUPPORTED_PROVIDERS)})"
            )

        # Parsed eagerly so bad values fail at startup
        self.monitor_config = MonitorConfig.from_dict(_section(self._config, "monitor"))
        agent_cfg = _section(self._config, "agent")
        self.agent_config = AgentConfig.from_dict(agent_cfg)
        if "max_tokens" not in agent_cfg and "max_tokens" in llm_cfg:
            self.agent_config.max_tokens = int(llm_cfg["max_tokens"])

        self._llm_client: Optional[OpenAIClient] = None
        self._forms_client: Optional[FormsApiClient] = None
        self._agent: Optional[FormsAgent] = None

    def _build_llm_config(self) -> LLMConfig:
        llm_cfg = _section(self._config, "llm")
        defaults = LLMConfig()
        return LLMConfig(
            api_key=llm_cfg.get("api_key"),
            model=llm_cfg.get("model", defaults.model),
            base_url=llm_cfg.get("base_url"),
            temperature=float(llm_cfg.get("temperature", defaults.temperature)),
            max_tokens=int(llm_cfg.get("max_tokens", self.agent_config.max_tokens)),
            timeout=float(llm_cfg.get("timeout", defaults.timeout)),
            max_retries=int(llm_cfg.get("max_retries", defaults.max_retries)),
        )

    def _ensure_initialized(self) -> FormsAgent:
        """Lazy initialization, runs once on first use."""
        if self._agent is not None:
            return self._agent

        # 1. LLM client
        llm_config = self._build_llm_config()
        self._llm_client = OpenAIClient(config=llm_config)
        logger.info(f"LLM client: provider=openai, model={llm_config.model}")

        # 2. Forms API client and tools
        forms_cfg = _section(self._config, "forms")
        self._forms_client = FormsApiClient(FormsApiConfig.from_dict(forms_cfg))
        catalog = build_forms_catalog(FormsService(self._forms_client))
        logger.info(f"Registered {len(catalog)} forms tools")

        # 3. Agent
        self._agent = FormsAgent(
            self._llm_client,
            catalog,
            config=self.agent_config,
            monitor_config=self.monitor_config,
        )
        return self._agent

    @property
    def agent(self) -> FormsAgent:
        return self._ensure_initialized()

    # ── Public API ──

    async def chat(self, text: str, history: Sequence[HistoryEntry] = ()) -> str:
        """Answer one message without monitoring."""
        envelope = MessageEnvelope.request(text)
        response = await self.agent.accept_immediate(envelope, history)
        return response.text

    async def handle_message(
        self,
        conversation_id: str,
        envelope: MessageEnvelope,
        callbacks: Optional[StreamCallbacks] = None,
        get_history: Optional[HistoryProvider] = None,
        get_unread: Optional[UnreadMessageQuery] = None,
        deliver: Optional[DeliveryCallback] = None,
        intent: Optional[IntentResult] = None,
    ) -> MonitoringSession:
        return await self.agent.handle_message(
            conversation_id, envelope, callbacks, get_history, get_unread, deliver, intent
        )

    async def accept_multi_part(
        self,
        envelope: MessageEnvelope,
        history: Sequence[HistoryEntry] = (),
    ) -> Tuple[MessageEnvelope, DelayedResponse]:
        return await self.agent.accept_multi_part(envelope, history)

    async def close(self) -> None:
        """Stop active sessions and release clients."""
        if self._agent is not None:
            await self._agent.close()
        if self._forms_client is not None:
            await self._forms_client.close()
        if self._llm_client is not None:
            await self._llm_client.close()
        self._agent = None
        self._forms_client = None
        self._llm_client = None

    async def __aenter__(self) -> "StackBuddy":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
