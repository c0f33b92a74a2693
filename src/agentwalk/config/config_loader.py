"""Configuration loading utilities."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from binance.client import Client
from dotenv import load_dotenv

DEFAULT_CONFIG_FILE = "config.txt"
SUPPORTED_MODES = ("paper",)


def _load_kv_file(path: Path) -> Dict[str, str]:
    """Reads key=value pairs ignoring comments and blank lines."""
    data: Dict[str, str] = {}
    if not path.exists():
        return data

    with path.open("r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, value = line.split("=", 1)
            data[key.strip()] = value.strip()
    return data


def _env(key: str) -> str:
    """Returns the first non-empty env var among KEY / AGENTWALK_KEY."""
    for env_key in (key.upper(), f"AGENTWALK_{key.upper()}"):
        val = os.getenv(env_key)
        if val is not None and str(val).strip() != "":
            return val
    return ""


@dataclass
class AppConfig:
    """In-memory configuration for one paper-trading session."""

    anthropic_api_key: str = ""
    binance_api_key: str = ""
    binance_api_secret: str = ""
    telegram_token: str = ""
    telegram_chat_id: str = ""

    symbol: str = "BTCUSDT"
    mode: str = "paper"
    agent_name: str = "Agent-1"
    initial_balance: float = 10_000.0
    slippage: float = 0.001  # fraction, 0.001 = 0.1%
    taker_fee: float = 0.0005
    tick_interval_ms: int = 5000
    cooldown_ms: int = 5000
    price_poll_interval_ms: int = 1000
    anthropic_model: str = "claude-sonnet-4-5"
    decision_timeout: Optional[float] = None  # seconds; None = SDK default
    system_prompt_file: str = ""
    dashboard_enabled: bool = False
    dashboard_port: int = 8000
    db_path: str = "agentwalk.db"
    trades_csv: str = "trades.csv"

    @classmethod
    def from_sources(cls, config_path: str | None = None) -> "AppConfig":
        """
        Loads configuration with the following precedence:
        1) Environment variables (.env is loaded automatically)
        2) key=value file (default: config.txt or path passed)

        Environment vars accepted: ANTHROPIC_API_KEY, BINANCE_API_KEY, BINANCE_API_SECRET,
        TELEGRAM_TOKEN, TELEGRAM_CHAT_ID, SYMBOL, MODE, AGENT_NAME, INITIAL_BALANCE,
        SLIPPAGE, TAKER_FEE, TICK_INTERVAL_MS, COOLDOWN_MS, PRICE_POLL_INTERVAL_MS,
        ANTHROPIC_MODEL, DECISION_TIMEOUT, SYSTEM_PROMPT_FILE, DASHBOARD_ENABLED,
        DASHBOARD_PORT, DB_PATH, TRADES_CSV. Each may also be prefixed with AGENTWALK_.
        """
        load_dotenv()

        cfg_path = (
            Path(config_path)
            if config_path
            else Path(os.getenv("AGENTWALK_CONFIG") or DEFAULT_CONFIG_FILE)
        )
        file_data = _load_kv_file(cfg_path)

        def get_str(key: str, default: str = "") -> str:
            return _env(key) or file_data.get(key, default)

        def get_float(key: str, default: float) -> float:
            try:
                return float(get_str(key, str(default)))
            except ValueError:
                return default

        def get_int(key: str, default: int) -> int:
            try:
                return int(get_str(key, str(default)))
            except ValueError:
                return default

        def get_bool(key: str, default: bool) -> bool:
            raw = get_str(key, str(default)).lower()
            return raw in ("1", "true", "yes", "y", "on")

        def get_optional_float(key: str) -> Optional[float]:
            raw = get_str(key, "")
            if raw.strip().lower() in ("", "none", "0"):
                return None
            try:
                return float(raw)
            except ValueError:
                return None

        return cls(
            anthropic_api_key=get_str("anthropic_api_key"),
            binance_api_key=get_str("binance_api_key"),
            binance_api_secret=get_str("binance_api_secret"),
            telegram_token=get_str("telegram_token"),
            telegram_chat_id=get_str("telegram_chat_id"),
            symbol=get_str("symbol", "BTCUSDT").strip().upper(),
            mode=get_str("mode", "paper").lower(),
            agent_name=get_str("agent_name", "Agent-1"),
            initial_balance=get_float("initial_balance", 10_000.0),
            slippage=get_float("slippage", 0.001),
            taker_fee=get_float("taker_fee", 0.0005),
            tick_interval_ms=get_int("tick_interval_ms", 5000),
            cooldown_ms=get_int("cooldown_ms", 5000),
            price_poll_interval_ms=get_int("price_poll_interval_ms", 1000),
            anthropic_model=get_str("anthropic_model", "claude-sonnet-4-5"),
            decision_timeout=get_optional_float("decision_timeout"),
            system_prompt_file=get_str("system_prompt_file"),
            dashboard_enabled=get_bool("dashboard_enabled", False),
            dashboard_port=get_int("dashboard_port", 8000),
            db_path=get_str("db_path", "agentwalk.db"),
            trades_csv=get_str("trades_csv", "trades.csv"),
        )

    def validate(self) -> None:
        if self.mode not in SUPPORTED_MODES:
            raise ValueError(f"Unsupported mode: {self.mode} (supported: {', '.join(SUPPORTED_MODES)})")
        if not self.anthropic_api_key:
            raise ValueError("ANTHROPIC_API_KEY is required")
        if self.initial_balance < 0:
            raise ValueError(f"initial_balance must be >= 0, got {self.initial_balance}")
        if self.cooldown_ms < 0:
            raise ValueError(f"cooldown_ms must be >= 0, got {self.cooldown_ms}")
        if self.tick_interval_ms <= 0:
            raise ValueError(f"tick_interval_ms must be > 0, got {self.tick_interval_ms}")

    def load_system_prompt(self) -> Optional[str]:
        if not self.system_prompt_file:
            return None
        return Path(self.system_prompt_file).read_text(encoding="utf-8")

    def get_client(self) -> Client:
        """Binance REST client used for price polling (public endpoints work without keys)."""
        return Client(self.binance_api_key or None, self.binance_api_secret or None)
