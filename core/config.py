"""Configuration loader -- reads config.yaml + .env, validates with Pydantic.

Resolves ${ENV_VAR} references in YAML values from environment variables.
The resulting AppConfig is passed explicitly to every component that needs
it; nothing below main.py reads the environment.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from core.duration import to_seconds

logger = logging.getLogger(__name__)

# Default home directory for config.yaml and .env
DEFAULT_HOME = Path.home() / ".marketbrief"

_ENV_PATTERN = re.compile(r"\$\{(\w+)\}")


def _resolve_env_vars(value: Any) -> Any:
    """Recursively resolve ${ENV_VAR} references in config values.

    Unset variables resolve to an empty string so optional credentials
    simply read as "not configured".
    """
    if isinstance(value, str):
        def replacer(match: re.Match) -> str:
            var_name = match.group(1)
            env_value = os.environ.get(var_name)
            if env_value is None:
                logger.warning("Environment variable %s not set", var_name)
                return ""
            return env_value
        return _ENV_PATTERN.sub(replacer, value)
    elif isinstance(value, dict):
        return {k: _resolve_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_resolve_env_vars(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# Config models (Pydantic)
# ---------------------------------------------------------------------------

class ServerConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = 8321


class MarketDataConfig(BaseModel):
    """Static source definitions: which instruments each fetcher covers."""

    timeout: float = 10.0
    indices: dict[str, str] = Field(default_factory=lambda: {
        "^GSPC": "S&P 500",
        "^DJI": "Dow Jones",
        "^IXIC": "NASDAQ",
        "^RUT": "Russell 2000",
        "^VIX": "VIX",
    })
    global_indices: dict[str, str] = Field(default_factory=lambda: {
        "^FTSE": "FTSE 100",
        "^GDAXI": "DAX",
        "^FCHI": "CAC 40",
        "^N225": "Nikkei 225",
        "^HSI": "Hang Seng",
        "000001.SS": "Shanghai Composite",
    })
    crypto: dict[str, str] = Field(default_factory=lambda: {
        "BTC-USD": "Bitcoin",
        "ETH-USD": "Ethereum",
        "SOL-USD": "Solana",
        "BNB-USD": "BNB",
        "XRP-USD": "XRP",
    })
    forex: dict[str, str] = Field(default_factory=lambda: {
        "EURUSD=X": "EUR/USD",
        "GBPUSD=X": "GBP/USD",
        "USDJPY=X": "USD/JPY",
        "USDCHF=X": "USD/CHF",
        "AUDUSD=X": "AUD/USD",
        "USDCAD=X": "USD/CAD",
    })
    commodities: dict[str, str] = Field(default_factory=lambda: {
        "GC=F": "Gold",
        "SI=F": "Silver",
        "CL=F": "Crude Oil",
        "NG=F": "Natural Gas",
        "HG=F": "Copper",
    })
    movers_universe: list[str] = Field(default_factory=lambda: [
        "AAPL", "MSFT", "GOOGL", "AMZN", "META", "NVDA", "TSLA",
        "AMD", "INTC", "JPM", "BAC", "GS", "V", "MA",
        "UNH", "JNJ", "PFE", "XOM", "CVX", "WMT", "HD", "COST",
    ])
    movers_limit: int = 5
    breadth_universe: list[str] = Field(default_factory=lambda: [
        "AAPL", "MSFT", "GOOGL", "AMZN", "NVDA", "META", "TSLA",
        "JPM", "BAC", "WFC", "GS", "MS",
        "UNH", "JNJ", "PFE", "ABBV", "MRK",
        "WMT", "HD", "KO", "PEP", "MCD",
        "CAT", "BA", "GE", "HON", "UPS",
        "XOM", "CVX", "COP", "SLB",
        "DIS", "NFLX", "CMCSA", "VZ", "T",
        "LIN", "APD", "ECL",
        "AMT", "PLD", "EQIX",
        "NEE", "DUK", "SO",
    ])
    benchmark_symbol: str = "^GSPC"
    benchmark_range: str = "6mo"
    news_feeds: list[str] = Field(default_factory=lambda: [
        "https://feeds.finance.yahoo.com/rss/2.0/headline?s=AAPL,MSFT,GOOGL,AMZN,NVDA,TSLA,META&region=US&lang=en-US",
        "https://feeds.finance.yahoo.com/rss/2.0/headline?s=SPY,QQQ,DIA,IWM&region=US&lang=en-US",
        "https://feeds.marketwatch.com/marketwatch/topstories/",
    ])
    news_limit: int = 20

    @field_validator("timeout", mode="before")
    @classmethod
    def _parse_timeout(cls, value: Any) -> float:
        return to_seconds(value)


class EconomicDataConfig(BaseModel):
    api_key: str = ""
    base_url: str = "https://api.stlouisfed.org/fred/series/observations"
    series: dict[str, str] = Field(default_factory=lambda: {
        "A191RL1Q225SBEA": "GDP Growth Rate",
        "UNRATE": "Unemployment Rate",
        "CPIAUCSL": "Inflation Rate (CPI)",
        "FEDFUNDS": "Federal Funds Rate",
        "DGS10": "10-Year Treasury Yield",
        "UMCSENT": "Consumer Sentiment",
    })


class AIConfig(BaseModel):
    """Narrative model parameters. Fixed for every report request."""

    api_key: str = ""
    model: str = "openai/gpt-4o"
    base_url: str = "https://openrouter.ai/api/v1/chat/completions"
    temperature: float = 0.4
    max_tokens: int = 2000
    timeout: float = 45.0
    site_name: str = "MarketBrief"
    site_url: str = "http://localhost:8321"

    @field_validator("timeout", mode="before")
    @classmethod
    def _parse_timeout(cls, value: Any) -> float:
        return to_seconds(value)


class ReportConfig(BaseModel):
    cache_ttl: float = 900.0

    @field_validator("cache_ttl", mode="before")
    @classmethod
    def _parse_ttl(cls, value: Any) -> float:
        return to_seconds(value)


class LoggingConfig(BaseModel):
    level: str = "INFO"


class AppConfig(BaseModel):
    """Top-level application configuration."""

    home_dir: str = str(DEFAULT_HOME)
    server: ServerConfig = Field(default_factory=ServerConfig)
    market_data: MarketDataConfig = Field(default_factory=MarketDataConfig)
    economic_data: EconomicDataConfig = Field(default_factory=EconomicDataConfig)
    ai: AIConfig = Field(default_factory=AIConfig)
    report: ReportConfig = Field(default_factory=ReportConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def home_path(self) -> Path:
        """Resolved home directory as a Path."""
        return Path(self.home_dir).expanduser()


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

# Credentials commonly provided only through the environment.
_ENV_FALLBACKS = {
    ("ai", "api_key"): "OPENROUTER_API_KEY",
    ("economic_data", "api_key"): "FRED_API_KEY",
}


def load_config(
    config_path: str | Path | None = None,
    env_path: str | Path | None = None,
) -> AppConfig:
    """Load configuration from YAML + .env files.

    1. Load .env into environment variables
    2. Load config.yaml and resolve ${ENV_VAR} references
    3. Fill API keys left empty from OPENROUTER_API_KEY / FRED_API_KEY
    4. Validate against Pydantic models
    """
    home = Path(os.environ.get("MARKETBRIEF_HOME", str(DEFAULT_HOME))).expanduser()

    if env_path is None:
        env_path = home / ".env"
    if config_path is None:
        config_path = home / "config.yaml"

    env_path = Path(env_path)
    config_path = Path(config_path)

    # Load .env
    if env_path.exists():
        load_dotenv(env_path)
        logger.info("Loaded environment from %s", env_path)
    else:
        logger.debug("No .env file at %s", env_path)

    # Load config.yaml
    raw_config: dict = {}
    if config_path.exists():
        with open(config_path) as f:
            raw_config = yaml.safe_load(f) or {}
        logger.info("Loaded config from %s", config_path)
    else:
        logger.warning("No config file at %s, using defaults", config_path)

    resolved = _resolve_env_vars(raw_config)

    for (section, key), var_name in _ENV_FALLBACKS.items():
        block = resolved.get(section) or {}
        resolved[section] = block
        if not block.get(key) and os.environ.get(var_name):
            block[key] = os.environ[var_name]

    if "MARKETBRIEF_HOME" in os.environ:
        resolved["home_dir"] = os.environ["MARKETBRIEF_HOME"]

    return AppConfig(**resolved)
