"""Configuration system using pydantic-settings with environment variable loading."""

from decimal import Decimal
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

#: Kline intervals accepted by Binance's REST and WebSocket APIs.
KlineInterval = Literal[
    "1m", "3m", "5m", "15m", "30m",
    "1h", "2h", "4h", "6h", "8h", "12h",
    "1d", "3d", "1w", "1M",
]


class ExchangeSettings(BaseSettings):
    """Binance exchange connection settings."""

    model_config = SettingsConfigDict(env_prefix="EXCHANGE_")

    exchange_id: Literal["binance", "binanceus"] = "binanceus"
    api_key: SecretStr = SecretStr("")
    api_secret: SecretStr = SecretStr("")
    ws_base_url: str = "wss://stream.binance.us:9443"


class TradingSettings(BaseSettings):
    """Trading pair, signal thresholds and order parameters."""

    model_config = SettingsConfigDict(env_prefix="TRADING_")

    mode: Literal["paper", "live"] = "paper"
    symbol: str = "BNB/USDT"
    interval: KlineInterval = "1h"
    rsi_buy: Decimal = Decimal("30")  # arm buy side below this RSI
    rsi_sell: Decimal = Decimal("70")  # arm sell side above this RSI
    order_quantity: Decimal = Decimal("0.1")  # base asset, rounded to lot step
    confirmations_required: int = 2


class IndicatorSettings(BaseSettings):
    """Indicator windows and streaming pipeline tuning.

    ``fanout`` selects how paired EMA engines obtain their candles: one
    upstream unified stream broadcast to every engine (True) or an
    independent historical fetch plus live subscription per engine (False).
    """

    model_config = SettingsConfigDict(env_prefix="INDICATOR_")

    rsi_window: int = 14
    macd_fast: int = 12
    macd_slow: int = 26
    rsi_epsilon: Decimal = Decimal("0.000000001")  # stands in for a zero gain/loss
    queue_capacity: int = Field(default=100, gt=0)  # asyncio treats <= 0 as unbounded
    history_limit: int = 500
    fanout: bool = True


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"
    exchange: ExchangeSettings = ExchangeSettings()
    trading: TradingSettings = TradingSettings()
    indicator: IndicatorSettings = IndicatorSettings()
