from __future__ import annotations

import os
from dataclasses import dataclass


def _getenv_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "t", "yes", "y", "on"}


def _getenv_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _getenv_str(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw


def _getenv_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


@dataclass(frozen=True, slots=True)
class FlowConfig:
    # Traversal
    speak_first: bool = True
    start_node_id: str = "start"
    hotline_node_id: str = "hotline_offer"
    fallback_node_id: str = "micro_resume"
    value_continuation_node_id: str = "continue_value"
    payment_node_id: str = "payment_capture"
    max_reprompts: int = 2

    # Value window (rapport-building before any price is spoken)
    value_window_min_ms: int = 6 * 60 * 1000
    value_window_max_ms: int = 10 * 60 * 1000

    # Speech pacing
    health_pause_ms: int = 2500
    numeric_rate_slowdown_pct: int = 10

    # Business constants
    hotline_number: str = "1-866-379-5131"
    price_annual: float = 499.0
    price_six_month: float = 299.0
    price_three_month: float = 199.0
    price_single: float = 79.0
    max_discount_percent: int = 15

    # Session bookkeeping
    transcript_max_utterances: int = 200

    # Observability
    structured_logging: bool = True

    # Optional authored graph (JSON); empty uses the built-in script
    flow_graph_path: str = ""

    def prices(self) -> dict[str, float]:
        return {
            "annual": self.price_annual,
            "six_month": self.price_six_month,
            "three_month": self.price_three_month,
            "single": self.price_single,
        }

    @staticmethod
    def from_env() -> "FlowConfig":
        value_min_ms = int(_getenv_float("VALUE_MIN_MINUTES", 6.0) * 60_000)
        value_max_ms = int(_getenv_float("VALUE_MAX_MINUTES", 10.0) * 60_000)
        if value_min_ms < 0:
            value_min_ms = 0
        if value_max_ms < value_min_ms:
            value_max_ms = value_min_ms

        max_discount = _getenv_int("MAX_DISCOUNT_PERCENT", 15)
        if max_discount < 0 or max_discount > 100:
            max_discount = 15

        return FlowConfig(
            speak_first=_getenv_bool("FLOW_SPEAK_FIRST", True),
            start_node_id=_getenv_str("FLOW_START_NODE", "start"),
            hotline_node_id=_getenv_str("FLOW_HOTLINE_NODE", "hotline_offer"),
            fallback_node_id=_getenv_str("FLOW_FALLBACK_NODE", "micro_resume"),
            value_continuation_node_id=_getenv_str("FLOW_VALUE_CONTINUATION_NODE", "continue_value"),
            payment_node_id=_getenv_str("FLOW_PAYMENT_NODE", "payment_capture"),
            max_reprompts=max(0, _getenv_int("FLOW_MAX_REPROMPTS", 2)),
            value_window_min_ms=value_min_ms,
            value_window_max_ms=value_max_ms,
            health_pause_ms=max(0, _getenv_int("HEALTH_PAUSE_MS", 2500)),
            numeric_rate_slowdown_pct=max(0, _getenv_int("NUMERIC_RATE_SLOWDOWN_PCT", 10)),
            hotline_number=_getenv_str("HOTLINE_NUMBER", "1-866-379-5131"),
            price_annual=_getenv_float("PRICE_ANNUAL", 499.0),
            price_six_month=_getenv_float("PRICE_SIX_MONTH", 299.0),
            price_three_month=_getenv_float("PRICE_THREE_MONTH", 199.0),
            price_single=_getenv_float("PRICE_SINGLE", 79.0),
            max_discount_percent=max_discount,
            transcript_max_utterances=max(1, _getenv_int("TRANSCRIPT_MAX_UTTERANCES", 200)),
            structured_logging=_getenv_bool("FLOW_STRUCTURED_LOGGING", True),
            flow_graph_path=_getenv_str("FLOW_GRAPH_PATH", ""),
        )
