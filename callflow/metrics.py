from __future__ import annotations

from dataclasses import dataclass, field
from threading import Lock
from typing import Any


@dataclass
class Metrics:
    counters: dict[str, int] = field(default_factory=dict)
    histograms: dict[str, list[int]] = field(default_factory=dict)
    gauges: dict[str, int] = field(default_factory=dict)
    _lock: Lock = field(default_factory=Lock, repr=False, compare=False)

    def inc(self, name: str, value: int = 1) -> None:
        with self._lock:
            self.counters[name] = self.counters.get(name, 0) + value

    def observe(self, name: str, value: int) -> None:
        with self._lock:
            self.histograms.setdefault(name, []).append(int(value))

    def set(self, name: str, value: int) -> None:
        with self._lock:
            self.gauges[name] = int(value)

    def get(self, name: str) -> int:
        return int(self.counters.get(name, 0))

    def get_hist(self, name: str) -> list[int]:
        return list(self.histograms.get(name, []))

    def get_gauge(self, name: str) -> int:
        return int(self.gauges.get(name, 0))

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return {
                "counters": dict(self.counters),
                "histograms": {k: list(v) for k, v in self.histograms.items()},
                "gauges": dict(self.gauges),
            }


FLOW = {
    # Traversal
    "advance_total": "flow.advance_total",
    "session_started_total": "flow.session_started_total",
    "session_reset_total": "flow.session_reset_total",
    "hotline_override_total": "flow.hotline_override_total",
    "fallback_used_total": "flow.fallback_used_total",
    "silence_reask_total": "flow.silence_reask_total",
    "advance_after_terminal_total": "flow.advance_after_terminal_total",
    "sessions_active": "flow.sessions_active",
    "line_chars": "flow.line_chars",
    # Guardrails
    "value_window_substitution_total": "guard.value_window_substitution_total",
    "value_window_fail_open_total": "guard.value_window_fail_open_total",
    "tier_violation_total": "guard.tier_violation_total",
    "discount_blocked_total": "guard.discount_blocked_total",
    "price_objection_total": "guard.price_objection_total",
    "forbidden_phrase_rewrite_total": "guard.forbidden_phrase_rewrite_total",
    "shipping_disclosure_appended_total": "guard.shipping_disclosure_appended_total",
    "payment_gate_substitution_total": "guard.payment_gate_substitution_total",
    # Payments
    "payment_accepted_total": "payment.accepted_total",
    "payment_rejected_total": "payment.rejected_total",
}
