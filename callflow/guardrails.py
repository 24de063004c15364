from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Optional

from .clock import Clock
from .config import FlowConfig
from .flow_graph import AnyNode, BranchingNode, FlowGraph, next_lower_tier, tier_index
from .intent import Intent
from .logs import log_event
from .metrics import FLOW, Metrics
from .session_store import CallSession
from .text_normalizer import SHIPPING_PHRASE, mentions_shipping_window


SHIPPING_SENTENCE = f"Delivery is in {SHIPPING_PHRASE}."

_FORBIDDEN_PHRASES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\b(?:100\s*%|100 percent|one hundred percent)\s+guaranteed\b", re.I), "backed by our satisfaction policy"),
    (re.compile(r"\bguaranteed\s+to\s+(?:cure|fix|heal|work)\b", re.I), "designed to help"),
    (re.compile(r"\bguaranteed\b", re.I), "backed by our promise"),
    (re.compile(r"\bguarantees?\b", re.I), "stand behind"),
    (re.compile(r"\b(?:will|can)\s+cure\b", re.I), "is designed to ease"),
    (re.compile(r"\bcures\b", re.I), "eases"),
    (re.compile(r"\bcure\b", re.I), "relief"),
    (re.compile(r"\brisk[-\s]free\b", re.I), "low-commitment"),
    (re.compile(r"\bno side effects\b", re.I), "a gentle formula"),
    # Internal persona labels never reach the caller.
    (re.compile(r"\brobot\s+(?:model|unit)\s+\w+\b,?", re.I), ""),
    (re.compile(r"\bas an?\s+(?:ai|robot|automated assistant)\b,?", re.I), ""),
)

_CLOSING_LINE_PAT = re.compile(
    r"\b(your order (?:is|has been) (?:confirmed|placed)|order confirmation|you're all set)\b",
    re.I,
)
_PRICE_OBJECTION_PAT = re.compile(
    r"\b(too expensive|pricey|costs too much|can't afford|cannot afford|out of budget|too much money|"
    r"fixed income|that's a lot)\b",
    re.I,
)
_SENIOR_PAT = re.compile(r"\b(senior|retired|retiree|on medicare|(?:6[5-9]|[7-9]\d) years old)\b", re.I)
_VETERAN_PAT = re.compile(r"\b(veteran|served in the (?:army|navy|marines|air force|military|coast guard))\b", re.I)

_SPACE_PAT = re.compile(r"\s+")
_SPACE_BEFORE_PUNCT_PAT = re.compile(r"\s+([,.!?])")


def _normalize_spaces(text: str) -> str:
    out = _SPACE_PAT.sub(" ", text or "").strip()
    return _SPACE_BEFORE_PUNCT_PAT.sub(r"\1", out)


def scrub_forbidden_phrases(text: str) -> tuple[str, bool]:
    out = text or ""
    changed = False
    for pat, substitute in _FORBIDDEN_PHRASES:
        new = pat.sub(substitute, out)
        if new != out:
            changed = True
            out = new
    if changed:
        out = _normalize_spaces(out)
    return out, changed


def is_closing_line(node: Optional[AnyNode], text: str) -> bool:
    if node is not None and node.closing:
        return True
    return bool(_CLOSING_LINE_PAT.search(text or ""))


def ensure_shipping_disclosure(text: str) -> tuple[str, bool]:
    if mentions_shipping_window(text):
        return text, False
    out = (text or "").rstrip()
    if out and out[-1] not in ".!?":
        out += "."
    return f"{out} {SHIPPING_SENTENCE}".strip(), True


def quote_price(base: float, discount_pct: float = 0.0, *, max_discount_pct: float = 15.0) -> float:
    pct = min(max(float(discount_pct), 0.0), float(max_discount_pct))
    return round(float(base) * (1.0 - pct / 100.0), 2)


def format_usd(amount: float) -> str:
    if float(amount).is_integer():
        return f"${int(amount)}"
    return f"${amount:.2f}"


@dataclass(frozen=True, slots=True)
class RouteDecision:
    target_id: str
    reemit: bool = False
    reason: str = "branch"


class GuardrailEngine:
    """
    Cross-cutting policy consulted on every transition and every outbound line.

    Transition rules run in a fixed order (discount, tier, value window, payment)
    so each substitute target is itself checked by the rules after it.
    """

    def __init__(self, *, graph: FlowGraph, config: FlowConfig, clock: Clock, metrics: Metrics) -> None:
        self._graph = graph
        self._cfg = config
        self._clock = clock
        self._metrics = metrics

    def _log(self, event: str, *, level: int = logging.INFO, **payload: Any) -> None:
        log_event(event, enabled=self._cfg.structured_logging, level=level, **payload)

    # Utterance signals

    def observe_utterance(self, session: CallSession, normalized: str) -> None:
        if _PRICE_OBJECTION_PAT.search(normalized) and session.objection_visit != session.visit_seq:
            session.objection_count += 1
            session.objection_visit = session.visit_seq
            self._metrics.inc(FLOW["price_objection_total"])
        if not session.is_senior and _SENIOR_PAT.search(normalized):
            session.is_senior = True
        if not session.is_veteran and _VETERAN_PAT.search(normalized):
            session.is_veteran = True

    def discount_eligible(self, session: CallSession) -> bool:
        return session.is_senior or session.is_veteran or session.objection_count >= 2

    # Value window

    def value_gate(self, session: CallSession) -> tuple[bool, bool]:
        """(open, failed_open)."""
        now = self._clock.now_ms()
        vw = session.value_window
        if vw.elapsed_ms(now) >= self._cfg.value_window_min_ms:
            return True, False
        if now - vw.started_at_ms > self._cfg.value_window_max_ms:
            return True, True
        return False, False

    def value_window_status(self, session: CallSession) -> dict[str, Any]:
        now = self._clock.now_ms()
        vw = session.value_window
        elapsed = vw.elapsed_ms(now)
        return {
            "ok": elapsed >= self._cfg.value_window_min_ms,
            "elapsed_ms": elapsed,
            "within_max": elapsed <= self._cfg.value_window_max_ms,
            "started_at_ms": vw.started_at_ms,
            "completed_at_ms": vw.completed_at_ms,
        }

    def complete_value_window(self, session: CallSession) -> None:
        if session.value_window.completed_at_ms is None:
            session.value_window.completed_at_ms = self._clock.now_ms()

    # Transitions

    def route(self, session: CallSession, node: AnyNode, intent: Intent) -> RouteDecision:
        if (
            intent == "silence"
            and not node.terminal
            and not (isinstance(node, BranchingNode) and "silence" in node.branches)
            and session.reprompts < self._cfg.max_reprompts
        ):
            session.reprompts += 1
            return RouteDecision(target_id=node.id, reemit=True, reason="silence_reask")

        target, reason = self._graph.resolve(node, intent)
        target, reason = self._enforce_discount(session, target, reason)
        target, reason = self._enforce_tier_order(session, node, intent, target, reason)
        target, reason = self._enforce_value_window(session, target, reason)
        target, reason = self._enforce_payment_gate(session, target, reason)
        return RouteDecision(target_id=target, reason=reason)

    def on_land(self, session: CallSession, node: AnyNode) -> None:
        if node.offer_tier is not None:
            session.offer_tier = node.offer_tier
        if node.is_pricing:
            self.complete_value_window(session)

    def _enforce_discount(self, session: CallSession, target_id: str, reason: str) -> tuple[str, str]:
        target = self._graph.node(target_id)
        if not target.discount or self.discount_eligible(session):
            return target_id, reason
        self._metrics.inc(FLOW["discount_blocked_total"])
        self._log(
            "discount_blocked",
            session_id=session.session_id,
            node=target_id,
            objection_count=session.objection_count,
        )
        return target.next, "discount_skipped"  # type: ignore[union-attr]

    def _enforce_tier_order(
        self,
        session: CallSession,
        node: AnyNode,
        intent: Intent,
        target_id: str,
        reason: str,
    ) -> tuple[str, str]:
        declining = node.offer_tier is not None and intent in ("no", "hesitate")
        if declining:
            floor = session.declined_tier
            if floor == "none" or tier_index(node.offer_tier) > tier_index(floor):  # type: ignore[arg-type]
                session.declined_tier = node.offer_tier  # type: ignore[assignment]

        target = self._graph.node(target_id)
        floor = session.declined_tier
        if target.offer_tier is None or floor == "none":
            return target_id, reason

        expected = next_lower_tier(floor)
        if declining:
            legal = target.offer_tier == expected
        else:
            legal = tier_index(target.offer_tier) > tier_index(floor)
        if legal:
            return target_id, reason

        forced = self._graph.offer_node_for(expected) or self._graph.fallback_id
        self._metrics.inc(FLOW["tier_violation_total"])
        self._log(
            "guardrail_rejection",
            level=logging.WARNING,
            rule="tier_step_down",
            session_id=session.session_id,
            from_node=node.id,
            attempted=target_id,
            attempted_tier=target.offer_tier,
            declined_tier=floor,
            forced=forced,
        )
        return forced, "tier_forced"

    def _enforce_value_window(self, session: CallSession, target_id: str, reason: str) -> tuple[str, str]:
        if not self._graph.node(target_id).is_pricing:
            return target_id, reason
        is_open, failed_open = self.value_gate(session)
        if is_open:
            if failed_open:
                self._metrics.inc(FLOW["value_window_fail_open_total"])
                self._log("value_window_fail_open", level=logging.WARNING, session_id=session.session_id, node=target_id)
            return target_id, reason
        self._metrics.inc(FLOW["value_window_substitution_total"])
        self._log(
            "value_window_hold",
            session_id=session.session_id,
            node=target_id,
            elapsed_ms=session.value_window.elapsed_ms(self._clock.now_ms()),
        )
        return self._graph.value_continuation_id, "value_window"

    def _enforce_payment_gate(self, session: CallSession, target_id: str, reason: str) -> tuple[str, str]:
        if not self._graph.node(target_id).closing or session.payment_accepted:
            return target_id, reason
        self._metrics.inc(FLOW["payment_gate_substitution_total"])
        self._log("payment_gate_hold", session_id=session.session_id, node=target_id)
        return self._graph.payment_id, "payment_gate"

    # Outbound lines

    def review_line(self, node: Optional[AnyNode], line: str) -> str:
        out, rewritten = scrub_forbidden_phrases(line)
        if rewritten:
            self._metrics.inc(FLOW["forbidden_phrase_rewrite_total"])
        if is_closing_line(node, out):
            out, appended = ensure_shipping_disclosure(out)
            if appended:
                self._metrics.inc(FLOW["shipping_disclosure_appended_total"])
        return out
