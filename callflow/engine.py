from __future__ import annotations

import re
from collections import deque
from dataclasses import dataclass
from datetime import date
from typing import Any, Optional

from .clock import Clock, RealClock
from .config import FlowConfig
from .default_flow import build_graph
from .flow_graph import AnyNode, FlowGraph, render_line
from .guardrails import GuardrailEngine, RouteDecision, format_usd, quote_price
from .intent import Intent, classify
from .logs import log_event
from .markup import compose
from .metrics import FLOW, Metrics
from .payment import PaymentEnvelope, ValidationResult, validate
from .session_store import CallSession, InMemorySessionStore, SessionStore, ValueWindow
from .text_normalizer import normalize_inbound, normalize_outbound


_HEALTH_QUESTION_PAT = re.compile(r"\b(health|symptoms?|pain|stiff(?:ness)?|conditions?|sleep)\b", re.I)


@dataclass(frozen=True, slots=True)
class AdvanceResult:
    markup_text: str
    tone: str
    pause_ms: int
    terminal: bool
    node_id: str
    intent: Optional[Intent]
    spoken_text: str

    def to_payload(self) -> dict[str, Any]:
        return {
            "markupText": self.markup_text,
            "tone": self.tone,
            "pauseMs": self.pause_ms,
            "terminal": self.terminal,
            "nodeId": self.node_id,
            "intent": self.intent,
        }


class FlowEngine:
    """
    Drives one scripted call per session id.

    advance() is the single entry point: normalize, classify, route through the
    guardrails, then render the destination line into speech markup. All work
    for a session happens under that session's lock.
    """

    def __init__(
        self,
        graph: FlowGraph,
        *,
        config: Optional[FlowConfig] = None,
        clock: Optional[Clock] = None,
        store: Optional[SessionStore] = None,
        metrics: Optional[Metrics] = None,
    ) -> None:
        self._graph = graph
        self._cfg = config or FlowConfig()
        self._clock = clock or RealClock()
        self._store = store if store is not None else InMemorySessionStore()
        self._metrics = metrics or Metrics()
        self._guard = GuardrailEngine(graph=graph, config=self._cfg, clock=self._clock, metrics=self._metrics)

    @property
    def graph(self) -> FlowGraph:
        return self._graph

    @property
    def metrics(self) -> Metrics:
        return self._metrics

    @property
    def guardrails(self) -> GuardrailEngine:
        return self._guard

    def session(self, session_id: str) -> Optional[CallSession]:
        return self._store.get(session_id)

    def _log(self, event: str, **payload: Any) -> None:
        log_event(event, enabled=self._cfg.structured_logging, **payload)

    # Operations

    def advance(self, session_id: str, raw_utterance: str) -> AdvanceResult:
        self._metrics.inc(FLOW["advance_total"])
        with self._store.with_lock(session_id):
            session = self._store.get(session_id)
            if session is None:
                session = self._new_session(session_id)
                if self._cfg.speak_first:
                    normalized = normalize_inbound(raw_utterance)
                    if normalized:
                        session.record("caller", normalized, self._clock.now_ms())
                    return self._emit(session, self._graph.node(session.current_node_id), intent=None)

            node = self._graph.node(session.current_node_id)
            if session.closed:
                self._metrics.inc(FLOW["advance_after_terminal_total"])
                self._log("advance_after_terminal", session_id=session_id, node=node.id)
                return self._emit(session, node, intent=None)

            normalized = normalize_inbound(raw_utterance)
            session.record("caller", normalized, self._clock.now_ms())
            if node.capture and normalized:
                session.slots[node.capture] = normalized

            intent = classify(normalized)
            self._guard.observe_utterance(session, normalized)
            decision = self._route(session, node, intent)
            if not decision.reemit:
                self._land(session, decision.target_id)

            dest = self._graph.node(session.current_node_id)
            if dest.terminal:
                session.closed = True
            self._log(
                "advance",
                session_id=session_id,
                from_node=node.id,
                to_node=dest.id,
                intent=intent,
                reason=decision.reason,
            )
            return self._emit(session, dest, intent=intent)

    def reset_session(self, session_id: str) -> None:
        with self._store.with_lock(session_id):
            if self._store.delete(session_id):
                self._metrics.inc(FLOW["session_reset_total"])
                self._metrics.set(FLOW["sessions_active"], len(self._store))
                self._log("session_reset", session_id=session_id)

    def submit_payment(
        self, session_id: str, envelope: PaymentEnvelope, *, today: Optional[date] = None
    ) -> ValidationResult:
        """Validate an envelope; an accepted one unlocks the order confirmation."""
        result = validate(envelope, today=today)
        self._metrics.inc(FLOW["payment_accepted_total" if result.ok else "payment_rejected_total"])
        with self._store.with_lock(session_id):
            session = self._store.get(session_id)
            if session is not None and result.ok:
                session.payment_accepted = True
        self._log(
            "payment_validated",
            session_id=session_id,
            mode=getattr(envelope, "mode", None),
            ok=result.ok,
            reason=result.reason,
            brand=result.brand,
        )
        return result

    def complete_value_window(self, session_id: str) -> bool:
        with self._store.with_lock(session_id):
            session = self._store.get(session_id)
            if session is None:
                return False
            self._guard.complete_value_window(session)
            return True

    def value_window_status(self, session_id: str) -> Optional[dict[str, Any]]:
        with self._store.with_lock(session_id):
            session = self._store.get(session_id)
            if session is None:
                return None
            return self._guard.value_window_status(session)

    # Internals

    def _new_session(self, session_id: str) -> CallSession:
        now = self._clock.now_ms()
        session = CallSession(
            session_id=session_id,
            current_node_id=self._graph.start_id,
            value_window=ValueWindow(started_at_ms=now),
            transcript=deque(maxlen=self._cfg.transcript_max_utterances),
        )
        self._store.put(session)
        self._guard.on_land(session, self._graph.node(session.current_node_id))
        self._metrics.inc(FLOW["session_started_total"])
        self._metrics.set(FLOW["sessions_active"], len(self._store))
        self._log("session_started", session_id=session_id, node=session.current_node_id)
        return session

    def _route(self, session: CallSession, node: AnyNode, intent: Intent) -> RouteDecision:
        if intent == "service-intent":
            self._metrics.inc(FLOW["hotline_override_total"])
            return RouteDecision(target_id=self._graph.hotline_id, reason="hotline")
        decision = self._guard.route(session, node, intent)
        if decision.reemit:
            self._metrics.inc(FLOW["silence_reask_total"])
        elif decision.reason == "fallback":
            self._metrics.inc(FLOW["fallback_used_total"])
        return decision

    def _land(self, session: CallSession, node_id: str) -> None:
        session.land(node_id)
        self._guard.on_land(session, self._graph.node(node_id))

    def _pause_for(self, node: AnyNode) -> int:
        if node.pause_ms is not None:
            return int(node.pause_ms)
        if node.line.rstrip().endswith("?") and _HEALTH_QUESTION_PAT.search(f"{node.id.replace('_', ' ')} {node.line}"):
            return int(self._cfg.health_pause_ms)
        return 0

    def _render_context(self, session: CallSession, node: AnyNode) -> dict[str, str]:
        ctx: dict[str, str] = {
            "hotline_number": self._cfg.hotline_number,
            "discount_percent": str(self._cfg.max_discount_percent),
        }
        tier = node.offer_tier or (session.offer_tier if session.offer_tier != "none" else None)
        if tier is not None:
            price = self._cfg.prices()[tier]
            ctx["price"] = format_usd(price)
            ctx["discount_price"] = format_usd(
                quote_price(
                    price,
                    self._cfg.max_discount_percent,
                    max_discount_pct=self._cfg.max_discount_percent,
                )
            )
        ctx.update(session.slots)
        return ctx

    def _emit(self, session: CallSession, node: AnyNode, *, intent: Optional[Intent]) -> AdvanceResult:
        line = render_line(node.line, self._render_context(session, node))
        line = self._guard.review_line(node, line)
        spoken = normalize_outbound(line)
        pause_ms = self._pause_for(node)
        markup = compose(spoken, node.tone, pause_ms, slowdown_pct=self._cfg.numeric_rate_slowdown_pct)
        session.record("agent", spoken, self._clock.now_ms())
        self._metrics.observe(FLOW["line_chars"], len(spoken))
        return AdvanceResult(
            markup_text=markup,
            tone=node.tone,
            pause_ms=pause_ms,
            terminal=node.terminal,
            node_id=node.id,
            intent=intent,
            spoken_text=spoken,
        )


def build_engine(cfg: Optional[FlowConfig] = None, **kwargs: Any) -> FlowEngine:
    cfg = cfg or FlowConfig.from_env()
    return FlowEngine(build_graph(cfg), config=cfg, **kwargs)
