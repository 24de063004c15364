from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Annotated, Any, Iterable, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from .intent import INTENTS, Intent
from .logs import log_event
from .markup import Tone, resolve_tone


OfferTier = Literal["annual", "six_month", "three_month", "single", "none"]
OfferTierName = Literal["annual", "six_month", "three_month", "single"]

# Largest first; a decline may only move one step to the right.
TIER_ORDER: tuple[OfferTierName, ...] = ("annual", "six_month", "three_month", "single")


def tier_index(tier: str) -> int:
    return TIER_ORDER.index(tier)  # type: ignore[arg-type]


def next_lower_tier(tier: str) -> Optional[OfferTierName]:
    if tier not in TIER_ORDER:
        return None
    i = tier_index(tier) + 1
    return TIER_ORDER[i] if i < len(TIER_ORDER) else None


class GraphIntegrityError(ValueError):
    def __init__(self, problems: Iterable[str]) -> None:
        self.problems = list(problems)
        super().__init__("flow graph failed validation: " + "; ".join(self.problems))


class _NodeBase(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    id: str = Field(min_length=1)
    line: str
    tone: Tone = "neutral"
    pause_ms: Optional[int] = Field(default=None, alias="pauseMs", ge=0)
    capture: Optional[str] = None
    offer_tier: Optional[OfferTierName] = Field(default=None, alias="offerTier")
    pricing: bool = False
    discount: bool = False
    closing: bool = False

    @field_validator("tone", mode="before")
    @classmethod
    def _coerce_tone(cls, v: Any) -> str:
        return resolve_tone(v if isinstance(v, str) else None)

    @property
    def is_pricing(self) -> bool:
        return self.pricing or self.offer_tier is not None

    @property
    def terminal(self) -> bool:
        return False


class LinearNode(_NodeBase):
    kind: Literal["linear"] = "linear"
    next: str


class BranchingNode(_NodeBase):
    kind: Literal["branching"] = "branching"
    branches: dict[Intent, str] = Field(min_length=1)
    next: Optional[str] = None


class TerminalNode(_NodeBase):
    kind: Literal["terminal"] = "terminal"

    @property
    def terminal(self) -> bool:
        return True


FlowNode = Annotated[Union[LinearNode, BranchingNode, TerminalNode], Field(discriminator="kind")]
AnyNode = Union[LinearNode, BranchingNode, TerminalNode]

_NODE_ADAPTER: TypeAdapter[AnyNode] = TypeAdapter(FlowNode)

_PLACEHOLDER_PAT = re.compile(r"\{\{\s*([A-Za-z0-9_]+)\s*\}\}")


def render_line(line: str, context: Mapping[str, str]) -> str:
    """Fill {{slot}} tokens; unresolved tokens are dropped rather than spoken."""

    def _sub(m: re.Match[str]) -> str:
        return str(context.get(m.group(1), ""))

    return _PLACEHOLDER_PAT.sub(_sub, line or "")


def _coerce_record(node_id: str, raw: Mapping[str, Any]) -> dict[str, Any]:
    rec = dict(raw)
    rec.setdefault("id", node_id)
    if "say" in rec and "line" not in rec:
        rec["line"] = rec.pop("say")
    is_terminal = bool(rec.pop("terminal", False)) | bool(rec.pop("end", False))
    if "kind" not in rec:
        if is_terminal:
            rec["kind"] = "terminal"
        elif rec.get("branches"):
            rec["kind"] = "branching"
        else:
            rec["kind"] = "linear"
    return rec


def _iter_records(records: Any) -> Iterable[tuple[str, Mapping[str, Any]]]:
    if isinstance(records, Mapping):
        if "states" in records and isinstance(records["states"], Mapping):
            records = records["states"]
        elif "nodes" in records and isinstance(records["nodes"], list):
            records = records["nodes"]
    if isinstance(records, Mapping):
        for node_id, raw in records.items():
            yield str(node_id), raw
        return
    for raw in records:
        yield str(raw.get("id", "")), raw


@dataclass(frozen=True, slots=True)
class FlowGraph:
    nodes: Mapping[str, AnyNode]
    start_id: str
    hotline_id: str
    fallback_id: str
    value_continuation_id: str
    payment_id: str
    offer_nodes: Mapping[str, str]

    def node(self, node_id: str) -> AnyNode:
        return self.nodes[node_id]

    def offer_node_for(self, tier: Optional[str]) -> Optional[str]:
        if tier is None:
            return None
        return self.offer_nodes.get(tier)

    def resolve(self, node: AnyNode, intent: Intent) -> tuple[str, str]:
        """branches[intent] -> next -> fallback; returns (target_id, how)."""
        if isinstance(node, TerminalNode):
            return node.id, "terminal"
        if isinstance(node, BranchingNode):
            target = node.branches.get(intent)
            if target:
                return target, "branch"
        if node.next:
            return node.next, "next"
        return self.fallback_id, "fallback"

    def successors(self, node: AnyNode) -> set[str]:
        return {self.resolve(node, intent)[0] for intent in INTENTS}

    def reachable(self) -> set[str]:
        # Guardrails may substitute the fallback, continuation and payment nodes at any time.
        seen: set[str] = set()
        stack = [self.start_id, self.hotline_id, self.fallback_id, self.value_continuation_id, self.payment_id]
        while stack:
            nid = stack.pop()
            if nid in seen or nid not in self.nodes:
                continue
            seen.add(nid)
            node = self.nodes[nid]
            stack.extend(self.successors(node))
            if node.discount and node.next:
                stack.append(node.next)
        return seen


def load_flow_graph(
    records: Any,
    *,
    start_id: str = "start",
    hotline_id: str = "hotline_offer",
    fallback_id: str = "micro_resume",
    value_continuation_id: str = "continue_value",
    payment_id: str = "payment_capture",
) -> FlowGraph:
    """
    Parse and validate an authored graph once, at startup.

    Raises GraphIntegrityError listing every problem found; a graph that loads
    cleanly resolves every intent at every reachable node.
    """
    problems: list[str] = []
    nodes: dict[str, AnyNode] = {}

    for node_id, raw in _iter_records(records):
        if not isinstance(raw, Mapping):
            problems.append(f"node {node_id!r}: record must be an object")
            continue
        try:
            node = _NODE_ADAPTER.validate_python(_coerce_record(node_id, raw))
        except ValidationError as e:
            detail = ", ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors())
            problems.append(f"node {node_id!r}: {detail}")
            continue
        if node.id in nodes:
            problems.append(f"duplicate node id {node.id!r}")
            continue
        nodes[node.id] = node

    if problems:
        raise GraphIntegrityError(problems)

    for label, nid in (("start", start_id), ("hotline", hotline_id), ("fallback", fallback_id)):
        if nid not in nodes:
            problems.append(f"missing {label} node {nid!r}")

    has_pricing = any(n.is_pricing for n in nodes.values())
    if has_pricing and value_continuation_id not in nodes:
        problems.append(f"pricing nodes present but value continuation node {value_continuation_id!r} is missing")
    has_closing = any(n.closing for n in nodes.values())
    if has_closing and payment_id not in nodes:
        problems.append(f"closing nodes present but payment node {payment_id!r} is missing")

    # Nodes the guardrails substitute must not themselves be gated.
    for label, nid in (
        ("fallback", fallback_id),
        ("value continuation", value_continuation_id),
        ("payment", payment_id),
    ):
        n = nodes.get(nid)
        if n is not None and (n.is_pricing or n.discount or n.closing):
            problems.append(f"{label} node {nid!r} must not be a pricing, discount or closing node")

    offer_nodes: dict[str, str] = {}
    for n in nodes.values():
        refs: list[str] = []
        if isinstance(n, (LinearNode, BranchingNode)) and n.next:
            refs.append(n.next)
        if isinstance(n, BranchingNode):
            refs.extend(n.branches.values())
        for ref in refs:
            if ref not in nodes:
                problems.append(f"node {n.id!r} references unknown node {ref!r}")
        if n.discount and (isinstance(n, TerminalNode) or not n.next):
            problems.append(f"discount node {n.id!r} needs a default next for ineligible callers")
        elif n.discount and n.next in nodes and nodes[n.next].discount:
            problems.append(f"discount node {n.id!r} must not default to another discount node {n.next!r}")
        if n.offer_tier is not None:
            if n.offer_tier in offer_nodes:
                problems.append(f"offer tier {n.offer_tier!r} used by both {offer_nodes[n.offer_tier]!r} and {n.id!r}")
            else:
                offer_nodes[n.offer_tier] = n.id

    if problems:
        raise GraphIntegrityError(problems)

    graph = FlowGraph(
        nodes=MappingProxyType(nodes),
        start_id=start_id,
        hotline_id=hotline_id,
        fallback_id=fallback_id,
        value_continuation_id=value_continuation_id,
        payment_id=payment_id,
        offer_nodes=MappingProxyType(offer_nodes),
    )

    reachable = graph.reachable()
    for nid in sorted(reachable):
        node = nodes[nid]
        if node.terminal:
            continue
        for intent in INTENTS:
            target, _ = graph.resolve(node, intent)
            if target not in nodes:
                problems.append(f"node {nid!r} dead-ends on intent {intent!r}")
    if problems:
        raise GraphIntegrityError(problems)

    orphans = sorted(set(nodes) - reachable)
    if orphans:
        log_event("graph_orphan_nodes", level=logging.WARNING, nodes=orphans)
    return graph


def load_flow_graph_file(path: str | Path, **ids: str) -> FlowGraph:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return load_flow_graph(data, **ids)
