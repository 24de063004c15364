from __future__ import annotations

from typing import Any

from .config import FlowConfig
from .flow_graph import FlowGraph, load_flow_graph, load_flow_graph_file


def _health_block(key: str, question: str, next_id: str, *, capture: str | None = None) -> dict[str, dict[str, Any]]:
    ask, ack_yes, ack_no, reask = f"{key}_ask", f"{key}_ack_yes", f"{key}_ack_no", f"{key}_reask"
    ask_node: dict[str, Any] = {
        "line": question,
        "tone": "empathetic",
        "branches": {"yes": ack_yes, "no": ack_no, "hesitate": reask, "silence": reask},
    }
    if capture:
        ask_node["capture"] = capture
    return {
        ask: ask_node,
        ack_yes: {
            "line": "I'm sorry to hear that. That is exactly the kind of thing we help people with.",
            "tone": "empathetic",
            "next": next_id,
        },
        ack_no: {
            "line": "That's good to hear. Let's make sure it stays that way.",
            "tone": "calm",
            "next": next_id,
        },
        reask: {
            "line": "No rush. Could you tell me a bit more when you're ready?",
            "tone": "calm",
            "pauseMs": 3000,
            "branches": {"yes": ack_yes, "no": ack_no},
            "next": next_id,
        },
    }


def _build_default_flow() -> dict[str, dict[str, Any]]:
    flow: dict[str, dict[str, Any]] = {
        "start": {
            "line": (
                "Hi, this is Alex calling from Health America about the joint support program "
                "you asked about. Do you have a couple of minutes to chat?"
            ),
            "tone": "enthusiastic",
            "pauseMs": 800,
            "branches": {"yes": "health_pain_ask", "hesitate": "health_pain_ask", "no": "polite_close"},
        },
    }
    flow.update(
        _health_block(
            "health_pain",
            "Are you dealing with any joint pain or stiffness these days?",
            "health_sleep_ask",
            capture="health_concerns",
        )
    )
    flow.update(
        _health_block(
            "health_sleep",
            "Is that discomfort getting in the way of your sleep or your daily walks?",
            "health_tried_ask",
        )
    )
    flow.update(
        _health_block(
            "health_tried",
            "Have you tried anything for it so far, like creams or other supplements?",
            "value_intro",
            capture="tried_before",
        )
    )
    flow.update(
        {
            "value_intro": {
                "line": (
                    "Thank you for sharing that. Our formula was put together by doctors for exactly this kind "
                    "of discomfort, and most people notice a difference within the first few weeks."
                ),
                "tone": "calm_confidence",
                "next": "value_proof",
            },
            "value_proof": {
                "line": (
                    "Every bottle is made in the USA and third-party tested, and it is backed by our "
                    "satisfaction policy."
                ),
                "tone": "absolute_certainty",
                "next": "package_offer",
            },
            "continue_value": {
                "line": (
                    "Before we look at options, tell me, what would you most like to get back to doing "
                    "if your joints felt better?"
                ),
                "tone": "empathetic",
                "capture": "goal",
                "branches": {"no": "value_proof"},
                "next": "value_proof",
            },
            "package_offer": {
                "line": (
                    "The best value is our annual membership at {{price}} for the full year, with free shipping. "
                    "Would you like to lock that in today?"
                ),
                "tone": "authoritative",
                "offerTier": "annual",
                "branches": {"yes": "identity_name", "no": "offer_six_month", "hesitate": "offer_six_month"},
            },
            "offer_six_month": {
                "line": "I understand. Many people start with our six month supply at {{price}}. Would that work better for you?",
                "tone": "empathetic",
                "offerTier": "six_month",
                "branches": {"yes": "identity_name", "no": "offer_three_month", "hesitate": "offer_three_month"},
            },
            "offer_three_month": {
                "line": "No problem. Our three month supply is {{price}}, enough to really feel the difference. Shall we start there?",
                "tone": "calm",
                "offerTier": "three_month",
                "branches": {"yes": "identity_name", "no": "offer_single", "hesitate": "offer_single"},
            },
            "offer_single": {
                "line": "That's completely fair. You can also try a single month for {{price}}. Would you like to try it?",
                "tone": "calm",
                "offerTier": "single",
                "branches": {"yes": "identity_name", "no": "discount_offer", "hesitate": "discount_offer"},
            },
            "discount_offer": {
                "line": (
                    "Because you qualify for our loyalty pricing, I can take {{discount_percent}} percent off, "
                    "which brings it to {{discount_price}}. Would you like me to apply that?"
                ),
                "tone": "enthusiastic",
                "discount": True,
                "branches": {"yes": "identity_name", "no": "offer_choice_deflect", "hesitate": "offer_choice_deflect"},
                "next": "offer_choice_deflect",
            },
            "offer_choice_deflect": {
                "line": (
                    "Totally fair. Would it help if I sent you some information and you called us back "
                    "when you're ready?"
                ),
                "tone": "empathetic",
                "branches": {"yes": "info_close", "no": "polite_close", "hesitate": "polite_close"},
            },
            "identity_name": {
                "line": "Wonderful. May I have your full name as it should appear on the package?",
                "tone": "calm",
                "capture": "full_name",
                "next": "identity_address",
            },
            "identity_address": {
                "line": "Thank you. And what is the best shipping address, including the city and state?",
                "tone": "calm",
                "capture": "shipping_address",
                "next": "payment_prep",
            },
            "payment_prep": {
                "line": "Got it. Would you like to pay with a card or a bank account?",
                "tone": "neutral",
                "capture": "payment_method",
                "next": "payment_capture",
            },
            "payment_capture": {
                "line": "Please go ahead and enter your payment details on the keypad now, and let me know once you're done.",
                "tone": "certainty",
                "pauseMs": 1500,
                "branches": {"no": "offer_choice_deflect", "hesitate": "payment_capture"},
                "next": "order_confirmed",
            },
            "order_confirmed": {
                "line": "Excellent. Your order is confirmed and will ship to {{shipping_address}}",
                "tone": "enthusiastic",
                "closing": True,
                "next": "closing_sale",
            },
            "closing_sale": {
                "line": (
                    "Thank you for choosing Health America. If you ever need anything, our care line is "
                    "{{hotline_number}}."
                ),
                "tone": "empathetic",
                "closing": True,
                "terminal": True,
            },
            "hotline_offer": {
                "line": (
                    "Of course. I can connect you with a representative on our care line at {{hotline_number}}. "
                    "Would you like me to transfer you now?"
                ),
                "tone": "empathetic",
                "branches": {"yes": "hotline_transfer", "no": "micro_resume", "hesitate": "micro_resume"},
            },
            "hotline_transfer": {
                "line": "Connecting you now. Thank you for your patience.",
                "tone": "calm",
                "terminal": True,
            },
            "micro_resume": {
                "line": "I'm still here with you. Would you like to pick up where we left off?",
                "tone": "calm",
                "branches": {"yes": "value_proof", "no": "polite_close", "hesitate": "polite_close"},
            },
            "info_close": {
                "line": (
                    "Perfect. You'll have it shortly, and you can reach us anytime at {{hotline_number}}. "
                    "Thank you for your time today."
                ),
                "tone": "calm",
                "terminal": True,
            },
            "polite_close": {
                "line": "No problem at all. Thank you for your time today, and take good care.",
                "tone": "calm",
                "terminal": True,
            },
        }
    )
    return flow


DEFAULT_FLOW: dict[str, dict[str, Any]] = _build_default_flow()


def build_graph(cfg: FlowConfig) -> FlowGraph:
    ids = {
        "start_id": cfg.start_node_id,
        "hotline_id": cfg.hotline_node_id,
        "fallback_id": cfg.fallback_node_id,
        "value_continuation_id": cfg.value_continuation_node_id,
        "payment_id": cfg.payment_node_id,
    }
    if cfg.flow_graph_path:
        return load_flow_graph_file(cfg.flow_graph_path, **ids)
    return load_flow_graph(DEFAULT_FLOW, **ids)
