from __future__ import annotations

from callflow.markup import compose, prosody_for, resolve_tone


def test_compose_wraps_and_escapes() -> None:
    out = compose("Salt & pepper <now>", "enthusiastic")
    assert out.startswith("<speak><prosody ")
    assert out.endswith("</prosody></speak>")
    assert "Salt &amp; pepper &lt;now&gt;" in out
    assert 'rate="+5%"' in out
    assert 'pitch="+10%"' in out
    assert 'volume="loud"' in out


def test_unknown_tone_falls_back_to_neutral() -> None:
    out = compose("Hello", "grumpy")
    assert 'rate="+0%" pitch="+0%" volume="medium"' in out
    assert resolve_tone(None) == "neutral"


def test_tone_aliases() -> None:
    assert resolve_tone("calm_confidence") == "calm"
    assert resolve_tone("ABSOLUTE_CERTAINTY") == "certainty"


def test_numeric_content_slows_rate_below_tone_baseline() -> None:
    assert 'rate="-5%"' in compose("That comes to two hundred dollars", "enthusiastic")
    assert 'rate="-10%"' in compose("Call 8 6 6 3 7 9 5 1 3 1", "neutral")
    assert prosody_for("empathetic", "nine dollars").rate_pct == -20
    assert prosody_for("empathetic", "nine dollars", slowdown_pct=0).rate_pct == -10


def test_pause_is_injected_as_break() -> None:
    out = compose("Take your time.", "calm", 2500)
    assert out.endswith('</prosody><break time="2500ms"/></speak>')
    assert "<break" not in compose("No pause.", "calm", 0)
