from __future__ import annotations

import html
from dataclasses import dataclass
from typing import Literal, Optional

from .text_normalizer import has_numeric_content


Tone = Literal["enthusiastic", "empathetic", "authoritative", "calm", "certainty", "neutral"]


@dataclass(frozen=True, slots=True)
class Prosody:
    pitch: str
    rate_pct: int
    volume: str


TONE_TABLE: dict[str, Prosody] = {
    "enthusiastic": Prosody(pitch="+10%", rate_pct=5, volume="loud"),
    "empathetic": Prosody(pitch="-5%", rate_pct=-10, volume="soft"),
    "authoritative": Prosody(pitch="-10%", rate_pct=0, volume="loud"),
    "calm": Prosody(pitch="-5%", rate_pct=-5, volume="medium"),
    "certainty": Prosody(pitch="+0%", rate_pct=-5, volume="loud"),
    "neutral": Prosody(pitch="+0%", rate_pct=0, volume="medium"),
}

# Authoring labels that predate the six canonical tones.
TONE_ALIASES: dict[str, str] = {
    "calm_confidence": "calm",
    "absolute_certainty": "certainty",
}


def resolve_tone(label: Optional[str]) -> Tone:
    key = (label or "").strip().lower()
    key = TONE_ALIASES.get(key, key)
    if key in TONE_TABLE:
        return key  # type: ignore[return-value]
    return "neutral"


def prosody_for(tone: Optional[str], text: str = "", *, slowdown_pct: int = 10) -> Prosody:
    base = TONE_TABLE[resolve_tone(tone)]
    if slowdown_pct and has_numeric_content(text):
        return Prosody(pitch=base.pitch, rate_pct=base.rate_pct - int(slowdown_pct), volume=base.volume)
    return base


def _fmt_rate(rate_pct: int) -> str:
    return f"{int(rate_pct):+d}%"


def compose(text: str, tone: Optional[str], pause_ms: Optional[int] = None, *, slowdown_pct: int = 10) -> str:
    """
    Wrap normalized outbound text in prosody markup.

    - tone selects pitch/rate/volume; unknown tones use neutral.
    - numeric content (money, spaced digits) slows the rate below the tone baseline.
    - pause_ms > 0 appends an explicit <break/> so the caller gets room to answer.
    """
    body = text or ""
    p = prosody_for(tone, body, slowdown_pct=slowdown_pct)
    out = (
        "<speak>"
        f'<prosody rate="{_fmt_rate(p.rate_pct)}" pitch="{p.pitch}" volume="{p.volume}">'
        f"{html.escape(body, quote=False)}"
        "</prosody>"
    )
    if pause_ms is not None and int(pause_ms) > 0:
        out += f'<break time="{int(pause_ms)}ms"/>'
    return out + "</speak>"
