from __future__ import annotations

import re


_CONTROL_TOKEN_PATS = (
    re.compile(r"\((?:\s*(?:pause|processing|hold|compliment|aside)[^)]*)\)", re.I),
    re.compile(r"\[(?:\s*(?:pause|processing|hold|beat)[^\]]*)\]", re.I),
    re.compile(r"<break[^>]*>", re.I),
    re.compile(r"</?(?:speak|prosody)[^>]*>", re.I),
    re.compile(r"\bSILENT_PAUSE_\d+S\b", re.I),
    re.compile(r"\b(?:silent|pause|hold)\s*\d+\s*(?:ms|s|sec|secs|seconds)\b(?:\s*pause\b)?", re.I),
    re.compile(r"\blong\s+pause\b", re.I),
)

_FILLER_PAT = re.compile(
    r"\b(?:u+m+|u+h+|h+m+|e+r+m+|m{2,}|you\s+know|i\s+mean|kinda|sorta|basically)\b,?",
    re.I,
)
_RUN_ON_LETTER_PAT = re.compile(r"([A-Za-z])\1{2,}")
_SPACE_PAT = re.compile(r"\s+")

_STATE_CODE_PAT = re.compile(r",(\s*)([A-Z]{2})\b")
_CURRENCY_PAT = re.compile(r"\$\s?([0-9]{1,3}(?:,[0-9]{3})+|[0-9]{1,12})(?:\.([0-9]{1,2}))?(?![0-9])")
_DIGIT_RUN_PAT = re.compile(r"(?<![A-Za-z0-9$])(?<!\$ )[0-9]{7,}(?![A-Za-z0-9])")
_SHIPPING_RANGE_PAT = re.compile(
    r"\b(?:5\s*(?:[-–—]|to)\s*7|five\s+to\s+seven)\s+(?:business\s+)?days\b",
    re.I,
)

# Artifacts left behind by currency / digit expansion.
_SPOKEN_CURRENCY_PAT = re.compile(r"\b(?:dollars?|cents?)\b", re.I)
_SPOKEN_DIGITS_PAT = re.compile(r"(?<![\w])[0-9](?: [0-9]){6,}(?![\w])")

SHIPPING_PHRASE = "five to seven business days"

US_STATES: dict[str, str] = {
    "AL": "Alabama", "AK": "Alaska", "AZ": "Arizona", "AR": "Arkansas", "CA": "California",
    "CO": "Colorado", "CT": "Connecticut", "DE": "Delaware", "FL": "Florida", "GA": "Georgia",
    "HI": "Hawaii", "ID": "Idaho", "IL": "Illinois", "IN": "Indiana", "IA": "Iowa",
    "KS": "Kansas", "KY": "Kentucky", "LA": "Louisiana", "ME": "Maine", "MD": "Maryland",
    "MA": "Massachusetts", "MI": "Michigan", "MN": "Minnesota", "MS": "Mississippi", "MO": "Missouri",
    "MT": "Montana", "NE": "Nebraska", "NV": "Nevada", "NH": "New Hampshire", "NJ": "New Jersey",
    "NM": "New Mexico", "NY": "New York", "NC": "North Carolina", "ND": "North Dakota", "OH": "Ohio",
    "OK": "Oklahoma", "OR": "Oregon", "PA": "Pennsylvania", "RI": "Rhode Island", "SC": "South Carolina",
    "SD": "South Dakota", "TN": "Tennessee", "TX": "Texas", "UT": "Utah", "VT": "Vermont",
    "VA": "Virginia", "WA": "Washington", "WV": "West Virginia", "WI": "Wisconsin", "WY": "Wyoming",
    "DC": "District of Columbia", "PR": "Puerto Rico",
}

_ONES = [
    "zero", "one", "two", "three", "four", "five", "six", "seven", "eight", "nine",
    "ten", "eleven", "twelve", "thirteen", "fourteen", "fifteen", "sixteen",
    "seventeen", "eighteen", "nineteen",
]
_TENS = ["", "", "twenty", "thirty", "forty", "fifty", "sixty", "seventy", "eighty", "ninety"]
_SCALES = ((1_000_000_000, "billion"), (1_000_000, "million"), (1_000, "thousand"))


def _under_thousand(n: int) -> str:
    words: list[str] = []
    hundreds, rest = divmod(n, 100)
    if hundreds:
        words.append(f"{_ONES[hundreds]} hundred")
    if rest:
        if rest < 20:
            words.append(_ONES[rest])
        else:
            tens, ones = divmod(rest, 10)
            words.append(_TENS[tens] + (f"-{_ONES[ones]}" if ones else ""))
    return " ".join(words)


def number_to_words(n: int) -> str:
    """Spell a non-negative integer below one trillion ("two hundred ninety-nine")."""
    if n < 0 or n >= 1_000_000_000_000:
        raise ValueError(f"number_to_words: {n} out of range")
    if n == 0:
        return "zero"
    parts: list[str] = []
    for scale, name in _SCALES:
        if n >= scale:
            q, n = divmod(n, scale)
            parts.append(f"{_under_thousand(q)} {name}")
    if n:
        parts.append(_under_thousand(n))
    return " ".join(parts)


def _sub_to_fixpoint(text: str, pats: tuple[re.Pattern[str], ...]) -> str:
    # Removing one token can splice the halves of another back together.
    out = text
    while True:
        new = out
        for pat in pats:
            new = pat.sub(" ", new)
        if new == out:
            return out
        out = new


def strip_control_tokens(text: str) -> str:
    return _sub_to_fixpoint(text or "", _CONTROL_TOKEN_PATS)


def collapse_fillers(text: str) -> str:
    return _sub_to_fixpoint(text or "", (_FILLER_PAT,))


def collapse_run_on_letters(text: str) -> str:
    return _RUN_ON_LETTER_PAT.sub(lambda m: m.group(1) * 2, text or "")


def _normalize_spaces(text: str) -> str:
    return _SPACE_PAT.sub(" ", text or "").strip()


def normalize_inbound(raw: str) -> str:
    out = raw or ""
    while True:
        new = strip_control_tokens(out)
        new = collapse_fillers(new)
        new = collapse_run_on_letters(new)
        new = _normalize_spaces(new)
        if new == out:
            return out
        out = new


def expand_state_codes(text: str) -> str:
    def _expand(m: re.Match[str]) -> str:
        name = US_STATES.get(m.group(2))
        if name is None:
            return m.group(0)
        return f",{m.group(1) or ' '}{name}"

    return _STATE_CODE_PAT.sub(_expand, text)


def _spell_currency(m: re.Match[str]) -> str:
    cents_raw = m.group(2)
    try:
        dollars = int(m.group(1).replace(",", ""))
        cents = int(cents_raw.ljust(2, "0")) if cents_raw else 0
        dollar_words = number_to_words(dollars)
    except ValueError:
        return m.group(0)
    out = f"{dollar_words} {'dollar' if dollars == 1 else 'dollars'}"
    if cents:
        out += f" and {number_to_words(cents)} {'cent' if cents == 1 else 'cents'}"
    return out


def expand_currency(text: str) -> str:
    return _CURRENCY_PAT.sub(_spell_currency, text)


def space_digit_runs(text: str) -> str:
    return _DIGIT_RUN_PAT.sub(lambda m: " ".join(m.group(0)), text)


def _spell_shipping_range(m: re.Match[str]) -> str:
    if m.group(0)[:1].isupper():
        return SHIPPING_PHRASE[:1].upper() + SHIPPING_PHRASE[1:]
    return SHIPPING_PHRASE


def _outbound_pass(text: str) -> str:
    out = normalize_inbound(text)
    if not out:
        return ""
    out = expand_state_codes(out)
    out = expand_currency(out)
    out = space_digit_runs(out)
    out = _SHIPPING_RANGE_PAT.sub(_spell_shipping_range, out)
    return _normalize_spaces(out)


def normalize_outbound(raw: str) -> str:
    # Spelled-out amounts can fuse with neighbouring letters into new run-ons.
    out = _outbound_pass(raw or "")
    while True:
        new = _outbound_pass(out)
        if new == out:
            return out
        out = new


def has_numeric_content(text: str) -> bool:
    """True for raw currency / long digit runs or what their expansion leaves behind."""
    txt = text or ""
    return bool(
        _CURRENCY_PAT.search(txt)
        or _DIGIT_RUN_PAT.search(txt)
        or _SPOKEN_CURRENCY_PAT.search(txt)
        or _SPOKEN_DIGITS_PAT.search(txt)
    )


def mentions_shipping_window(text: str) -> bool:
    return bool(_SHIPPING_RANGE_PAT.search(text or ""))
