from __future__ import annotations

import re
from typing import Literal


Intent = Literal["yes", "no", "hesitate", "silence", "service-intent"]

INTENTS: tuple[Intent, ...] = ("yes", "no", "hesitate", "silence", "service-intent")

_SERVICE_PAT = re.compile(
    r"\b(representative|agent|supervisor|manager|operator|reorder|re-order|"
    r"customer service|real person|live person|human being|talk to a human)\b",
    re.I,
)
_YES_PAT = re.compile(
    r"\b(yes|yeah|yep|yup|ok|okay|alright|all right|absolutely|definitely|certainly|"
    r"correct|of course|sounds good|go ahead|let's do it|i'll take it|(?<!not )(?<!n't )sure)\b",
    re.I,
)
_NO_PAT = re.compile(
    r"\b(no|nope|nah|not really|not interested|no thanks|don't want|do not want|don't need|never|i'll pass)\b",
    re.I,
)


def classify(normalized_utterance: str) -> Intent:
    """
    Priority-ordered keyword match, first hit wins:
    service-intent > yes > no > silence (empty) > hesitate.
    """
    txt = normalized_utterance or ""
    if _SERVICE_PAT.search(txt):
        return "service-intent"
    if _YES_PAT.search(txt):
        return "yes"
    if _NO_PAT.search(txt):
        return "no"
    if not txt.strip():
        return "silence"
    return "hesitate"
