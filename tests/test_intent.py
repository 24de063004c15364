from __future__ import annotations

from callflow.intent import classify


def test_service_intent_wins_over_everything() -> None:
    assert classify("I want to talk to a representative") == "service-intent"
    assert classify("yes, but can I get a supervisor") == "service-intent"
    assert classify("I'd like to reorder") == "service-intent"


def test_affirmative_then_negative_priority() -> None:
    assert classify("Yeah sure") == "yes"
    assert classify("okay") == "yes"
    assert classify("yes and no") == "yes"
    assert classify("no thanks") == "no"
    assert classify("Nope") == "no"


def test_silence_and_hesitation() -> None:
    assert classify("") == "silence"
    assert classify("   ") == "silence"
    assert classify("maybe later") == "hesitate"
    assert classify("I'm not sure") == "hesitate"
    assert classify("I don't know") == "hesitate"


def test_keywords_match_whole_words_only() -> None:
    assert classify("my eyes hurt") == "hesitate"
    assert classify("the agenda is full") == "hesitate"
    assert classify("notable") == "hesitate"
