from __future__ import annotations

import random
import re

from callflow.text_normalizer import (
    has_numeric_content,
    normalize_inbound,
    normalize_outbound,
    number_to_words,
)


def test_currency_with_cents_is_spelled_out() -> None:
    out = normalize_outbound("$299.99")
    assert "two hundred ninety-nine dollars" in out
    assert "ninety-nine cents" in out
    assert "$" not in out


def test_currency_whole_amount_omits_cents_clause() -> None:
    out = normalize_outbound("$300")
    assert "three hundred dollars" in out
    assert "cent" not in out


def test_currency_short_cents_and_singulars() -> None:
    assert normalize_outbound("$5.5") == "five dollars and fifty cents"
    assert normalize_outbound("$1.01") == "one dollar and one cent"
    assert normalize_outbound("It is $1,299 today.") == "It is one thousand two hundred ninety-nine dollars today."


def test_currency_out_of_range_is_left_untouched() -> None:
    assert normalize_outbound("$1,000,000,000,000") == "$1,000,000,000,000"


def test_long_digit_runs_are_spoken_one_by_one() -> None:
    out = normalize_outbound("Routing 021000021")
    assert out == "Routing 0 2 1 0 0 0 0 2 1"
    assert not re.search(r"\d{9}", out)


def test_digit_run_inside_word_is_not_split() -> None:
    assert normalize_outbound("Item SKU12345678 ships") == "Item SKU12345678 ships"
    assert normalize_outbound("Code 123456") == "Code 123456"


def test_control_tokens_are_stripped() -> None:
    raw = 'Great (pause) let us SILENT_PAUSE_4S continue <break time="500ms"/> now [hold] Pause 2000ms'
    assert normalize_inbound(raw) == "Great let us continue now"
    assert normalize_inbound("Okay Silent 4 S Pause then long pause done") == "Okay then done"


def test_adjacent_control_tokens_leave_single_space() -> None:
    assert normalize_inbound("a (pause) (hold) [processing] b") == "a b"


def test_fillers_and_run_on_letters_collapse() -> None:
    assert normalize_inbound("um, yes, uh I think so") == "yes, I think so"
    assert normalize_inbound("yesss pleeease") == "yess pleease"
    assert normalize_inbound("  hmm   you know  sure ") == "sure"


def test_state_codes_expand_only_after_comma() -> None:
    out = normalize_outbound("Ships to 12 Main St, Springfield, IL 62704")
    assert out == "Ships to 12 Main St, Springfield, Illinois 62704"
    assert normalize_outbound("IL is fine") == "IL is fine"
    assert normalize_outbound("Located in San Juan, PR") == "Located in San Juan, Puerto Rico"


def test_shipping_range_is_spoken() -> None:
    assert normalize_outbound("Arrives in 5-7 business days.") == "Arrives in five to seven business days."
    assert normalize_outbound("Arrives in 5–7 days.") == "Arrives in five to seven business days."


def test_empty_input_yields_empty_output() -> None:
    assert normalize_inbound("") == ""
    assert normalize_outbound("") == ""
    assert normalize_outbound("(pause)") == ""


def test_outbound_normalization_is_idempotent() -> None:
    samples = [
        "$299.99",
        "$300 plus $1,299.5 and $0.01",
        "Routing 021000021, account 123456789012",
        "Ships to 1 Elm St, Austin, TX 73301-1234",
        "Delivery 5 - 7 business days (pause) um, okay",
        "Five to seven days, arriving soon!",
        "Sooo goood, you know, really",
        "SKU12345678 and $ 1234567890123456",
        "Please hold 2 seconds <break time='300ms'/>",
        "",
    ]
    for raw in samples:
        once = normalize_outbound(raw)
        assert normalize_outbound(once) == once, raw


def test_number_to_words() -> None:
    assert number_to_words(0) == "zero"
    assert number_to_words(15) == "fifteen"
    assert number_to_words(40) == "forty"
    assert number_to_words(1_234_567) == "one million two hundred thirty-four thousand five hundred sixty-seven"


def test_numeric_content_detection_sees_raw_and_expanded_forms() -> None:
    assert has_numeric_content("$5")
    assert has_numeric_content("five dollars")
    assert has_numeric_content("0 2 1 0 0 0 0 2 1")
    assert not has_numeric_content("hello there")


def test_outbound_normalization_is_idempotent_on_random_text() -> None:
    rng = random.Random(20261018)
    alphabet = ["a", "s", "o", "I", "O", "K", "L", "$", " ", ",", ".", "-", "0", "1", "5", "7", "9", "ss", "mm"]
    for _ in range(2000):
        raw = "".join(rng.choice(alphabet) for _ in range(rng.randint(0, 24)))
        once = normalize_outbound(raw)
        assert normalize_outbound(once) == once, raw


def test_expanded_amount_fused_to_letters_settles_in_one_call() -> None:
    once = normalize_outbound("Goood morning $5ss")
    assert once == "Good morning five dollarss"
    assert normalize_outbound(once) == once


def test_only_ascii_digits_are_expanded() -> None:
    assert normalize_outbound("Call ١٢٣٤٥٦٧ now") == "Call ١٢٣٤٥٦٧ now"
    assert normalize_outbound("$٢٩٩") == "$٢٩٩"
    assert not has_numeric_content("١ ٢ ٣ ٤ ٥ ٦ ٧")


def test_numeric_shipping_range_with_to_is_spoken() -> None:
    assert normalize_outbound("Ships in 5 to 7 business days.") == "Ships in five to seven business days."
