from __future__ import annotations

from councildocs.text import clean_text, count_words, detect_tables, normalize_text, to_title_case, tokenize


def test_tokenize_lowercases_strips_punctuation_and_drops_single_chars() -> None:
    assert tokenize("The Council's 5-year Plan: a review!") == ["the", "council", "year", "plan", "review"]


def test_tokenize_is_idempotent_on_its_own_output() -> None:
    tokens = tokenize("Car-parking charges (2025) in Gloucester.")
    assert tokenize(" ".join(tokens)) == tokens


def test_tokenize_non_string_or_empty_is_empty() -> None:
    assert tokenize("") == []
    assert tokenize(None) == []
    assert tokenize(42) == []


def test_clean_text_repairs_hyphenation_and_drops_page_footers() -> None:
    raw = "The consul-\ntation closed.\nPage 3 of 10\nNext   paragraph\n\n\n\nEnd"
    assert clean_text(raw) == "The consultation closed.\nNext paragraph\n\nEnd"


def test_clean_text_empty_is_none() -> None:
    assert clean_text("") is None
    assert clean_text(" \n\t ") is None
    assert clean_text(None) is None


def test_normalize_text_collapses_spaces_and_blank_runs() -> None:
    assert normalize_text("a\u00a0 b\r\n\n\n\nc  d") == "a b\n\nc d"


def test_title_case_and_word_count() -> None:
    assert to_title_case("CAR PARKING STRATEGY") == "Car Parking Strategy"
    assert count_words("  one two\nthree ") == 3


def test_detect_tables_needs_three_separator_lines() -> None:
    assert detect_tables("a | b | c\nd | e | f\ng | h | i")
    assert not detect_tables("a | b | c\nplain text")
