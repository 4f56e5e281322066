"""Tests for symptom, code and name normalization."""

import pytest

from triage_catalog.utils.normalization import (
    collapse_similar,
    normalize_code,
    normalize_name,
    normalize_symptom,
    normalize_symptoms,
    parse_symptom_field,
    prettify_symptom,
    symptoms_overlap,
)


@pytest.mark.parametrize(
    "raw",
    ["#Depressed_Mood", "depressed mood", "Depressed-Mood", "  depressed   mood ", "DEPRESSED__MOOD"],
)
def test_spellings_collapse_to_one_key(raw):
    assert normalize_symptom(raw) == "depressed_mood"


def test_normalize_is_idempotent():
    for raw in ["#Loss of Interest", "_insomnia_", "Low-self esteem", "##a b"]:
        once = normalize_symptom(raw)
        assert normalize_symptom(once) == once


def test_leading_markers_are_stripped():
    assert normalize_symptom("#insomnia") == "insomnia"
    assert normalize_symptom("##insomnia") == "insomnia"
    assert normalize_symptom("# insomnia") == "insomnia"


def test_empty_and_marker_only_input_is_empty():
    assert normalize_symptom(None) == ""
    assert normalize_symptom("") == ""
    assert normalize_symptom("#") == ""
    assert normalize_symptom("   ") == ""


def test_normalize_symptoms_dedupes_and_drops_empties():
    tokens = normalize_symptoms(["Insomnia", "#insomnia", "", "#", "Depressed mood"])
    assert tokens == ["insomnia", "depressed_mood"]


def test_overlap_is_bidirectional_substring():
    assert symptoms_overlap("insomnia", "chronic_insomnia")
    assert symptoms_overlap("chronic_insomnia", "insomnia")
    assert not symptoms_overlap("insomnia", "fatigue")
    assert not symptoms_overlap("", "insomnia")


def test_collapse_similar_keeps_first_of_each_group():
    assert collapse_similar(["anxiety", "anxiety_or_tension", "insomnia"]) == ["anxiety", "insomnia"]


def test_prettify_symptom():
    assert prettify_symptom("depressed_mood") == "Depressed mood"
    assert prettify_symptom("") == ""


def test_parse_symptom_field_accepts_delimited_string():
    assert parse_symptom_field("Depressed mood; Insomnia, fatigue") == [
        "depressed_mood",
        "insomnia",
        "fatigue",
    ]
    assert parse_symptom_field(["A b", None, "a-b"]) == ["a_b"]
    assert parse_symptom_field(None) == []


def test_normalize_code_blank_is_none():
    assert normalize_code(" F32.1 ") == "F32.1"
    assert normalize_code("   ") is None
    assert normalize_code(None) is None


def test_normalize_name_collapses_whitespace():
    assert normalize_name("  Major   Depressive Disorder ") == "Major Depressive Disorder"
    assert normalize_name("   ") is None
