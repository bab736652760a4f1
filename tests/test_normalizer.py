from __future__ import annotations

import pytest

from krishisakha.nlp import InvalidQuery, detect_language, preprocess_query, require_valid
from krishisakha.nlp.normalizer import INVALID_QUERY_MESSAGE, clean_text


def test_clean_text_collapses_whitespace_and_lowercases():
    assert clean_text("  What   is the\tWEATHER  ") == "what is the weather"


def test_clean_text_strips_disallowed_characters_and_repeats():
    assert clean_text("Help!!!! my crop @#$ is dyinggggg???") == "help! my crop is dyingg?"


def test_clean_text_keeps_prices():
    assert clean_text("sold at 10000 rupees") == "sold at 10000 rupees"


@pytest.mark.parametrize(
    "text",
    ["Wheat prices in Punjab", "Khad kaise daale?!!", "गेहूं का भाव क्या है", "AAAAaaa rain....", "  x  "],
)
def test_clean_text_is_idempotent(text):
    once = clean_text(text)
    assert clean_text(once) == once


@pytest.mark.parametrize(
    "text",
    [
        "Wheat prices in Punjab",
        "fasal mein keet lag gaya hai",
        "Kisan bhai, khad kaise daale??",
        "PAANI kab dena hai mitti sukhi hai",
        "wheat गेहूं ka bhav kya hai",
        "ধান চাষে fertlizer কত",
        "best fertlizer for wheet crop",
        "irigation schedule for soyl with low watr!!!!",
        "beej aur subsidi ki jankari",
        "Helllllp my cropp is dyinggggg",
    ],
)
def test_preprocess_query_is_idempotent(text):
    once = preprocess_query(text).cleaned_text
    assert preprocess_query(once).cleaned_text == once


@pytest.mark.parametrize(
    ("text", "language"),
    [
        ("गेहूं की खेती", "hin"),
        ("ধান চাষ", "ben"),
        ("ઘઉંની ખેતી", "guj"),
        ("ଧାନ ଚାଷ", "ori"),
        ("fasal mein keet lag gaya hai", "hin-rom"),
        ("when should i sow wheat", "eng"),
    ],
)
def test_detect_language_by_script(text, language):
    assert detect_language(text) == language


def test_preprocess_transliterates_known_hinglish_words():
    query = preprocess_query("Kisan ki fasal")
    assert query.detected_language == "hin-rom"
    assert "किसान" in query.cleaned_text
    assert "फसल" in query.cleaned_text


def test_preprocess_corrects_domain_spelling():
    query = preprocess_query("Best fertlizer and pestcide for cotton")
    assert query.cleaned_text == "best fertilizer and pesticide for cotton"
    assert query.is_valid


@pytest.mark.parametrize("text", ["hi", "", "   ", "12345", "?!?!"])
def test_short_or_letterless_input_is_invalid(text):
    query = preprocess_query(text)
    assert not query.is_valid
    assert query.error == INVALID_QUERY_MESSAGE


def test_require_valid_raises_with_user_message():
    with pytest.raises(InvalidQuery) as excinfo:
        require_valid(preprocess_query("hi"))
    assert excinfo.value.message == INVALID_QUERY_MESSAGE


def test_preprocess_keeps_original_text():
    query = preprocess_query("  Wheat   PRICES ")
    assert query.original_text == "  Wheat   PRICES "
    assert query.cleaned_text == "wheat prices"
