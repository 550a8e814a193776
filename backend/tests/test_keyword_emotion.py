import pytest

from echo_server.keyword_emotion import (
    DEFAULT_EMOTION,
    EMOTION_CATEGORIES,
    EMOTION_KEYWORDS,
    calculate_intensity,
    classify,
)


def test_angry_text_is_anger_with_boosted_intensity():
    result = classify("I am so angry and furious about this")
    assert result.emotion == "anger"
    assert result.intensity >= 0.7


def test_childhood_text_is_nostalgia():
    result = classify("Walking through the park reminds me of my childhood")
    assert result.emotion == "nostalgia"


def test_no_keyword_falls_back_to_contemplative():
    result = classify("xyz")
    assert result.emotion == DEFAULT_EMOTION == "contemplative"
    assert result.intensity == pytest.approx(0.53)


def test_empty_and_none_text_still_classified():
    assert classify("") == (DEFAULT_EMOTION, 0.5)
    assert classify(None) == (DEFAULT_EMOTION, 0.5)


def test_matching_is_case_insensitive():
    assert classify("I feel SCARED tonight").emotion == "fear"


def test_higher_priority_category_wins():
    # "happy" is joy, "hate" is anger; anger is checked first
    assert classify("happy but I hate waiting").emotion == "anger"
    # "tears" is sadness, "grateful" is lower priority
    assert classify("grateful tears").emotion == "sadness"


def test_priority_order_is_explicit():
    assert EMOTION_CATEGORIES[:4] == ["despair", "anger", "fear", "sadness"]
    assert EMOTION_CATEGORIES[-1] == "contemplative"


@pytest.mark.parametrize("emotion,keywords", EMOTION_KEYWORDS)
def test_each_category_reachable_through_own_keyword(emotion, keywords):
    higher = [kw for category, kws in EMOTION_KEYWORDS[:EMOTION_CATEGORIES.index(emotion)] for kw in kws]
    reachable = [kw for kw in keywords if not any(h in kw for h in higher)]
    assert reachable, f"{emotion} has no keyword free of higher-priority matches"
    assert classify(reachable[0]).emotion == emotion


def test_intensity_uses_generic_boosts_for_unlisted_category():
    # peace has no booster list of its own: really/so/very
    assert calculate_intensity("very calm", "peace") == pytest.approx(0.5 + 0.2 + 0.09)
    # "deeply" only boosts love
    assert calculate_intensity("deeply", "peace") == pytest.approx(0.56)
    assert calculate_intensity("deeply", "love") == pytest.approx(0.76)


def test_length_bonus_is_capped():
    text = "q" * 1000
    assert calculate_intensity(text, "contemplative") == pytest.approx(0.8)


def test_intensity_never_exceeds_one():
    text = "I really, so very extremely totally completely hate this, I am furious " * 5
    result = classify(text)
    assert result.emotion == "anger"
    assert result.intensity == 1.0


@pytest.mark.parametrize("text", [
    "", "a", "I want to die", "so so so so", "The old lighthouse at dawn",
    "Thank you, I feel blessed and lucky", "🙂" * 300,
])
def test_classify_always_returns_known_category_in_range(text):
    result = classify(text)
    assert result.emotion in EMOTION_CATEGORIES
    assert 0.0 <= result.intensity <= 1.0
