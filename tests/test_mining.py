from surfaced.visibility.mining import (
    brand_variants,
    detect_sentiment,
    extract_competitors,
    extract_context,
    extract_list_position,
    extract_position,
    find_mention,
    response_quality,
)

RESPONSE = """Here are some great places to buy hiking socks:

1. Amazon - huge selection
2. Cool Socks - excellent merino socks, I recommend them
3. Etsy - handmade options
"""


def test_brand_variants_skip_short_forms():
    assert brand_variants("Blue Bottle") == ["blue bottle", "bluebottle", "blue-bottle"]
    assert brand_variants("HP") == []


def test_find_mention_is_case_insensitive():
    assert find_mention(RESPONSE, ["nope", "COOL SOCKS"]) == "COOL SOCKS"
    assert find_mention(RESPONSE, ["wool world"]) is None


def test_position_counts_numbered_items_before_mention():
    assert extract_position(RESPONSE, "cool socks") == 2
    assert extract_position("Cool Socks is great. 1. Other", "cool socks") == 1
    assert extract_position(RESPONSE, "missing") is None


def test_list_position_counts_list_lines():
    text = "Options:\n- Alpha\n- Beta\n* Cool-Socks shop\nNot a list line"

    assert extract_list_position(text, brand_variants("Cool Socks")) == 3
    assert extract_list_position("no lists here", ["cool socks"]) is None


def test_context_window_around_mention():
    context = extract_context("x" * 100 + "Cool Socks" + "y" * 300, "cool socks")

    assert context == "x" * 50 + "Cool Socks" + "y" * 140
    assert extract_context("nothing", "cool socks") is None


def test_sentiment_buckets():
    assert detect_sentiment("An excellent and trusted brand") == "positive"
    assert detect_sentiment("Customers report a problem with sizing") == "negative"
    assert detect_sentiment("Great socks but overpriced") == "neutral"
    assert detect_sentiment("Socks exist") == "neutral"


def test_response_quality():
    assert response_quality(RESPONSE, True) == "good"
    assert response_quality("Cool Socks sells socks", True) == "partial"
    assert response_quality(RESPONSE, False) == "none"


def test_competitors_exclude_own_brand():
    assert extract_competitors(RESPONSE, ["cool socks"]) == ["amazon", "etsy"]
    assert extract_competitors("Shop at Amazon", ["amazon"]) == []
