"""
Parse Stage Tests

Tests for:
1. Normalizer and tokenizer
2. Intent classifier (first-match order, fallback)
3. Entity extractor
4. Semantic expander
5. Capability mapper / strategy selector
6. Request parser (free text and structured input)
"""

import dataclasses

import pytest

from mcp_router.core.errors import MalformedInput
from mcp_router.core.types import RoutingRequest, StrategyKind
from mcp_router.nlp import (
    CapabilityMapper,
    EntityExtractor,
    IntentClassifier,
    RequestParser,
    SemanticExpander,
    SynonymTable,
    normalize,
    tokenize,
)


# --- Normalizer ---

def test_normalize_lowercases_and_trims():
    assert normalize("  Weather in SEOUL \n") == "weather in seoul"


def test_normalize_empty_input():
    assert normalize("") == ""
    assert normalize(None) == ""
    assert normalize("   ") == ""


def test_tokenize_drops_stop_words_and_duplicates():
    assert tokenize("what is the bitcoin price") == ["bitcoin", "price"]
    assert tokenize("a b cc cc dd") == ["cc", "dd"]
    assert tokenize("") == []


# --- Intent classifier ---

def test_classify_weather():
    label = IntentClassifier().classify("weather in seoul")
    assert label.name == "weather_query"
    assert label.confidence == pytest.approx(0.95)


def test_classify_empty_text_falls_back():
    label = IntentClassifier().classify("")
    assert label.name == "general_query"
    assert label.confidence == pytest.approx(0.3)
    assert label.matched_pattern == "fallback"


def test_classify_unmatched_text_falls_back():
    label = IntentClassifier().classify("what is the meaning of life")
    assert label.name == "general_query"


def test_classify_is_first_match_in_table_order():
    """Weather outranks generic search when both patterns match."""
    text = "search for the weather forecast today"
    label = IntentClassifier().classify(text)
    assert label.name == "weather_query"

    # The search pattern alone would have matched
    search_only = IntentClassifier([("web_search", [r"search.*?for\s+(.+)"], 0.85)])
    assert search_only.classify(text).name == "web_search"


def test_classify_custom_table_order_wins():
    classifier = IntentClassifier([
        ("first", ["foo"], 0.5),
        ("second", ["foo"], 0.9),
    ])
    assert classifier.classify("foo bar").name == "first"


def test_classify_confidence_is_clamped():
    classifier = IntentClassifier([("too_sure", ["x"], 1.7), ("negative", ["y"], -1.0)])
    assert classifier.classify("x").confidence == 1.0
    assert classifier.classify("y").confidence == 0.0


@pytest.mark.parametrize("text,intent", [
    ("bitcoin price", "crypto_price_query"),
    ("how much is ethereum worth", "crypto_price_query"),
    ("stock price of aapl", "stock_price_query"),
    ("look up python tutorials", "web_search"),
    ("order food for dinner", "food_delivery"),
    ("book a flight to tokyo", "flight_booking"),
    ("book a hotel room in paris", "hotel_booking"),
    ("translate hello to french", "translation"),
])
def test_classify_known_intents(text, intent):
    assert IntentClassifier().classify(text).name == intent


def test_classify_confidence_always_in_range():
    classifier = IntentClassifier()
    for text in ["", "weather in seoul", "bitcoin price", "random words", "google cats"]:
        label = classifier.classify(text)
        assert 0.0 <= label.confidence <= 1.0


# --- Entity extractor ---

def test_extract_location_from_in_phrase():
    assert EntityExtractor().extract("weather in Seoul") == {"location": "Seoul"}


def test_extract_multi_word_location():
    entities = EntityExtractor().extract("hotels in New York")
    assert entities["location"] == "New York"


def test_extract_crypto_without_false_location():
    """'in' inside 'bitcoin' is not a location phrase."""
    entities = EntityExtractor().extract("what is the bitcoin price")
    assert entities == {"cryptocurrency": "bitcoin"}


def test_extract_stock_symbol():
    entities = EntityExtractor().extract("stock price of AAPL")
    assert entities == {"stock_symbol": "AAPL"}


def test_extract_skips_crypto_symbols_as_tickers():
    entities = EntityExtractor().extract("BTC to the moon")
    assert "stock_symbol" not in entities
    assert entities["cryptocurrency"] == "btc"


def test_extract_nothing():
    assert EntityExtractor().extract("") == {}
    assert EntityExtractor().extract("hello there") == {}


@pytest.mark.parametrize("text", [
    "What is the Bitcoin price",
    "Translate hello to Spanish",
    "search for Python tutorials",
])
def test_capitalized_words_are_not_locations(text):
    assert "location" not in EntityExtractor().extract(text)


# --- Semantic expander ---

def test_expand_query_terms():
    expanded = SemanticExpander().expand({"bitcoin"})
    assert expanded == {"bitcoin", "btc", "crypto", "cryptocurrency"}


def test_expand_is_bidirectional():
    assert "bitcoin" in SemanticExpander().expand({"btc"})
    assert "weather_lookup" in SemanticExpander().expand_capabilities({"forecast"})


def test_expand_is_idempotent():
    expander = SemanticExpander()
    for terms in [{"bitcoin"}, {"price", "stock"}, {"unknown"}, set()]:
        once = expander.expand(terms)
        assert expander.expand(once) == once

    caps = expander.expand_capabilities({"crypto_price", "market_data"})
    assert expander.expand_capabilities(caps) == caps


def test_expand_keeps_unknown_terms():
    assert SemanticExpander().expand({"zebra"}) == {"zebra"}


def test_synonym_table_merges_overlapping_groups():
    table = SynonymTable([["a", "b"], ["b", "c"], ["x", "y"]])
    assert table.synonyms("a") == frozenset({"a", "b", "c"})
    assert table.synonyms("C") == frozenset({"a", "b", "c"})
    assert "y" in table
    assert "z" not in table


def test_expand_query_seeds_intent_terms():
    expanded = SemanticExpander().expand_query([], "crypto_price_query")
    assert {"crypto", "exchange", "rate", "price", "bitcoin"} <= expanded


def test_expand_capabilities_separate_table():
    expander = SemanticExpander()
    assert "crypto" in expander.expand_capabilities(["crypto_price"])
    # Capability tags are not in the query table
    assert expander.expand(["crypto_price"]) == {"crypto_price"}


# --- Capability mapper ---

def test_map_capabilities():
    mapper = CapabilityMapper()
    assert mapper.map_capabilities("weather_query") == ("weather_lookup", "location_search")
    assert mapper.map_capabilities("something_else") == ("general",)


def test_classify_category():
    mapper = CapabilityMapper()
    assert mapper.classify_category("crypto_price_query") == "Finance"
    assert mapper.classify_category("food_delivery") == "Commerce"
    assert mapper.classify_category("unknown") == "General"


def test_select_strategy():
    mapper = CapabilityMapper()
    assert mapper.select_strategy("weather_query") == StrategyKind.DIRECT_EXECUTION
    assert mapper.select_strategy("food_delivery") == StrategyKind.PRESENT_OPTIONS
    assert mapper.select_strategy("crypto_trading") == StrategyKind.PRESENT_OPTIONS
    assert mapper.select_strategy("general_query") == StrategyKind.FALLBACK


# --- Request parser ---

def test_parse_free_text():
    parsed = RequestParser().parse(RoutingRequest(query="  Weather in Seoul "))
    assert parsed.normalized_text == "weather in seoul"
    assert parsed.intent == "weather_query"
    assert parsed.entities == {"location": "Seoul"}
    assert parsed.capabilities == ("weather_lookup", "location_search")
    assert parsed.category == "Weather"
    assert parsed.strategy == StrategyKind.DIRECT_EXECUTION
    assert parsed.structured is False


def test_parse_structured_bypasses_classification():
    parsed = RequestParser().parse(RoutingRequest(
        intent="stock_price_query",
        capabilities=["stock_price", "stock_price", " "],
    ))
    assert parsed.confidence == 1.0
    assert parsed.structured is True
    assert parsed.capabilities == ("stock_price",)
    assert parsed.category == "Finance"
    assert parsed.strategy == StrategyKind.DIRECT_EXECUTION
    assert parsed.raw_text == "Structured: stock_price_query"
    assert parsed.normalized_text == ""


def test_parse_structured_keeps_category_and_entities():
    parsed = RequestParser().parse(RoutingRequest(
        intent="custom_lookup",
        capabilities=["lookup"],
        category="Research",
        entities={"topic": "otters"},
    ))
    assert parsed.category == "Research"
    assert parsed.entities == {"topic": "otters"}
    assert parsed.strategy == StrategyKind.FALLBACK


@pytest.mark.parametrize("request_", [
    RoutingRequest(),
    RoutingRequest(query=""),
    RoutingRequest(query="   \n\t"),
    RoutingRequest(query=42),
    RoutingRequest(intent="weather_query"),
])
def test_parse_malformed_input(request_):
    with pytest.raises(MalformedInput):
        RequestParser().parse(request_)


def test_parsed_request_is_immutable():
    parsed = RequestParser().parse(RoutingRequest(query="bitcoin price"))
    with pytest.raises(dataclasses.FrozenInstanceError):
        parsed.intent = "other"
