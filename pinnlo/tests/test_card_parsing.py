import unittest
from datetime import datetime, timezone

from shared.blueprints import BLUEPRINTS, get_blueprint, list_blueprints
from shared.card_parsing import (
    CardParseError,
    extract_cards,
    normalise_confidence,
    parse_json_content,
    requested_card_count,
    transform_generated_cards,
)
from shared.json_utils import camel_to_snake, convert_keys, snake_to_camel
from shared.types import is_valid_card_type


class ParseJsonContentTests(unittest.TestCase):
    def test_plain_json(self):
        self.assertEqual(parse_json_content('{"cards": []}'), {"cards": []})

    def test_fenced_json(self):
        content = 'Here you go:\n```json\n[{"title": "A"}]\n```\nEnjoy'
        self.assertEqual(parse_json_content(content), [{"title": "A"}])

    def test_invalid_json(self):
        with self.assertRaises(CardParseError):
            parse_json_content("no json here")
        with self.assertRaises(CardParseError):
            parse_json_content("")


class ExtractCardsTests(unittest.TestCase):
    def test_shapes(self):
        self.assertEqual(extract_cards([{"title": "A"}]), [{"title": "A"}])
        self.assertEqual(extract_cards({"cards": [{"title": "B"}]}), [{"title": "B"}])
        self.assertEqual(
            extract_cards({"valuePropositions": [{"title": "C"}], "note": "x"}),
            [{"title": "C"}],
        )
        self.assertEqual(extract_cards({"title": "Single"}), [{"title": "Single"}])

    def test_card_key_that_is_not_a_list(self):
        parsed = {"cardCount": 2, "title": "Lonely"}
        self.assertEqual(extract_cards(parsed), [parsed])

    def test_requested_card_count(self):
        self.assertEqual(requested_card_count("Generate exactly 5 cards"), "5")
        self.assertIsNone(requested_card_count("Generate some cards"))
        self.assertIsNone(requested_card_count(None))


class TransformGeneratedCardsTests(unittest.TestCase):
    def test_preview_cards(self):
        now = datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        cards = transform_generated_cards(
            [{"title": "A", "priority": "high"}, "garbage", {"title": "B"}],
            "okrs",
            strategy_id=7,
            now=now,
        )
        millis = int(now.timestamp() * 1000)
        self.assertEqual([c["id"] for c in cards], [f"OKR-{millis}-0", f"OKR-{millis}-2"])
        self.assertEqual(cards[0]["priority"], "high")
        self.assertEqual(cards[1]["priority"], "medium")
        self.assertEqual(cards[1]["confidence"]["level"], "medium")
        self.assertEqual(cards[0]["cardType"], "okrs")
        self.assertEqual(cards[0]["strategyId"], 7)
        self.assertEqual(cards[0]["generatedAt"], now.isoformat())

    def test_unknown_blueprint(self):
        self.assertEqual(transform_generated_cards([{"title": "A"}], "nope"), [])

    def test_string_confidence_becomes_level(self):
        cards = transform_generated_cards(
            [{"title": "A", "confidence": "High", "priority": 2, "keyPoints": "one"}],
            "vision",
        )
        self.assertEqual(cards[0]["confidence"]["level"], "high")
        self.assertEqual(cards[0]["priority"], "2")
        self.assertEqual(cards[0]["keyPoints"], [])


class NormaliseConfidenceTests(unittest.TestCase):
    def test_shapes(self):
        self.assertEqual(normalise_confidence(" LOW ")["level"], "low")
        self.assertEqual(
            normalise_confidence({"level": "high", "rationale": "r"}),
            {"level": "high", "rationale": "r"},
        )
        for value in (None, "", {}, 5, ["high"]):
            self.assertEqual(normalise_confidence(value)["level"], "medium")


class BlueprintTests(unittest.TestCase):
    def test_prefix(self):
        self.assertEqual(get_blueprint("strategicContext").prefix, "SC")
        self.assertEqual(get_blueprint("customer-journey").prefix, "CUS")

    def test_lookup_and_filter(self):
        with self.assertRaises(KeyError):
            get_blueprint("nope")
        core = list_blueprints("Core Strategy")
        self.assertIn("vision", [b.id for b in core])
        self.assertTrue(all(b.category == "Core Strategy" for b in core))
        self.assertEqual(len(list_blueprints()), len(BLUEPRINTS))

    def test_required_fields(self):
        self.assertIn("visionType", get_blueprint("vision").required_fields())
        self.assertNotIn("guidingPrinciples", get_blueprint("vision").required_fields())

    def test_card_types(self):
        self.assertTrue(is_valid_card_type("strategic-context"))
        self.assertTrue(is_valid_card_type("valuePropositions"))
        self.assertFalse(is_valid_card_type("market-insight-x"))
        self.assertFalse(is_valid_card_type(None))


class JsonUtilsTests(unittest.TestCase):
    def test_case_helpers(self):
        self.assertEqual(snake_to_camel("card_creator_config"), "cardCreatorConfig")
        self.assertEqual(camel_to_snake("selectedBlueprintCards"), "selected_blueprint_cards")

    def test_convert_keys_recurses(self):
        data = {"generation_options": {"max_cards": 3}, "cards": [{"card_type": "vision"}]}
        self.assertEqual(
            convert_keys(data, "snake_to_camel"),
            {"generationOptions": {"maxCards": 3}, "cards": [{"cardType": "vision"}]},
        )
        self.assertEqual(convert_keys(convert_keys(data, "snake_to_camel"), "camel_to_snake"), data)


if __name__ == "__main__":
    unittest.main()
