"""
AI Clipboard Backend — Response Normalizer Tests
==================================================

What we test:
    ✅ JSON replies, bare and wrapped in prose or code fences
    ✅ Key synonyms and case-insensitive keys
    ✅ Labelled plain-text replies
    ✅ Fallback for blank, malformed and unparseable replies
    ✅ Topic truncation at word boundaries
"""

from unittest.mock import patch

import pytest

from aiclipboard.schemas.clipboard import ProcessedData
from aiclipboard.services.response_normalizer import (
    fallback_result,
    normalize,
    truncate_topic,
)


class TestTruncateTopic:
    def test_short_text_is_unchanged(self):
        assert truncate_topic("Buy milk") == "Buy milk"

    def test_exactly_limit_is_unchanged(self):
        text = "x" * 30
        assert truncate_topic(text) == text

    def test_long_text_drops_partial_word(self):
        text = "Meeting with the design team about the new logo"
        assert truncate_topic(text) == "Meeting with the design team…"

    def test_single_long_word_is_cut(self):
        assert truncate_topic("a" * 40) == "a" * 30 + "…"


class TestJsonPath:
    def test_bare_json_object(self):
        raw = (
            '{"topic": "Lunch with Bob", "entities": ["Bob"], "intent": "meeting", '
            '"categories": ["Food"], "actionItems": ["Book a table"]}'
        )
        result = normalize(raw, "original")

        assert result.topic == "Lunch with Bob"
        assert result.entities == ["Bob"]
        assert result.intent == "meeting"
        assert result.categories == ["Food"]
        assert result.action_items == ["Book a table"]

    def test_json_inside_code_fence(self):
        raw = (
            "Here is the analysis:\n```json\n"
            '{"topic": "Groceries", "intent": "shopping", "entities": [], '
            '"categories": ["Shopping"], "actionItems": ["Buy milk"]}\n```\nHope this helps!'
        )
        result = normalize(raw, "original")

        assert result.topic == "Groceries"
        assert result.intent == "shopping"
        assert result.action_items == ["Buy milk"]

    def test_key_synonyms_and_case(self):
        raw = (
            '{"MainTopic": "Quarterly report", "PrimaryIntent": "task", '
            '"action_items": ["Send the draft"]}'
        )
        result = normalize(raw, "original")

        assert result.topic == "Quarterly report"
        assert result.intent == "task"
        assert result.action_items == ["Send the draft"]

    def test_non_list_fields_become_defaults(self):
        raw = '{"topic": "Note", "entities": "Bob", "categories": null, "actionItems": 3}'
        result = normalize(raw, "original")

        assert result.entities == []
        assert result.categories == ["Miscellaneous"]
        assert result.action_items == ["No action needed"]

    def test_missing_intent_defaults_to_note(self):
        result = normalize('{"topic": "Something"}', "original")
        assert result.intent == "note"

    def test_whitespace_topic_keeps_other_fields(self):
        raw = '{"topic": "   ", "intent": " ", "categories": ["Work"], "actionItems": ["Reply"]}'
        result = normalize(raw, "original")

        assert result.topic == "Unknown topic"
        assert result.intent == "note"
        assert result.categories == ["Work"]
        assert result.action_items == ["Reply"]

    def test_unparseable_braces_fall_through_to_text(self):
        result = normalize("{not json at all}", "original")
        assert result.topic == "{not json at all}"
        assert result.intent == "note"


class TestTextPath:
    def test_labelled_sections(self):
        raw = (
            "Topic: Grocery run\n\n"
            "Entities: Alice, Bob\n\n"
            "Intent: shopping\n\n"
            "Categories:\n- Shopping\n- Food\n\n"
            "Action Items:\n1. Buy milk\n2. Buy eggs"
        )
        result = normalize(raw, "original")

        assert result.topic == "Grocery run"
        assert result.entities == ["Alice", "Bob"]
        assert result.intent == "shopping"
        assert result.categories == ["Shopping", "Food"]
        assert result.action_items == ["Buy milk", "Buy eggs"]

    def test_alternate_labels(self):
        raw = "Subject: Trip planning\n\nPurpose: task\n\nTags: Travel, Personal"
        result = normalize(raw, "original")

        assert result.topic == "Trip planning"
        assert result.intent == "task"
        assert result.categories == ["Travel", "Personal"]

    def test_unlabelled_reply_uses_first_line(self):
        result = normalize("A reminder about the dentist\nSomething else", "original")

        assert result.topic == "A reminder about the dentist"
        assert result.intent == "note"
        assert result.categories == ["Miscellaneous"]
        assert result.action_items == ["No action needed"]


class TestFallback:
    def test_blank_reply_uses_original_text(self):
        result = normalize("   \n ", "Pick up the kids at five")

        assert result.topic == "Pick up the kids at five"
        assert result.entities == []
        assert result.intent == "note"
        assert result.categories == ["Miscellaneous"]
        assert result.action_items == ["No action needed"]

    def test_blank_original_gets_untitled(self):
        assert fallback_result("   ").topic == "Untitled"

    @pytest.mark.parametrize(
        "raw",
        [
            "}{",
            "{{{{",
            "[1, 2, 3]",
            "null",
            '{"topic": {"nested": [1, 2]}, "entities": {"a": 1}}',
            '{"categories": [null, "", 7], "intent": false}',
            "\x00\x01\x02",
            "{" * 2000 + "}",
            "Topic:\n\nIntent:\n\nCategories:",
            "💥" * 500,
        ],
    )
    def test_garbage_never_raises(self, raw):
        result = normalize(raw, "original")

        assert isinstance(result, ProcessedData)
        assert result.topic
        assert result.categories
        assert result.action_items

    def test_text_parser_crash_uses_fallback(self):
        with patch(
            "aiclipboard.services.response_normalizer._from_text",
            side_effect=RuntimeError("boom"),
        ):
            result = normalize("Topic: Groceries", "Pick up the kids at five")

        assert result == fallback_result("Pick up the kids at five")

    def test_json_parser_crash_uses_fallback(self):
        with patch(
            "aiclipboard.services.response_normalizer._from_json",
            side_effect=TypeError("unexpected shape"),
        ):
            result = normalize('{"topic": "Groceries"}', "Pick up the kids at five")

        assert result == fallback_result("Pick up the kids at five")
