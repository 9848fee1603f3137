from __future__ import annotations

from types import SimpleNamespace

from src.orchestrator.intents import Intent, Language
from src.services.intent_rules import RuleBasedIntentClassifier, detect_language


def _classify(text: str, classifier: RuleBasedIntentClassifier) -> Intent:
    state = SimpleNamespace(message=text)
    return classifier.classify(state)


def test_greetings_are_conversational():
    classifier = RuleBasedIntentClassifier()
    assert _classify("hello", classifier) is Intent.CONVERSATIONAL
    assert _classify("Hi", classifier) is Intent.CONVERSATIONAL
    assert _classify("Xin chào!", classifier) is Intent.CONVERSATIONAL


def test_thanks_in_vietnamese_is_conversational():
    classifier = RuleBasedIntentClassifier()
    assert _classify("cảm ơn", classifier) is Intent.CONVERSATIONAL


def test_room_question_needs_tools():
    classifier = RuleBasedIntentClassifier()
    intent = _classify("How many available rooms in house 1?", classifier)
    assert intent is Intent.TOOL_REQUEST


def test_words_containing_hi_are_not_greetings():
    classifier = RuleBasedIntentClassifier()
    assert _classify("show this month", classifier) is Intent.TOOL_REQUEST


def test_phrases_match_whole_words_only():
    classifier = RuleBasedIntentClassifier()
    assert _classify("Do they have rooms?", classifier) is Intent.TOOL_REQUEST
    assert _classify("hey there", classifier) is Intent.CONVERSATIONAL
    assert _classify("thank you!", classifier) is Intent.CONVERSATIONAL


def test_long_messages_are_never_small_talk():
    classifier = RuleBasedIntentClassifier()
    message = "hello, please list all unpaid invoices for house 2 this month"
    assert _classify(message, classifier) is Intent.TOOL_REQUEST


def test_empty_message_is_not_conversational():
    assert RuleBasedIntentClassifier().is_conversational("   ") is False


def test_language_detection():
    assert detect_language("Còn phòng trống không?") is Language.VIETNAMESE
    assert detect_language("How many rooms are free?") is Language.ENGLISH
    assert detect_language("") is Language.ENGLISH
