"""Tests for model-context assembly."""

from vibranium.llm.context import (
    CONTEXT_ROLE,
    DEFAULT_AI_CONTEXT,
    SHOULD_ANSWER_CONTEXT,
    build_context,
    context_entry,
    summarization_prompt,
)


def test_context_entry_defaults_to_system_role() -> None:
    assert context_entry("This is a test message") == {
        "role": CONTEXT_ROLE,
        "content": "This is a test message",
    }


def test_summarization_prompt_numbers_messages() -> None:
    result = summarization_prompt(["Message 1", "Message 2"])
    assert "Summarize the following messages:" in result
    assert "1. Message 1" in result
    assert "2. Message 2" in result


def test_build_context_order() -> None:
    messages = build_context(
        "what happened?",
        preamble=DEFAULT_AI_CONTEXT,
        supplementary=[SHOULD_ANSWER_CONTEXT],
        memory=["earlier note", "another note"],
    )

    assert messages == [
        DEFAULT_AI_CONTEXT,
        SHOULD_ANSWER_CONTEXT,
        {"role": "system", "content": "earlier note"},
        {"role": "system", "content": "another note"},
        {"role": "user", "content": "what happened?"},
    ]


def test_build_context_minimal() -> None:
    assert build_context("hi") == [DEFAULT_AI_CONTEXT, {"role": "user", "content": "hi"}]


def test_build_context_does_not_alias_inputs() -> None:
    messages = build_context("hi")
    messages[0]["content"] = "changed"
    assert DEFAULT_AI_CONTEXT["content"] != "changed"
