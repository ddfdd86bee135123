"""Prompt text and model-context assembly."""

from collections.abc import Iterable

CONTEXT_ROLE = "system"

DEFAULT_AI_CONTEXT = {
    "role": CONTEXT_ROLE,
    "content": (
        "You are a Helpful Slack assistant. You give information about messages and "
        "threads in a Slack channel and help users find information. You can also "
        "accept questions and provide answers."
    ),
}

SHOULD_ANSWER_CONTEXT = {
    "role": CONTEXT_ROLE,
    "content": (
        "Interpret the user's message, are they requesting an answer or just chatting? "
        "The purpose of this context is to determine if the assistant should answer the "
        "user or not. If the query includes words such as 'talk to me', 'AI', or anything "
        "that could mean it's calling this assistant, it means that the answer should be "
        "yes, for other inputs, make a decision based on your best judgment. If a question "
        "is being made, except if it is directed at another user, you should probably "
        "answer. If it has 'channel' or 'thread' in the message the answer should probably "
        "be yes, but verify anyway."
    ),
}

SUMMARIZATION_QUERY = (
    "Summarize the provided messages. Keep it short and mention who said what "
    "when it matters."
)

NOT_FOUND_PROMPT_PREFIX = "come up with a nice error message for: "


def context_entry(text: str, role: str = CONTEXT_ROLE) -> dict[str, str]:
    """Wrap text as a role-tagged model message."""
    return {"role": role, "content": text}


def summarization_prompt(messages: Iterable[str]) -> str:
    """Instruction listing the messages to summarize, numbered from 1."""
    numbered = "\n".join(f"{i}. {msg}" for i, msg in enumerate(messages, start=1))
    return (
        "Summarize the following messages:\n\n"
        f"{numbered}\n\n"
        "Also include information that is present in the messages that you "
        "consider worth mentioning."
    )


def build_context(
    current_message: str,
    *,
    preamble: dict[str, str] = DEFAULT_AI_CONTEXT,
    supplementary: Iterable[dict[str, str]] = (),
    memory: Iterable[str] = (),
) -> list[dict[str, str]]:
    """Assemble the ordered message list sent to the model.

    Order: preamble, supplementary instructions, each retrieved memory as a
    system entry, then the current message as the user entry.
    """
    messages = [dict(preamble)]
    messages.extend(dict(entry) for entry in supplementary)
    messages.extend(context_entry(text) for text in memory)
    messages.append(context_entry(current_message, role="user"))
    return messages
