"""Group a flat session log into prompt-anchored conversations."""

from dataclasses import dataclass, field

from .parser import LogEntry, extract_text_from_content


@dataclass
class Conversation:
    user_text: str
    timestamp: str
    entries: list[LogEntry] = field(default_factory=list)
    is_continuation: bool = False


def prompt_text(entry):
    """Return the prompt text if ``entry`` starts a conversation, else ''."""
    if entry.type != "user":
        return ""
    return extract_text_from_content(entry.message.content)


def group_conversations(loglines):
    """Split log entries into conversations.

    Every user entry with text opens a new conversation that collects the
    following entries (assistant replies, tool results) until the next
    prompt. Entries before the first prompt are dropped.
    """
    conversations = []
    current_conv = None
    for entry in loglines:
        user_text = prompt_text(entry)
        if user_text:
            if current_conv:
                conversations.append(current_conv)
            current_conv = Conversation(
                user_text=user_text,
                timestamp=entry.timestamp,
                entries=[entry],
                is_continuation=entry.is_compact_summary,
            )
        elif current_conv:
            current_conv.entries.append(entry)
    if current_conv:
        conversations.append(current_conv)
    return conversations
