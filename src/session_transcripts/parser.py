"""Read Claude Code session files into normalized log entries."""

import json
import re
from dataclasses import dataclass, field
from pathlib import Path

NO_SUMMARY = "(no summary)"

MESSAGE_TYPES = ("user", "assistant")

# Regex to detect GitHub repo from git push output (e.g., github.com/owner/repo/pull/new/branch)
GITHUB_REPO_PATTERN = re.compile(
    r"github\.com/([a-zA-Z0-9_-]+/[a-zA-Z0-9_-]+)/pull/new/"
)


class SessionFormatError(ValueError):
    """Raised when a JSON session file cannot be parsed as a whole."""

    def __init__(self, path, reason):
        self.path = Path(path)
        super().__init__(f"Could not parse session file {self.path}: {reason}")


@dataclass
class Message:
    role: str
    content: str | list = ""


@dataclass
class LogEntry:
    type: str
    message: Message
    timestamp: str = ""
    is_compact_summary: bool = False


@dataclass
class SessionData:
    loglines: list[LogEntry] = field(default_factory=list)
    source_format: str = "json"


def extract_text_from_content(content):
    """Extract plain text from message content.

    Handles both string content (older format) and array content (newer format).

    Args:
        content: Either a string or a list of content blocks like
                 [{"type": "text", "text": "..."}, {"type": "image", ...}]

    Returns:
        The extracted text as a string, or empty string if no text found.
    """
    if isinstance(content, str):
        return content.strip()
    elif isinstance(content, list):
        # Extract text from content blocks of type "text"
        texts = []
        for block in content:
            if isinstance(block, dict) and block.get("type") == "text":
                text = block.get("text", "")
                if isinstance(text, str) and text:
                    texts.append(text)
        return " ".join(texts).strip()
    return ""


def normalize_entry(obj):
    """Convert one decoded log object into a LogEntry.

    Returns None for anything that is not a user or assistant entry.
    """
    if not isinstance(obj, dict):
        return None
    entry_type = obj.get("type")
    if entry_type not in MESSAGE_TYPES:
        return None

    raw_message = obj.get("message")
    if not isinstance(raw_message, dict):
        raw_message = {}
    content = raw_message.get("content", "")
    if not isinstance(content, (str, list)):
        content = ""
    role = raw_message.get("role")
    message = Message(role=role if isinstance(role, str) else entry_type, content=content)

    timestamp = obj.get("timestamp")
    return LogEntry(
        type=entry_type,
        message=message,
        timestamp=timestamp if isinstance(timestamp, str) else "",
        is_compact_summary=bool(obj.get("isCompactSummary")),
    )


def parse_session_data(data, source_format="json"):
    """Normalize an already-decoded ``{"loglines": [...]}`` payload."""
    loglines = data.get("loglines", []) if isinstance(data, dict) else []
    if not isinstance(loglines, list):
        loglines = []
    entries = []
    for obj in loglines:
        entry = normalize_entry(obj)
        if entry is not None:
            entries.append(entry)
    return SessionData(loglines=entries, source_format=source_format)


def parse_session_file(filepath):
    """Parse a session file and return normalized data.

    JSONL files (Claude Code local sessions) are read line by line and any
    line that is not valid JSON or not a user/assistant entry is skipped.
    Other files are treated as a JSON export with a ``loglines`` array and
    must parse as a whole.
    """
    filepath = Path(filepath)

    if filepath.suffix == ".jsonl":
        return _parse_jsonl_file(filepath)

    with open(filepath, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise SessionFormatError(filepath, e) from e
    return parse_session_data(data, source_format="json")


def _parse_jsonl_file(filepath: Path):
    loglines = []
    for obj in _iter_jsonl_objects(filepath):
        entry = normalize_entry(obj)
        if entry is not None:
            loglines.append(entry)
    return SessionData(loglines=loglines, source_format="jsonl")


def truncate_summary(text, max_length):
    if len(text) > max_length:
        return text[: max_length - 3] + "..."
    return text


def get_session_summary(filepath, max_length=200):
    """Extract a human-readable summary from a session file.

    Supports both JSON and JSONL formats.
    Returns a summary string or "(no summary)" if none found.
    """
    filepath = Path(filepath)
    try:
        if filepath.suffix == ".jsonl":
            return _get_jsonl_summary(filepath, max_length)
        # For JSON files, try to get first user message
        with open(filepath, "r", encoding="utf-8") as f:
            data = json.load(f)
        for entry in data.get("loglines", []):
            if entry.get("type") == "user":
                content = (entry.get("message") or {}).get("content", "")
                text = extract_text_from_content(content)
                if text:
                    return truncate_summary(text, max_length)
    except Exception:
        return NO_SUMMARY
    return NO_SUMMARY


def _iter_jsonl_objects(filepath):
    """Yield the dict objects of a JSONL file, skipping lines that do not decode."""
    with open(filepath, "rb") as f:
        for raw in f:
            try:
                line = raw.decode("utf-8").strip()
                if not line:
                    continue
                obj = json.loads(line)
            except (UnicodeDecodeError, json.JSONDecodeError):
                continue
            if isinstance(obj, dict):
                yield obj


def _get_jsonl_summary(filepath, max_length=200):
    # First priority: summary type entries
    for obj in _iter_jsonl_objects(filepath):
        summary = obj.get("summary")
        if obj.get("type") == "summary" and isinstance(summary, str) and summary:
            return truncate_summary(summary, max_length)

    # Second pass: find first non-meta user message
    for obj in _iter_jsonl_objects(filepath):
        if obj.get("type") != "user" or obj.get("isMeta"):
            continue
        message = obj.get("message")
        content = message.get("content") if isinstance(message, dict) else None
        if not content:
            continue
        text = extract_text_from_content(content)
        if text and not text.startswith("<"):
            return truncate_summary(text, max_length)

    return NO_SUMMARY


def detect_github_repo(loglines):
    """
    Detect GitHub repo from git push output in tool results.

    Looks for patterns like:
    - github.com/owner/repo/pull/new/branch (from git push messages)

    Returns the first detected repo (owner/name) or None.
    """
    for entry in loglines:
        content = entry.message.content
        if not isinstance(content, list):
            continue
        for block in content:
            if not isinstance(block, dict) or block.get("type") != "tool_result":
                continue
            result_content = block.get("content", "")
            if isinstance(result_content, str):
                match = GITHUB_REPO_PATTERN.search(result_content)
                if match:
                    return match.group(1)
    return None
