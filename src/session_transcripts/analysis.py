"""Conversation statistics, pagination and the index-page timeline."""

from dataclasses import dataclass, field

from .rendering import COMMIT_PATTERN, make_msg_id

PROMPTS_PER_PAGE = 5
LONG_TEXT_THRESHOLD = (
    300  # Characters - text blocks longer than this are shown in index
)

# Prompts injected by Claude Code hooks rather than typed by the user
STOP_HOOK_PREFIX = "Stop hook feedback:"

# Abbreviations for common tool names in the index stats line
TOOL_ABBREVIATIONS = {
    "Bash": "bash",
    "Read": "read",
    "Write": "write",
    "Edit": "edit",
    "Glob": "glob",
    "Grep": "grep",
    "Task": "task",
    "TodoWrite": "todo",
    "WebFetch": "fetch",
    "WebSearch": "search",
}

# Timeline tie-break when timestamps are equal: prompts before commits
_KIND_ORDER = {"prompt": 0, "commit": 1}


@dataclass(frozen=True)
class CommitRef:
    hash: str
    message: str
    timestamp: str


@dataclass
class ConversationStats:
    tool_counts: dict[str, int] = field(default_factory=dict)
    long_texts: list[str] = field(default_factory=list)
    commits: list[CommitRef] = field(default_factory=list)


@dataclass
class Page:
    number: int
    conversations: list

    @property
    def filename(self):
        return page_filename(self.number)


@dataclass
class TimelineItem:
    timestamp: str
    kind: str
    prompt_num: int = 0
    link: str = ""
    user_text: str = ""
    stats: ConversationStats = field(default_factory=ConversationStats)
    tool_stats: str = ""
    commit: CommitRef | None = None
    page_num: int = 0


@dataclass
class Timeline:
    items: list[TimelineItem]
    prompt_count: int
    total_messages: int
    total_tool_calls: int
    total_commits: int


def analyze_conversation(entries, long_text_threshold=LONG_TEXT_THRESHOLD):
    """Analyze messages in a conversation to extract stats and long texts."""
    stats = ConversationStats()

    for entry in entries:
        content = entry.message.content
        if not isinstance(content, list):
            continue

        for block in content:
            if not isinstance(block, dict):
                continue
            block_type = block.get("type", "")

            if block_type == "tool_use":
                tool_name = block.get("name")
                if not isinstance(tool_name, str) or not tool_name:
                    tool_name = "Unknown"
                stats.tool_counts[tool_name] = stats.tool_counts.get(tool_name, 0) + 1
            elif block_type == "tool_result":
                result_content = block.get("content", "")
                if isinstance(result_content, str):
                    for match in COMMIT_PATTERN.finditer(result_content):
                        stats.commits.append(
                            CommitRef(match.group(1), match.group(2), entry.timestamp)
                        )
            elif block_type == "text":
                text = block.get("text", "")
                if isinstance(text, str) and len(text) >= long_text_threshold:
                    stats.long_texts.append(text)

    return stats


def format_tool_stats(tool_counts):
    """Format tool counts into a concise summary string."""
    if not tool_counts:
        return ""

    parts = []
    for name, count in sorted(tool_counts.items(), key=lambda x: -x[1]):
        short_name = TOOL_ABBREVIATIONS.get(name, name.lower())
        parts.append(f"{count} {short_name}")

    return " · ".join(parts)


def page_filename(page_num):
    return f"page-{page_num:03d}.html"


def page_number_for(conv_index, per_page=PROMPTS_PER_PAGE):
    return (conv_index // per_page) + 1


def paginate(conversations, per_page=PROMPTS_PER_PAGE):
    """Split conversations into 1-indexed pages of ``per_page`` each."""
    if per_page < 1:
        raise ValueError("per_page must be at least 1")
    return [
        Page(number=i // per_page + 1, conversations=conversations[i : i + per_page])
        for i in range(0, len(conversations), per_page)
    ]


def _entries_with_continuations(conversations, index):
    """Entries of conversation ``index`` plus any continuations right after it."""
    entries = list(conversations[index].entries)
    for conv in conversations[index + 1 :]:
        if not conv.is_continuation:
            break
        entries.extend(conv.entries)
    return entries


def is_listed_prompt(conv):
    return not conv.is_continuation and not conv.user_text.startswith(STOP_HOOK_PREFIX)


def build_timeline(
    conversations,
    per_page=PROMPTS_PER_PAGE,
    long_text_threshold=LONG_TEXT_THRESHOLD,
):
    """Build the chronologically merged prompt/commit timeline for the index.

    Continuation conversations are not numbered; their tool use and long
    texts are credited to the prompt they continue. Every commit becomes its
    own entry. Items are ordered by timestamp, prompts before commits on a
    tie, then by insertion order.
    """
    total_tool_counts = {}
    total_messages = 0
    commit_items = []
    for i, conv in enumerate(conversations):
        total_messages += len(conv.entries)
        stats = analyze_conversation(conv.entries, long_text_threshold)
        for tool, count in stats.tool_counts.items():
            total_tool_counts[tool] = total_tool_counts.get(tool, 0) + count
        for commit in stats.commits:
            commit_items.append(
                TimelineItem(
                    timestamp=commit.timestamp,
                    kind="commit",
                    commit=commit,
                    page_num=page_number_for(i, per_page),
                )
            )

    prompt_items = []
    prompt_num = 0
    for i, conv in enumerate(conversations):
        if not is_listed_prompt(conv):
            continue
        prompt_num += 1
        page_num = page_number_for(i, per_page)
        stats = analyze_conversation(
            _entries_with_continuations(conversations, i), long_text_threshold
        )
        prompt_items.append(
            TimelineItem(
                timestamp=conv.timestamp,
                kind="prompt",
                prompt_num=prompt_num,
                link=f"{page_filename(page_num)}#{make_msg_id(conv.timestamp)}",
                user_text=conv.user_text,
                stats=stats,
                tool_stats=format_tool_stats(stats.tool_counts),
                page_num=page_num,
            )
        )

    merged = list(enumerate(prompt_items + commit_items))
    merged.sort(key=lambda pair: (pair[1].timestamp, _KIND_ORDER[pair[1].kind], pair[0]))

    return Timeline(
        items=[item for _, item in merged],
        prompt_count=prompt_num,
        total_messages=total_messages,
        total_tool_calls=sum(total_tool_counts.values()),
        total_commits=len(commit_items),
    )
