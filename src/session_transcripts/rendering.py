"""Render session content blocks and messages to HTML fragments."""

import html
import json
import re
from dataclasses import dataclass

from jinja2 import Environment, PackageLoader
import markdown

# Set up Jinja2 environment
_jinja_env = Environment(
    loader=PackageLoader("session_transcripts", "templates"),
    autoescape=True,
)

# Load macros template and expose macros
_macros_template = _jinja_env.get_template("macros.html")
_macros = _macros_template.module

# Regex to match git commit output: [branch hash] message
COMMIT_PATTERN = re.compile(r"\[[\w\-/]+ ([a-f0-9]{7,})\] (.+?)(?:\n|$)")


def get_template(name):
    """Get a Jinja2 template by name."""
    return _jinja_env.get_template(name)


@dataclass(frozen=True)
class RenderContext:
    """Per-session rendering parameters.

    ``github_repo`` (owner/name) turns commit cards into links; it belongs to
    one session's render pass only.
    """

    github_repo: str | None = None


def format_json(obj):
    try:
        if isinstance(obj, str):
            obj = json.loads(obj)
        formatted = json.dumps(obj, indent=2, ensure_ascii=False)
        return f'<pre class="json">{html.escape(formatted)}</pre>'
    except (json.JSONDecodeError, TypeError, ValueError):
        return f"<pre>{html.escape(str(obj))}</pre>"


def render_markdown_text(text):
    if not text:
        return ""
    return markdown.markdown(text, extensions=["fenced_code", "tables"])


def is_json_like(text):
    if not text or not isinstance(text, str):
        return False
    text = text.strip()
    return (text.startswith("{") and text.endswith("}")) or (
        text.startswith("[") and text.endswith("]")
    )


def _input_str(tool_input, key, default=""):
    value = tool_input.get(key, default)
    return value if isinstance(value, str) else default


def render_todo_write(tool_input, tool_id):
    todos = tool_input.get("todos", [])
    if not todos or not isinstance(todos, list):
        return ""
    items = []
    for todo in todos:
        if not isinstance(todo, dict):
            continue
        items.append(
            {
                "content": str(todo.get("content", "")),
                "status": todo.get("status") or "pending",
            }
        )
    if not items:
        return ""
    return _macros.todo_list(items, tool_id)


def render_write_tool(tool_input, tool_id):
    """Render Write tool calls with file path header and content preview."""
    file_path = _input_str(tool_input, "file_path", "Unknown file")
    content = _input_str(tool_input, "content")
    return _macros.write_tool(file_path, content, tool_id)


def render_edit_tool(tool_input, tool_id):
    """Render Edit tool calls with diff-like old/new display."""
    file_path = _input_str(tool_input, "file_path", "Unknown file")
    old_string = _input_str(tool_input, "old_string")
    new_string = _input_str(tool_input, "new_string")
    replace_all = bool(tool_input.get("replace_all", False))
    return _macros.edit_tool(file_path, old_string, new_string, replace_all, tool_id)


def render_bash_tool(tool_input, tool_id):
    """Render Bash tool calls with command as plain text."""
    command = _input_str(tool_input, "command")
    description = _input_str(tool_input, "description")
    return _macros.bash_tool(command, description, tool_id)


TOOL_RENDERERS = {
    "TodoWrite": render_todo_write,
    "Write": render_write_tool,
    "Edit": render_edit_tool,
    "Bash": render_bash_tool,
}


def render_tool_use(block):
    tool_name = _input_str(block, "name") or "Unknown tool"
    tool_input = block.get("input")
    tool_id = block.get("id") or ""
    if not isinstance(tool_input, dict):
        tool_input = {}
    renderer = TOOL_RENDERERS.get(tool_name)
    if renderer is not None:
        return renderer(tool_input, tool_id)
    description = _input_str(tool_input, "description")
    display_input = {k: v for k, v in tool_input.items() if k != "description"}
    input_json = json.dumps(display_input, indent=2, ensure_ascii=False, default=str)
    return _macros.tool_use(tool_name, description, input_json, tool_id)


def render_commit_text(content, ctx):
    """Render tool output, turning git commit lines into commit cards."""
    commits_found = list(COMMIT_PATTERN.finditer(content))
    if not commits_found:
        return f"<pre>{html.escape(content)}</pre>"

    parts = []
    last_end = 0
    for match in commits_found:
        before = content[last_end : match.start()].strip()
        if before:
            parts.append(f"<pre>{html.escape(before)}</pre>")
        parts.append(_macros.commit_card(match.group(1), match.group(2), ctx.github_repo))
        last_end = match.end()

    after = content[last_end:].strip()
    if after:
        parts.append(f"<pre>{html.escape(after)}</pre>")
    return "".join(parts)


def render_tool_result(block, ctx):
    content = block.get("content", "")
    is_error = bool(block.get("is_error", False))
    has_images = False

    if isinstance(content, str):
        if is_json_like(content):
            content_html = format_json(content)
        else:
            content_html = render_commit_text(content, ctx)
    elif isinstance(content, list):
        parts = []
        for item in content:
            if not isinstance(item, dict):
                parts.append(f"<pre>{html.escape(str(item))}</pre>")
                continue
            item_type = item.get("type")
            if item_type == "text":
                text = item.get("text")
                if text:
                    parts.append(f"<pre>{html.escape(str(text))}</pre>")
            elif item_type == "image":
                source = item.get("source")
                data = source.get("data") if isinstance(source, dict) else None
                if data:
                    media_type = source.get("media_type") or "image/png"
                    parts.append(_macros.image_block(media_type, data))
                    has_images = True
            else:
                parts.append(format_json(item))
        content_html = "".join(parts) if parts else format_json(content)
    else:
        content_html = format_json(content)
    return _macros.tool_result(content_html, is_error, has_images)


def render_content_block(block, ctx=RenderContext()):
    if not isinstance(block, dict):
        return f"<p>{html.escape(str(block))}</p>"
    block_type = block.get("type", "")
    if block_type == "image":
        source = block.get("source")
        if not isinstance(source, dict):
            source = {}
        media_type = source.get("media_type") or "image/png"
        data = source.get("data", "")
        return _macros.image_block(media_type, data)
    elif block_type == "thinking":
        thinking = block.get("thinking", "")
        if not isinstance(thinking, str):
            return format_json(block)
        return _macros.thinking(render_markdown_text(thinking))
    elif block_type == "text":
        text = block.get("text", "")
        if not isinstance(text, str):
            return format_json(block)
        return _macros.assistant_text(render_markdown_text(text))
    elif block_type == "tool_use":
        return render_tool_use(block)
    elif block_type == "tool_result":
        return render_tool_result(block, ctx)
    return format_json(block)


def render_user_message_content(content, ctx):
    if isinstance(content, str):
        if is_json_like(content):
            return _macros.user_content(format_json(content))
        return _macros.user_content(render_markdown_text(content))
    return "".join(render_content_block(block, ctx) for block in content)


def render_assistant_message(content, ctx):
    if not isinstance(content, list):
        return f"<p>{html.escape(str(content))}</p>" if content else ""
    return "".join(render_content_block(block, ctx) for block in content)


def make_msg_id(timestamp):
    return f"msg-{timestamp.replace(':', '-').replace('.', '-')}"


def is_tool_result_message(content):
    """Check if message content consists only of tool_result blocks."""
    if not isinstance(content, list) or not content:
        return False
    return all(
        isinstance(block, dict) and block.get("type") == "tool_result"
        for block in content
    )


def render_message(entry, ctx=RenderContext()):
    content = entry.message.content
    if entry.type == "user":
        content_html = render_user_message_content(content, ctx)
        if is_tool_result_message(content):
            role_class, role_label = "tool-reply", "Tool reply"
        else:
            role_class, role_label = "user", "User"
    elif entry.type == "assistant":
        content_html = render_assistant_message(content, ctx)
        role_class, role_label = "assistant", "Assistant"
    else:
        return ""
    if not content_html.strip():
        return ""
    msg_id = make_msg_id(entry.timestamp)
    return _macros.message(role_class, role_label, msg_id, entry.timestamp, content_html)


def render_conversation(conv, ctx=RenderContext()):
    """Render every message of a conversation.

    The first message of a continuation is wrapped in a collapsed block.
    """
    parts = []
    for i, entry in enumerate(conv.entries):
        msg_html = render_message(entry, ctx)
        if not msg_html:
            continue
        if i == 0 and conv.is_continuation:
            msg_html = _macros.continuation(msg_html)
        parts.append(str(msg_html))
    return "".join(parts)


def render_timeline_item(item, ctx=RenderContext()):
    """Render one index-page timeline entry (a prompt or a commit)."""
    if item.kind == "commit":
        commit = item.commit
        return _macros.index_commit(
            commit.hash, commit.message, commit.timestamp, ctx.github_repo
        )
    long_texts_html = "".join(
        str(_macros.index_long_text(render_markdown_text(text)))
        for text in item.stats.long_texts
    )
    stats_html = _macros.index_stats(item.tool_stats, long_texts_html)
    return _macros.index_item(
        item.prompt_num,
        item.link,
        item.timestamp,
        render_markdown_text(item.user_text),
        stats_html,
    )


def generate_pagination_html(current_page, total_pages):
    return _macros.pagination(current_page, total_pages)


def generate_index_pagination_html(total_pages):
    """Generate pagination for index page where Index is current (first page)."""
    return _macros.index_pagination(total_pages)
