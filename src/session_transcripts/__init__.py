"""Convert Claude Code session logs to paginated HTML transcripts with search."""

from .analysis import build_timeline, paginate
from .cli import cli
from .config import Settings, load_config
from .conversations import Conversation, group_conversations
from .discovery import (
    DiscoveryError,
    find_all_sessions,
    find_local_sessions,
    get_project_display_name,
    is_boring_summary,
)
from .generate import (
    generate_batch_html,
    generate_html,
    generate_html_from_session_data,
)
from .gist import create_gist, inject_gist_preview_js
from .parser import (
    LogEntry,
    Message,
    SessionData,
    SessionFormatError,
    detect_github_repo,
    extract_text_from_content,
    get_session_summary,
    parse_session_file,
)
from .rendering import RenderContext, render_content_block

__all__ = [
    "Conversation",
    "DiscoveryError",
    "LogEntry",
    "Message",
    "RenderContext",
    "SessionData",
    "SessionFormatError",
    "Settings",
    "build_timeline",
    "cli",
    "create_gist",
    "detect_github_repo",
    "extract_text_from_content",
    "find_all_sessions",
    "find_local_sessions",
    "generate_batch_html",
    "generate_html",
    "generate_html_from_session_data",
    "get_project_display_name",
    "get_session_summary",
    "group_conversations",
    "inject_gist_preview_js",
    "is_boring_summary",
    "load_config",
    "main",
    "paginate",
    "parse_session_file",
    "render_content_block",
]


def main():
    cli()
