"""Write paginated transcript pages, the timeline index and batch archives."""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

import click

from .analysis import (
    LONG_TEXT_THRESHOLD,
    PROMPTS_PER_PAGE,
    build_timeline,
    paginate,
)
from .conversations import group_conversations
from .discovery import ProjectInfo, find_all_sessions, is_boring_summary
from .parser import (
    detect_github_repo,
    parse_session_data,
    parse_session_file,
    truncate_summary,
)
from .rendering import (
    RenderContext,
    generate_index_pagination_html,
    generate_pagination_html,
    get_template,
    render_conversation,
    render_timeline_item,
)

TRANSCRIPT_TITLE = "Claude Code transcript"
ARCHIVE_TITLE = "Claude Code Archive"

_PAGE_FILE_RE = re.compile(r"^page-(\d{3,})\.html$")


@dataclass
class BatchResult:
    total_projects: int
    total_sessions: int
    output_dir: Path
    failed_sessions: list[dict] = field(default_factory=list)


def prune_stale_pages(*, output_dir, total_pages):
    """Delete page-NNN.html files numbered above ``total_pages``."""
    output_dir = Path(output_dir)
    if not output_dir.is_dir():
        return
    for path in output_dir.glob("page-*.html"):
        match = _PAGE_FILE_RE.match(path.name)
        if match and int(match.group(1)) > total_pages:
            path.unlink()


def resolve_github_repo(loglines, github_repo=None, *, quiet=False):
    """Return ``github_repo`` or one detected from git push output."""
    if github_repo:
        return github_repo
    detected = detect_github_repo(loglines)
    if not quiet:
        if detected:
            click.echo(f"Auto-detected GitHub repo: {detected}")
        else:
            click.echo(
                "Warning: Could not auto-detect GitHub repo. Commit links will be disabled."
            )
    return detected


def generate_html(
    json_path,
    output_dir,
    github_repo=None,
    *,
    session_label=None,
    prompts_per_page=PROMPTS_PER_PAGE,
    long_text_threshold=LONG_TEXT_THRESHOLD,
    quiet=False,
):
    """Render a session file into ``output_dir``.

    Writes one page-NNN.html per ``prompts_per_page`` conversations and an
    index.html with the prompt/commit timeline and search. Raises
    SessionFormatError for a JSON file that does not parse.
    """
    session_data = parse_session_file(json_path)
    return _write_session(
        session_data,
        output_dir,
        github_repo,
        session_label=session_label,
        prompts_per_page=prompts_per_page,
        long_text_threshold=long_text_threshold,
        quiet=quiet,
    )


def generate_html_from_session_data(
    session_data,
    output_dir,
    github_repo=None,
    *,
    session_label=None,
    prompts_per_page=PROMPTS_PER_PAGE,
    long_text_threshold=LONG_TEXT_THRESHOLD,
    quiet=False,
):
    """Generate HTML from a decoded ``{"loglines": [...]}`` dict."""
    return _write_session(
        parse_session_data(session_data),
        output_dir,
        github_repo,
        session_label=session_label,
        prompts_per_page=prompts_per_page,
        long_text_threshold=long_text_threshold,
        quiet=quiet,
    )


def _write_session(
    session_data,
    output_dir,
    github_repo,
    *,
    session_label,
    prompts_per_page,
    long_text_threshold,
    quiet,
):
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    ctx = RenderContext(
        github_repo=resolve_github_repo(session_data.loglines, github_repo, quiet=quiet)
    )

    conversations = group_conversations(session_data.loglines)
    pages = paginate(conversations, prompts_per_page)
    total_pages = len(pages)

    page_template = get_template("page.html")
    for page in pages:
        messages_html = "".join(render_conversation(conv, ctx) for conv in page.conversations)
        page_content = page_template.render(
            transcript_title=TRANSCRIPT_TITLE,
            session_label=session_label,
            page_num=page.number,
            total_pages=total_pages,
            pagination_html=generate_pagination_html(page.number, total_pages),
            messages_html=messages_html,
        )
        (output_dir / page.filename).write_text(page_content, encoding="utf-8")
        if not quiet:
            click.echo(f"Generated {page.filename}")

    prune_stale_pages(output_dir=output_dir, total_pages=total_pages)

    timeline = build_timeline(conversations, prompts_per_page, long_text_threshold)
    index_items_html = "".join(str(render_timeline_item(item, ctx)) for item in timeline.items)

    index_template = get_template("index.html")
    index_content = index_template.render(
        transcript_title=TRANSCRIPT_TITLE,
        session_label=session_label,
        pagination_html=generate_index_pagination_html(total_pages),
        prompt_num=timeline.prompt_count,
        total_messages=timeline.total_messages,
        total_tool_calls=timeline.total_tool_calls,
        total_commits=timeline.total_commits,
        total_pages=total_pages,
        index_items_html=index_items_html,
    )
    index_path = output_dir / "index.html"
    index_path.write_text(index_content, encoding="utf-8")
    if not quiet:
        click.echo(
            f"Generated {index_path.resolve()} ({len(conversations)} prompts, {total_pages} pages)"
        )
    return timeline


def generate_batch_html(
    source_folder,
    output_dir,
    include_agents=False,
    progress_callback=None,
    *,
    is_boring=is_boring_summary,
    prompts_per_page=PROMPTS_PER_PAGE,
    long_text_threshold=LONG_TEXT_THRESHOLD,
):
    """Generate HTML archive for all sessions in a Claude projects folder.

    Creates:
    - Master index.html listing all projects
    - Per-project directories with index.html listing sessions
    - Per-session directories with transcript pages

    Args:
        source_folder: Path to the Claude projects folder
        output_dir: Path for output archive
        include_agents: Whether to include agent-* session files
        progress_callback: Optional callback(project_name, session_name, current, total)
            called after each session is processed
        is_boring: Predicate on a session summary; matching sessions are skipped

    A session that fails to render is recorded in ``failed_sessions`` and the
    run continues. Raises DiscoveryError if the source folder is unusable.
    """
    source_folder = Path(source_folder)
    output_dir = Path(output_dir)

    projects = find_all_sessions(
        source_folder, include_agents=include_agents, is_boring=is_boring
    )
    output_dir.mkdir(parents=True, exist_ok=True)

    total_session_count = sum(len(p.sessions) for p in projects)
    processed_count = 0
    successful_sessions = 0
    failed_sessions = []
    rendered_projects = []

    for project in projects:
        project_dir = output_dir / project.name
        project_dir.mkdir(exist_ok=True)
        rendered = ProjectInfo(name=project.name, path=project.path)

        for session in project.sessions:
            session_name = session.path.stem
            try:
                generate_html(
                    session.path,
                    project_dir / session_name,
                    prompts_per_page=prompts_per_page,
                    long_text_threshold=long_text_threshold,
                    quiet=True,
                )
                successful_sessions += 1
                rendered.sessions.append(session)
            except Exception as e:
                failed_sessions.append(
                    {
                        "project": project.name,
                        "session": session_name,
                        "error": str(e),
                    }
                )

            processed_count += 1
            if progress_callback:
                progress_callback(
                    project.name, session_name, processed_count, total_session_count
                )

        _generate_project_index(rendered, project_dir)
        rendered_projects.append(rendered)

    _generate_master_index(rendered_projects, output_dir)

    return BatchResult(
        total_projects=len(projects),
        total_sessions=successful_sessions,
        output_dir=output_dir,
        failed_sessions=failed_sessions,
    )


def _generate_project_index(project, output_dir):
    """Generate index.html for a single project."""
    template = get_template("project_index.html")

    sessions_data = []
    for session in project.sessions:
        mod_time = datetime.fromtimestamp(session.mtime, tz=timezone.utc)
        sessions_data.append(
            {
                "name": session.path.stem,
                "summary": truncate_summary(session.summary, 100),
                "date": mod_time.strftime("%Y-%m-%d %H:%M"),
                "size_kb": session.size / 1024,
            }
        )

    html_content = template.render(
        archive_title=ARCHIVE_TITLE,
        project_name=project.name,
        sessions=sessions_data,
        session_count=len(sessions_data),
    )
    (Path(output_dir) / "index.html").write_text(html_content, encoding="utf-8")


def _generate_master_index(projects, output_dir):
    """Generate master index.html listing all projects."""
    template = get_template("master_index.html")

    projects_data = []
    total_sessions = 0
    for project in projects:
        session_count = len(project.sessions)
        total_sessions += session_count
        if project.sessions:
            most_recent = datetime.fromtimestamp(project.sessions[0].mtime, tz=timezone.utc)
            recent_date = most_recent.strftime("%Y-%m-%d")
        else:
            recent_date = "N/A"
        projects_data.append(
            {
                "name": project.name,
                "session_count": session_count,
                "recent_date": recent_date,
            }
        )

    html_content = template.render(
        archive_title=ARCHIVE_TITLE,
        projects=projects_data,
        total_projects=len(projects),
        total_sessions=total_sessions,
    )
    (Path(output_dir) / "index.html").write_text(html_content, encoding="utf-8")
