"""Command line interface."""

import functools
import json
import shutil
import tempfile
import webbrowser
from datetime import datetime
from pathlib import Path

import click
from click_default_group import DefaultGroup
import httpx
import questionary

from .config import load_config
from .discovery import DiscoveryError, find_all_sessions, find_local_sessions, is_boring_summary
from .generate import generate_batch_html, generate_html, generate_html_from_session_data
from .gist import create_gist, gist_preview_url, inject_gist_preview_js
from .parser import SessionFormatError
from .web import (
    CredentialsError,
    fetch_session,
    fetch_sessions,
    fetch_url_to_tempfile,
    format_session_for_display,
    is_url,
    resolve_credentials,
    url_stem,
)

PROGRESS_EVERY = 10


def _settings():
    return load_config(Path.cwd())


def _boring_predicate(settings):
    return functools.partial(is_boring_summary, skip_summaries=settings.skip_summaries)


def output_options(func):
    """Options shared by the single-session commands."""
    options = [
        click.option(
            "-o",
            "--output",
            type=click.Path(),
            help="Output directory. If not specified, writes to temp dir and opens in browser.",
        ),
        click.option(
            "-a",
            "--output-auto",
            is_flag=True,
            help="Auto-name output subdirectory (uses -o as parent, or current dir).",
        ),
        click.option(
            "--repo",
            help="GitHub repo (owner/name) for commit links. Auto-detected from git push output if not specified.",
        ),
        click.option(
            "--gist",
            is_flag=True,
            help="Upload to GitHub Gist and output a gisthost.github.io URL.",
        ),
        click.option(
            "--json",
            "include_json",
            is_flag=True,
            help="Include the session data in the output directory.",
        ),
        click.option(
            "--open",
            "open_browser",
            is_flag=True,
            help="Open the generated index.html in your default browser (default if no -o specified).",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def resolve_output_dir(output, output_auto, gist, name, temp_prefix):
    """Return (output_dir, auto_open).

    Without -o the transcript goes to a temp directory and is opened in the
    browser unless it is being uploaded as a gist.
    """
    auto_open = output is None and not gist and not output_auto
    if output_auto:
        parent_dir = Path(output) if output else Path(".")
        return parent_dir / name, auto_open
    if output is None:
        return Path(tempfile.gettempdir()) / f"{temp_prefix}-{name}", auto_open
    return Path(output), auto_open


def _copy_source(source_file, output):
    output.mkdir(parents=True, exist_ok=True)
    dest = output / source_file.name
    shutil.copy(source_file, dest)
    size_kb = dest.stat().st_size / 1024
    click.echo(f"JSON: {dest} ({size_kb:.1f} KB)")


def _publish(output, gist, open_browser):
    click.echo(f"Output: {output.resolve()}")

    if gist:
        inject_gist_preview_js(output)
        click.echo("Creating GitHub gist...")
        gist_id, gist_url = create_gist(output)
        click.echo(f"Gist: {gist_url}")
        click.echo(f"Preview: {gist_preview_url(gist_id)}")

    if open_browser:
        webbrowser.open((output / "index.html").resolve().as_uri())


def _render_file(session_file, output, repo, settings, label=None):
    try:
        generate_html(
            session_file,
            output,
            github_repo=repo,
            session_label=label,
            prompts_per_page=settings.prompts_per_page,
            long_text_threshold=settings.long_text_threshold,
        )
    except SessionFormatError as e:
        raise click.ClickException(str(e))


@click.group(cls=DefaultGroup, default="local", default_if_no_args=True)
@click.version_option(None, "-v", "--version", package_name="session-transcripts")
def cli():
    """Convert Claude Code session logs to mobile-friendly HTML pages."""


@cli.command("local")
@output_options
@click.option(
    "--limit",
    type=click.IntRange(min=1),
    help="Maximum number of sessions to show (default: all).",
)
@click.option(
    "-1",
    "--last",
    is_flag=True,
    help="Convert the most recent session without prompting.",
)
@click.option("-n", "--name", help="Name for the output folder.")
def local_cmd(output, output_auto, repo, gist, include_json, open_browser, limit, last, name):
    """Select and convert a local Claude Code session to HTML."""
    settings = _settings()
    projects_folder = settings.projects_folder

    if not projects_folder.exists():
        click.echo(f"Projects folder not found: {projects_folder}")
        click.echo("No local Claude Code sessions available.")
        return

    click.echo("Loading local sessions...")
    results = find_local_sessions(
        projects_folder,
        limit=1 if last else limit,
        is_boring=_boring_predicate(settings),
    )

    if not results:
        click.echo("No local sessions found.")
        return

    if last:
        session_file = results[0].path
    else:
        choices = []
        for session in results:
            date_str = datetime.fromtimestamp(session.mtime).strftime("%Y-%m-%d %H:%M")
            summary = session.summary
            if len(summary) > 50:
                summary = summary[:47] + "..."
            display = f"{date_str}  {session.size / 1024:5.0f} KB  {summary}"
            choices.append(questionary.Choice(title=display, value=session.path))

        session_file = questionary.select(
            "Select a session to convert:",
            choices=choices,
        ).ask()

        if session_file is None:
            click.echo("No session selected.")
            return

    output, auto_open = resolve_output_dir(
        output, output_auto, gist, name or session_file.stem, "claude-session"
    )
    _render_file(session_file, output, repo, settings)

    if include_json:
        _copy_source(session_file, output)
    _publish(output, gist, open_browser or auto_open)


@cli.command("json")
@click.argument("json_file", type=click.Path())
@output_options
@click.option("--label", help="Optional human-friendly label to display in the transcript header.")
def json_cmd(json_file, output, output_auto, repo, gist, include_json, open_browser, label):
    """Convert a Claude Code session JSON/JSONL file or URL to HTML."""
    settings = _settings()

    if is_url(json_file):
        click.echo(f"Fetching {json_file}...")
        try:
            json_file_path = fetch_url_to_tempfile(json_file)
        except httpx.HTTPStatusError as e:
            raise click.ClickException(
                f"Failed to fetch URL: {e.response.status_code} {e.response.reason_phrase}"
            )
        except httpx.RequestError as e:
            raise click.ClickException(f"Failed to fetch URL: {e}")
        name = url_stem(json_file)
    else:
        json_file_path = Path(json_file)
        if not json_file_path.exists():
            raise click.ClickException(f"File not found: {json_file}")
        name = json_file_path.stem

    output, auto_open = resolve_output_dir(output, output_auto, gist, name, "claude-session")
    _render_file(json_file_path, output, repo, settings, label=label)

    if include_json:
        _copy_source(json_file_path, output)
    _publish(output, gist, open_browser or auto_open)


def _api_call(func, *args):
    try:
        return func(*args)
    except httpx.HTTPStatusError as e:
        raise click.ClickException(
            f"API request failed: {e.response.status_code} {e.response.text}"
        )
    except httpx.RequestError as e:
        raise click.ClickException(f"Network error: {e}")


@cli.command("web")
@click.argument("session_id", required=False)
@output_options
@click.option("--token", help="API access token (auto-detected from keychain on macOS)")
@click.option("--org-uuid", help="Organization UUID (auto-detected from ~/.claude.json)")
def web_cmd(session_id, output, output_auto, repo, gist, include_json, open_browser, token, org_uuid):
    """Select and convert a web session from the Claude API to HTML.

    If SESSION_ID is not provided, displays an interactive picker to select a session.
    """
    settings = _settings()
    try:
        token, org_uuid = resolve_credentials(token, org_uuid)
    except CredentialsError as e:
        raise click.ClickException(str(e))

    if session_id is None:
        sessions = _api_call(fetch_sessions, token, org_uuid).get("data", [])
        if not sessions:
            raise click.ClickException("No sessions found.")

        choices = [
            questionary.Choice(title=format_session_for_display(s), value=s.get("id"))
            for s in sessions
        ]
        session_id = questionary.select(
            "Select a session to import:",
            choices=choices,
        ).ask()
        if session_id is None:
            raise click.ClickException("No session selected.")

    click.echo(f"Fetching session {session_id}...")
    session_data = _api_call(fetch_session, token, org_uuid, session_id)

    output, auto_open = resolve_output_dir(output, output_auto, gist, session_id, "claude-session")
    click.echo(f"Generating HTML in {output}/...")
    generate_html_from_session_data(
        session_data,
        output,
        github_repo=repo,
        prompts_per_page=settings.prompts_per_page,
        long_text_threshold=settings.long_text_threshold,
    )

    if include_json:
        json_dest = output / f"{session_id}.json"
        json_dest.write_text(json.dumps(session_data, indent=2), encoding="utf-8")
        click.echo(f"JSON: {json_dest} ({json_dest.stat().st_size / 1024:.1f} KB)")
    _publish(output, gist, open_browser or auto_open)


@cli.command("all")
@click.option(
    "-s",
    "--source",
    type=click.Path(),
    help="Source directory containing Claude projects (default: ~/.claude/projects).",
)
@click.option(
    "-o",
    "--output",
    type=click.Path(),
    default="./claude-archive",
    help="Output directory for the archive (default: ./claude-archive).",
)
@click.option(
    "--include-agents",
    is_flag=True,
    help="Include agent-* session files (excluded by default).",
)
@click.option(
    "--dry-run",
    is_flag=True,
    help="Show what would be converted without creating files.",
)
@click.option(
    "--open",
    "open_browser",
    is_flag=True,
    help="Open the generated archive in your default browser.",
)
@click.option(
    "-q",
    "--quiet",
    is_flag=True,
    help="Suppress all output except errors.",
)
def all_cmd(source, output, include_agents, dry_run, open_browser, quiet):
    """Convert all local Claude Code sessions to a browsable HTML archive.

    Creates a directory structure with:
    - Master index listing all projects
    - Per-project pages listing sessions
    - Individual session transcripts
    """
    settings = _settings()
    source = Path(source) if source else settings.projects_folder
    output = Path(output)
    is_boring = _boring_predicate(settings)

    if not quiet:
        click.echo(f"Scanning {source}...")

    try:
        projects = find_all_sessions(source, include_agents=include_agents, is_boring=is_boring)
    except DiscoveryError as e:
        raise click.ClickException(str(e))

    if not projects:
        if not quiet:
            click.echo("No sessions found.")
        return

    total_sessions = sum(len(p.sessions) for p in projects)
    if not quiet:
        click.echo(f"Found {len(projects)} projects with {total_sessions} sessions")

    if dry_run:
        if not quiet:
            click.echo("\nDry run - would convert:")
            for project in projects:
                click.echo(f"\n  {project.name} ({len(project.sessions)} sessions)")
                for session in project.sessions[:3]:
                    mod_time = datetime.fromtimestamp(session.mtime)
                    click.echo(f"    - {session.path.stem} ({mod_time.strftime('%Y-%m-%d')})")
                if len(project.sessions) > 3:
                    click.echo(f"    ... and {len(project.sessions) - 3} more")
        return

    if not quiet:
        click.echo(f"\nGenerating archive in {output}...")

    def on_progress(project_name, session_name, current, total):
        if not quiet and current % PROGRESS_EVERY == 0:
            click.echo(f"  Processed {current}/{total} sessions...")

    try:
        stats = generate_batch_html(
            source,
            output,
            include_agents=include_agents,
            progress_callback=on_progress,
            is_boring=is_boring,
            prompts_per_page=settings.prompts_per_page,
            long_text_threshold=settings.long_text_threshold,
        )
    except DiscoveryError as e:
        raise click.ClickException(str(e))

    if stats.failed_sessions:
        click.echo(f"\nWarning: {len(stats.failed_sessions)} session(s) failed:", err=True)
        for failure in stats.failed_sessions:
            click.echo(f"  {failure['project']}/{failure['session']}: {failure['error']}", err=True)

    if not quiet:
        click.echo(
            f"\nGenerated archive with {stats.total_projects} projects, "
            f"{stats.total_sessions} sessions"
        )
        click.echo(f"Output: {output.resolve()}")

    if open_browser:
        webbrowser.open((output / "index.html").resolve().as_uri())
