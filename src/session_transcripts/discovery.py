"""Find Claude Code session files on disk."""

from dataclasses import dataclass, field
from pathlib import Path

from .parser import NO_SUMMARY, get_session_summary

DEFAULT_SKIP_SUMMARIES = ("warmup", NO_SUMMARY)


class DiscoveryError(Exception):
    """Raised when the sessions source folder cannot be scanned."""


@dataclass
class SessionInfo:
    path: Path
    summary: str
    mtime: float
    size: int


@dataclass
class ProjectInfo:
    name: str
    path: Path
    sessions: list[SessionInfo] = field(default_factory=list)


def is_boring_summary(summary, skip_summaries=DEFAULT_SKIP_SUMMARIES):
    """Return True for sessions that have nothing worth converting.

    Warmup sessions and sessions without any usable summary are skipped by
    default; pass ``skip_summaries`` to change the list.
    """
    lowered = summary.strip().lower()
    return any(lowered == s.lower() for s in skip_summaries)


def _session_files(folder, include_agents):
    for session_file in folder.glob("**/*.jsonl"):
        if not include_agents and session_file.name.startswith("agent-"):
            continue
        yield session_file


def _session_info(session_file, summary):
    stat = session_file.stat()
    return SessionInfo(
        path=session_file,
        summary=summary,
        mtime=stat.st_mtime,
        size=stat.st_size,
    )


def find_local_sessions(folder, limit=None, *, is_boring=is_boring_summary):
    """Find recent JSONL session files in the given folder.

    Returns a list of SessionInfo sorted by modification time, most recent
    first. Excludes agent files and sessions ``is_boring`` rejects.
    """
    folder = Path(folder)
    if not folder.exists():
        return []

    results = []
    for session_file in _session_files(folder, include_agents=False):
        summary = get_session_summary(session_file)
        if is_boring(summary):
            continue
        results.append(_session_info(session_file, summary))

    results.sort(key=lambda s: s.mtime, reverse=True)
    if limit is not None:
        return results[:limit]
    return results


def get_project_display_name(folder_name):
    """Convert encoded folder name to readable project name.

    Claude Code stores projects in folders like:
    - -home-user-projects-myproject -> myproject
    - -mnt-c-Users-name-Projects-app -> app

    For nested paths under common roots (home, projects, code, Users, etc.),
    extracts the meaningful project portion.
    """
    prefixes_to_strip = [
        "-home-",
        "-mnt-c-Users-",
        "-mnt-c-users-",
        "-Users-",
    ]

    name = folder_name
    for prefix in prefixes_to_strip:
        if name.lower().startswith(prefix.lower()):
            name = name[len(prefix) :]
            break

    parts = name.split("-")

    # Common intermediate directories to skip
    skip_dirs = {"projects", "code", "repos", "src", "dev", "work", "documents"}

    meaningful_parts = []
    found_project = False

    for i, part in enumerate(parts):
        if not part:
            continue
        # Skip the first part if it looks like a username (before common dirs)
        if i == 0 and not found_project:
            remaining = [p.lower() for p in parts[i + 1 :]]
            if any(d in remaining for d in skip_dirs):
                continue
        if part.lower() in skip_dirs:
            found_project = True
            continue
        meaningful_parts.append(part)
        found_project = True

    if meaningful_parts:
        return "-".join(meaningful_parts)

    for part in reversed(parts):
        if part:
            return part
    return folder_name


def find_all_sessions(folder, include_agents=False, *, is_boring=is_boring_summary):
    """Find all sessions in a Claude projects folder, grouped by project.

    Sessions are sorted by modification time (most recent first) within each
    project. Projects are sorted by their most recent session.

    Raises DiscoveryError if the folder does not exist or cannot be read.
    """
    folder = Path(folder)
    if not folder.is_dir():
        raise DiscoveryError(f"Source directory not found: {folder}")

    projects = {}
    try:
        for session_file in _session_files(folder, include_agents):
            summary = get_session_summary(session_file)
            if is_boring(summary):
                continue

            project_folder = session_file.parent
            project_key = project_folder.name
            if project_key not in projects:
                projects[project_key] = ProjectInfo(
                    name=get_project_display_name(project_key),
                    path=project_folder,
                )
            projects[project_key].sessions.append(
                _session_info(session_file, summary)
            )
    except OSError as e:
        raise DiscoveryError(f"Could not scan {folder}: {e}") from e

    for project in projects.values():
        project.sessions.sort(key=lambda s: s.mtime, reverse=True)

    result = list(projects.values())
    result.sort(
        key=lambda p: p.sessions[0].mtime if p.sessions else 0, reverse=True
    )
    return result
