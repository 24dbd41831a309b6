"""End-to-end tests for transcript and archive generation."""

import json
import os

import session_transcripts.generate as generate


def _write_session(path, loglines):
    path.write_text(json.dumps({"loglines": loglines}), encoding="utf-8")
    return path


def _prompt(text, ts):
    return {"type": "user", "timestamp": ts, "message": {"role": "user", "content": text}}


def _reply(text, ts):
    return {
        "type": "assistant",
        "timestamp": ts,
        "message": {"role": "assistant", "content": [{"type": "text", "text": text}]},
    }


def _write_jsonl(path, objs):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(json.dumps(o) for o in objs) + "\n", encoding="utf-8")
    return path


def test_generate_html_single_prompt(tmp_path):
    session = _write_session(
        tmp_path / "session.json",
        [_prompt("Hello", "2025-01-01T10:00:00Z"), _reply("Hi there!", "2025-01-01T10:00:05Z")],
    )
    output = tmp_path / "out"

    generate.generate_html(session, output, quiet=True)

    index_html = (output / "index.html").read_text(encoding="utf-8")
    page_html = (output / "page-001.html").read_text(encoding="utf-8")
    assert "1 prompts" in index_html
    assert "var totalPages = 1;" in index_html
    assert 'href="page-001.html#msg-2025-01-01T10-00-00Z"' in index_html
    assert "Hello" in page_html
    assert "Hi there!" in page_html
    assert 'id="msg-2025-01-01T10-00-05Z"' in page_html


def test_generate_html_without_prompts_writes_only_index(tmp_path):
    session = _write_session(tmp_path / "session.json", [_reply("orphan", "2025-01-01T10:00:00Z")])
    output = tmp_path / "out"

    generate.generate_html(session, output, quiet=True)

    assert (output / "index.html").exists()
    assert list(output.glob("page-*.html")) == []
    index_html = (output / "index.html").read_text(encoding="utf-8")
    assert "0 prompts" in index_html
    assert "0 pages" in index_html


def test_generate_html_paginates(tmp_path):
    loglines = [_prompt(f"prompt {i}", f"2025-01-01T10:{i:02d}:00Z") for i in range(12)]
    session = _write_session(tmp_path / "session.json", loglines)
    output = tmp_path / "out"

    generate.generate_html(session, output, prompts_per_page=5, quiet=True)

    assert sorted(p.name for p in output.glob("page-*.html")) == [
        "page-001.html",
        "page-002.html",
        "page-003.html",
    ]
    page_three = (output / "page-003.html").read_text(encoding="utf-8")
    assert "prompt 10" in page_three and "prompt 11" in page_three
    assert "page 3/3" in page_three


def test_generate_html_is_idempotent(tmp_path):
    session = _write_session(
        tmp_path / "session.json",
        [
            _prompt("Hello", "2025-01-01T10:00:00Z"),
            _reply("Hi there!", "2025-01-01T10:00:05Z"),
            {
                "type": "user",
                "timestamp": "2025-01-01T10:00:06Z",
                "message": {"content": [{"type": "tool_result", "content": "[main abc1234] Fix bug\n"}]},
            },
        ],
    )
    output = tmp_path / "out"

    generate.generate_html(session, output, quiet=True)
    first = {p.name: p.read_bytes() for p in output.iterdir()}
    generate.generate_html(session, output, quiet=True)
    second = {p.name: p.read_bytes() for p in output.iterdir()}

    assert first == second


def test_generate_html_prunes_stale_pages(tmp_path):
    session = _write_session(tmp_path / "session.json", [_prompt("Hello", "2025-01-01T10:00:00Z")])
    output = tmp_path / "out"
    output.mkdir()
    (output / "page-002.html").write_text("old", encoding="utf-8")
    (output / "page-009.html").write_text("old", encoding="utf-8")
    (output / "notes.html").write_text("keep", encoding="utf-8")

    generate.generate_html(session, output, quiet=True)

    assert (output / "page-001.html").exists()
    assert not (output / "page-002.html").exists()
    assert not (output / "page-009.html").exists()
    assert (output / "notes.html").exists()


def test_generate_html_reports_progress(tmp_path, capsys):
    session = _write_session(tmp_path / "session.json", [_prompt("Hello", "2025-01-01T10:00:00Z")])

    generate.generate_html(session, tmp_path / "out")

    captured = capsys.readouterr()
    assert "Generated page-001.html" in captured.out
    assert "Could not auto-detect GitHub repo" in captured.out


def test_generate_html_uses_given_repo_and_label(tmp_path):
    session = _write_session(
        tmp_path / "session.json",
        [
            _prompt("Commit it", "2025-01-01T10:00:00Z"),
            {
                "type": "user",
                "timestamp": "2025-01-01T10:00:06Z",
                "message": {"content": [{"type": "tool_result", "content": "[main abc1234] Fix bug\n"}]},
            },
        ],
    )
    output = tmp_path / "out"

    generate.generate_html(session, output, github_repo="acme/widget", session_label="Sprint 4", quiet=True)

    index_html = (output / "index.html").read_text(encoding="utf-8")
    assert "https://github.com/acme/widget/commit/abc1234" in index_html
    assert "Sprint 4" in index_html
    assert "1 commits" in index_html


def test_generate_html_from_session_data(tmp_path):
    output = tmp_path / "out"

    timeline = generate.generate_html_from_session_data(
        {"loglines": [_prompt("From the web", "2025-01-01T10:00:00Z")]}, output, quiet=True
    )

    assert timeline.prompt_count == 1
    assert "From the web" in (output / "page-001.html").read_text(encoding="utf-8")


def test_generate_batch_html_builds_archive(tmp_path):
    source = tmp_path / "projects"
    project = source / "-home-user-projects-myapp"
    first = _write_jsonl(
        project / "abc.jsonl",
        [_prompt("Add login page", "2025-01-01T10:00:00Z"), _reply("Done", "2025-01-01T10:00:05Z")],
    )
    second = _write_jsonl(project / "def.jsonl", [_prompt("Fix tests", "2025-01-02T10:00:00Z")])
    _write_jsonl(project / "warm.jsonl", [_prompt("Warmup", "2025-01-03T10:00:00Z")])
    _write_jsonl(project / "agent-1.jsonl", [_prompt("Sub task", "2025-01-03T10:00:00Z")])
    os.utime(first, (1_700_000_000, 1_700_000_000))
    os.utime(second, (1_700_100_000, 1_700_100_000))
    output = tmp_path / "archive"

    result = generate.generate_batch_html(source, output)

    assert result.total_projects == 1
    assert result.total_sessions == 2
    assert result.failed_sessions == []
    assert (output / "myapp" / "abc" / "index.html").exists()
    assert (output / "myapp" / "def" / "page-001.html").exists()
    assert not (output / "myapp" / "warm").exists()
    assert not (output / "myapp" / "agent-1").exists()

    master = (output / "index.html").read_text(encoding="utf-8")
    project_index = (output / "myapp" / "index.html").read_text(encoding="utf-8")
    assert "myapp" in master
    assert project_index.index("Fix tests") < project_index.index("Add login page")


def test_generate_batch_html_records_failures(tmp_path, monkeypatch):
    source = tmp_path / "projects"
    _write_jsonl(source / "-home-user-projects-myapp" / "good.jsonl", [_prompt("Good", "2025-01-01T10:00:00Z")])
    _write_jsonl(source / "-home-user-projects-myapp" / "bad.jsonl", [_prompt("Bad", "2025-01-01T11:00:00Z")])
    real_generate_html = generate.generate_html

    def flaky_generate_html(path, output_dir, **kwargs):
        if path.stem == "bad":
            raise OSError("disk full")
        return real_generate_html(path, output_dir, **kwargs)

    monkeypatch.setattr(generate, "generate_html", flaky_generate_html)
    progress = []

    result = generate.generate_batch_html(
        source,
        tmp_path / "archive",
        progress_callback=lambda *args: progress.append(args),
    )

    assert result.total_sessions == 1
    assert result.failed_sessions == [{"project": "myapp", "session": "bad", "error": "disk full"}]
    assert [p[2:] for p in progress] == [(1, 2), (2, 2)]
    assert (tmp_path / "archive" / "myapp" / "good" / "index.html").exists()
    project_index = (tmp_path / "archive" / "myapp" / "index.html").read_text(encoding="utf-8")
    assert 'href="good/index.html"' in project_index
    assert 'href="bad/index.html"' not in project_index
    assert "1 session<" in project_index


def test_prune_stale_pages_ignores_missing_dir(tmp_path):
    generate.prune_stale_pages(output_dir=tmp_path / "missing", total_pages=0)


def test_archive_indexes_use_utc_dates_and_short_summaries(tmp_path):
    source = tmp_path / "projects"
    session = _write_jsonl(
        source / "-home-user-projects-myapp" / "abc.jsonl",
        [_prompt("y" * 150, "2025-01-01T10:00:00Z")],
    )
    os.utime(session, (1_700_000_000, 1_700_000_000))
    output = tmp_path / "archive"

    generate.generate_batch_html(source, output)

    project_index = (output / "myapp" / "index.html").read_text(encoding="utf-8")
    master = (output / "index.html").read_text(encoding="utf-8")
    assert "2023-11-14 22:13" in project_index
    assert "y" * 97 + "..." in project_index
    assert "y" * 98 not in project_index
    assert "2023-11-14" in master


def test_generate_html_survives_malformed_blocks(tmp_path):
    session = _write_session(
        tmp_path / "session.json",
        [
            _prompt("Hello", "2025-01-01T10:00:00Z"),
            {
                "type": "assistant",
                "timestamp": "2025-01-01T10:00:05Z",
                "message": {
                    "content": [
                        {"type": "text", "text": 42},
                        {"type": "tool_use", "name": ["Bash"], "input": {}},
                        {"type": "text", "text": "Still here"},
                    ]
                },
            },
        ],
    )
    output = tmp_path / "out"

    generate.generate_html(session, output, quiet=True)

    page_html = (output / "page-001.html").read_text(encoding="utf-8")
    assert "Still here" in page_html
    assert '<pre class="json">' in page_html
