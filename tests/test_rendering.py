"""Tests for content block and message rendering."""

from session_transcripts.conversations import Conversation
from session_transcripts.parser import normalize_entry
from session_transcripts.rendering import (
    RenderContext,
    generate_index_pagination_html,
    generate_pagination_html,
    make_msg_id,
    render_bash_tool,
    render_content_block,
    render_conversation,
    render_edit_tool,
    render_message,
    render_todo_write,
    render_tool_result,
    render_tool_use,
    render_write_tool,
)


def test_todo_list_icons_by_status():
    html = render_todo_write(
        {
            "todos": [
                {"content": "Write parser", "status": "completed"},
                {"content": "Write renderer", "status": "in_progress"},
                {"content": "Write tests", "status": "pending"},
            ]
        },
        "tool-1",
    )

    assert "✓" in html and "todo-completed" in html
    assert "→" in html and "todo-in-progress" in html
    assert "○" in html and "todo-pending" in html
    assert "Write renderer" in html


def test_empty_todo_list_renders_nothing():
    assert render_todo_write({"todos": []}, "tool-1") == ""
    assert render_todo_write({}, "tool-1") == ""


def test_edit_tool_replace_all_marker():
    html = render_edit_tool(
        {"file_path": "/src/app.py", "old_string": "foo", "new_string": "bar", "replace_all": True},
        "tool-2",
    )

    assert "(replace all)" in html
    assert "app.py" in html
    assert "foo" in html and "bar" in html


def test_edit_tool_without_replace_all():
    html = render_edit_tool({"file_path": "a.py", "old_string": "x", "new_string": "y"}, "t")

    assert "(replace all)" not in html


def test_bash_tool_escapes_command():
    html = render_bash_tool({"command": "echo <hi> && ls", "description": "List files"}, "tool-3")

    assert "echo &lt;hi&gt; &amp;&amp; ls" in html
    assert "List files" in html


def test_generic_tool_shows_description_and_json_input():
    html = render_tool_use(
        {"type": "tool_use", "id": "tool-4", "name": "Grep", "input": {"pattern": "TODO", "description": "Find todos"}}
    )

    assert "Grep" in html
    assert "Find todos" in html
    assert "&#34;pattern&#34;: &#34;TODO&#34;" in html


def test_tool_use_dispatches_known_tools():
    html = render_content_block(
        {"type": "tool_use", "id": "t", "name": "Bash", "input": {"command": "pytest"}}
    )

    assert "bash-tool" in html


def test_commit_output_links_to_repo():
    block = {"type": "tool_result", "content": "[main abc1234] Fix bug\n 1 file changed"}

    html = render_tool_result(block, RenderContext(github_repo="acme/widget"))

    assert 'href="https://github.com/acme/widget/commit/abc1234"' in html
    assert "Fix bug" in html
    assert "1 file changed" in html


def test_commit_output_without_repo_has_no_link():
    block = {"type": "tool_result", "content": "[main abc1234] Fix bug\n"}

    html = render_tool_result(block, RenderContext())

    assert "commit-card" in html
    assert "<a href" not in html


def test_tool_result_with_images_is_not_truncated():
    block = {
        "type": "tool_result",
        "content": [
            {"type": "text", "text": "Screenshot taken"},
            {"type": "image", "source": {"media_type": "image/png", "data": "iVBORw0KGgo"}},
        ],
    }

    html = render_tool_result(block, RenderContext())

    assert "data:image/png;base64,iVBORw0KGgo" in html
    assert "Screenshot taken" in html
    assert "truncatable" not in html


def test_tool_result_text_list_is_truncatable():
    block = {"type": "tool_result", "content": [{"type": "text", "text": "plain output"}]}

    html = render_tool_result(block, RenderContext())

    assert "truncatable" in html


def test_tool_result_error_class():
    html = render_tool_result({"type": "tool_result", "content": "boom", "is_error": True}, RenderContext())

    assert "tool-result tool-error" in html


def test_tool_result_json_string_is_pretty_printed():
    html = render_tool_result({"type": "tool_result", "content": '{"ok": true}'}, RenderContext())

    assert '<pre class="json">' in html


def test_unknown_block_falls_back_to_json():
    html = render_content_block({"type": "mystery", "payload": 1})

    assert '<pre class="json">' in html
    assert "mystery" in html


def test_thinking_and_text_blocks_render_markdown():
    thinking = render_content_block({"type": "thinking", "thinking": "Consider **this**"})
    text = render_content_block({"type": "text", "text": "Use `code`"})

    assert "Thinking" in thinking and "<strong>this</strong>" in thinking
    assert "<code>code</code>" in text


def test_tool_reply_role_for_tool_result_only_user_message():
    entry = normalize_entry(
        {
            "type": "user",
            "timestamp": "2025-01-01T10:00:00.500Z",
            "message": {"content": [{"type": "tool_result", "content": "ok"}]},
        }
    )

    html = render_message(entry)

    assert 'class="message tool-reply"' in html
    assert 'id="msg-2025-01-01T10-00-00-500Z"' in html


def test_json_like_user_text_is_pretty_printed():
    entry = normalize_entry({"type": "user", "timestamp": "t", "message": {"content": '{"key": "value"}'}})

    html = render_message(entry)

    assert 'class="message user"' in html
    assert '<pre class="json">' in html


def test_empty_assistant_message_renders_nothing():
    entry = normalize_entry({"type": "assistant", "message": {"content": []}})

    assert render_message(entry) == ""


def test_make_msg_id_replaces_separators():
    assert make_msg_id("2025-01-01T10:00:00.123Z") == "msg-2025-01-01T10-00-00-123Z"


def test_continuation_message_is_collapsed():
    entry = normalize_entry(
        {"type": "user", "timestamp": "t", "isCompactSummary": True, "message": {"content": "Earlier work"}}
    )
    conv = Conversation(user_text="Earlier work", timestamp="t", entries=[entry], is_continuation=True)

    html = render_conversation(conv)

    assert html.startswith('<details class="continuation">')


def test_pagination_links():
    html = generate_pagination_html(2, 3)

    assert 'href="page-001.html">&larr; Prev' in html
    assert '<span class="current">2</span>' in html
    assert 'href="page-003.html">Next &rarr;' in html


def test_single_page_pagination_only_links_index():
    html = generate_pagination_html(1, 1)

    assert "index.html" in html
    assert "Next" not in html


def test_index_pagination_marks_index_current():
    html = generate_index_pagination_html(2)

    assert '<span class="current">Index</span>' in html
    assert 'href="page-002.html"' in html


def test_write_tool_shows_basename_and_full_path():
    html = render_write_tool({"file_path": "/repo/src/app/main.py", "content": "print('hi')"}, "tool-5")

    assert '<span class="file-tool-path">main.py</span>' in html
    assert '<div class="file-tool-fullpath">/repo/src/app/main.py</div>' in html
    assert "truncatable" in html
    assert "print(&#39;hi&#39;)" in html


def test_todo_list_without_dict_items_renders_nothing():
    html = render_content_block({"type": "tool_use", "name": "TodoWrite", "input": {"todos": ["x", 3]}})

    assert html == ""


def test_non_string_text_falls_back_to_json():
    html = render_content_block({"type": "text", "text": 123})

    assert '<pre class="json">' in html
    assert "123" in html


def test_non_string_thinking_falls_back_to_json():
    html = render_content_block({"type": "thinking", "thinking": ["a", "b"]})

    assert '<pre class="json">' in html
    assert "thinking-label" not in html


def test_tool_result_image_with_bad_source_is_skipped():
    block = {
        "type": "tool_result",
        "content": [{"type": "text", "text": "ok"}, {"type": "image", "source": "not-a-dict"}],
    }

    html = render_content_block(block)

    assert "ok" in html
    assert "<img" not in html


def test_tool_use_with_non_string_name():
    html = render_content_block({"type": "tool_use", "id": "t", "name": ["Bash"], "input": {"command": "ls"}})

    assert "Unknown tool" in html
    assert "bash-tool" not in html
