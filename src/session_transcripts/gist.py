"""Publish a transcript directory as a GitHub gist."""

import subprocess
from pathlib import Path

import click

GIST_PREVIEW_HOSTS = ("gisthost.github.io", "gistpreview.github.io")

# Rewrites relative links to the ?GIST_ID/filename.html form used by the
# gist preview hosts, including links added after load, then retries
# fragment scrolling because those hosts inject the page asynchronously.
GIST_PREVIEW_JS = r"""
(function() {
    var hostname = window.location.hostname;
    if (hostname !== 'gisthost.github.io' && hostname !== 'gistpreview.github.io') return;
    var match = window.location.search.match(/^\?([^/]+)/);
    if (!match) return;
    var gistId = match[1];

    function rewriteLink(link) {
        var href = link.getAttribute('href');
        if (!href || href.startsWith('?') || href.startsWith('#')) return;
        if (href.startsWith('http') || href.startsWith('//') || href.startsWith('data:')) return;
        var parts = href.split('#');
        var anchor = parts.length > 1 ? '#' + parts[1] : '';
        link.setAttribute('href', '?' + gistId + '/' + parts[0] + anchor);
    }

    function rewriteLinks(root) {
        (root || document).querySelectorAll('a[href]').forEach(rewriteLink);
    }

    rewriteLinks();
    if (document.readyState === 'loading') {
        document.addEventListener('DOMContentLoaded', function() { rewriteLinks(); });
    }

    var observer = new MutationObserver(function(mutations) {
        mutations.forEach(function(mutation) {
            mutation.addedNodes.forEach(function(node) {
                if (node.nodeType !== 1) return;
                if (node.tagName === 'A') rewriteLink(node);
                rewriteLinks(node);
            });
        });
    });

    function startObserving() {
        if (document.body) {
            observer.observe(document.body, { childList: true, subtree: true });
        } else {
            setTimeout(startObserving, 10);
        }
    }
    startObserving();

    function scrollToFragment() {
        var hash = window.location.hash;
        if (!hash || hash.startsWith('#search=')) return false;
        var target = document.getElementById(hash.substring(1));
        if (target) {
            target.scrollIntoView({ behavior: 'smooth', block: 'start' });
            return true;
        }
        return false;
    }
    if (!scrollToFragment()) {
        [100, 300, 500, 1000, 2000].forEach(function(delay) {
            setTimeout(scrollToFragment, delay);
        });
    }
})();
"""


def inject_gist_preview_js(output_dir):
    """Inject gist preview JavaScript into all HTML files in the output directory."""
    output_dir = Path(output_dir)
    for html_file in sorted(output_dir.glob("*.html")):
        content = html_file.read_text(encoding="utf-8")
        if "</body>" not in content or GIST_PREVIEW_JS in content:
            continue
        content = content.replace(
            "</body>", f"<script>{GIST_PREVIEW_JS}</script>\n</body>", 1
        )
        html_file.write_text(content, encoding="utf-8")


def gist_preview_url(gist_id, filename="index.html"):
    return f"https://{GIST_PREVIEW_HOSTS[0]}/?{gist_id}/{filename}"


def create_gist(output_dir, public=False):
    """Create a GitHub gist from the HTML files in output_dir.

    Returns (gist_id, gist_url) on success, or raises click.ClickException on failure.
    """
    output_dir = Path(output_dir)
    html_files = list(output_dir.glob("*.html"))
    if not html_files:
        raise click.ClickException("No HTML files found to upload to gist.")

    cmd = ["gh", "gist", "create"]
    cmd.extend(str(f) for f in sorted(html_files))
    if public:
        cmd.append("--public")

    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            check=True,
        )
    except subprocess.CalledProcessError as e:
        error_msg = e.stderr.strip() if e.stderr else str(e)
        raise click.ClickException(f"Failed to create gist: {error_msg}")
    except FileNotFoundError:
        raise click.ClickException(
            "gh CLI not found. Install it from https://cli.github.com/ and run 'gh auth login'."
        )

    # Output is the gist URL, e.g., https://gist.github.com/username/GIST_ID
    gist_url = result.stdout.strip()
    gist_id = gist_url.rstrip("/").split("/")[-1]
    return gist_id, gist_url
