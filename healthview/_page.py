"""HTML page shell for rendered snapshots.

The dashboard and chart snapshots are static HTML with inline SVG. The
shell uses string.Template so that CSS braces need no escaping.
"""

from string import Template

CSS_STYLES = """
        :root {
            --bg: #f9fafb;
            --card: #ffffff;
            --border: #e5e7eb;
            --text: #111827;
            --text-dim: #6b7280;
            --red: #dc2626;
            --green: #16a34a;
        }

        .dark {
            --bg: #030712;
            --card: #111827;
            --border: #374151;
            --text: #f9fafb;
            --text-dim: #9ca3af;
        }

        * { margin: 0; padding: 0; box-sizing: border-box; }

        body {
            font-family: ui-sans-serif, system-ui, sans-serif;
            background: var(--bg);
            color: var(--text);
            padding: 16px;
        }

        .error { color: var(--red); margin-bottom: 12px; }
        .announcement { border-left: 4px solid var(--border); padding: 8px 12px; margin-bottom: 12px; }
        .announcement.outage { border-color: var(--red); }

        .section { border: 1px solid var(--border); border-radius: 8px; margin-bottom: 24px; }
        .section h2 { font-size: 20px; padding: 16px; display: flex; justify-content: space-between; }
        .section .count { background: var(--red); color: #fff; border-radius: 999px; padding: 2px 8px; font-size: 14px; }

        .card { background: var(--card); border: 1px solid var(--border); border-radius: 8px; padding: 12px 24px; margin: 12px 16px; }
        .card .name { font-weight: 600; }
        .card .meta { color: var(--text-dim); font-size: 13px; min-height: 1.25rem; }
        .card .badge { float: right; font-size: 12px; text-transform: uppercase; }
        .badge.healthy { color: var(--green); }
        .badge.unhealthy { color: var(--red); }
        .badge.unknown { color: var(--text-dim); }
        .card .response-time { color: var(--text-dim); font-size: 12px; text-align: right; }
        .card .labels { color: var(--text-dim); font-size: 12px; display: flex; justify-content: space-between; }

        .toolbar { color: var(--text-dim); font-size: 13px; margin-bottom: 12px; }
        .announcement.archived { opacity: 0.7; }

        .detail-header h1 { font-size: 32px; }
        .summaries { display: flex; gap: 24px; margin: 24px 0; }
        .summary { flex: 1; background: var(--card); border: 1px solid var(--border); border-radius: 8px; padding: 16px 24px; }
        .summary p { color: var(--text-dim); font-size: 14px; }
        .summary strong { font-size: 24px; }
        .pager { display: flex; justify-content: center; gap: 8px; padding-top: 12px; border-top: 1px solid var(--border); }
        .events { list-style: none; padding: 16px 24px; }
        .event { border-bottom: 1px solid var(--border); padding: 8px 0; display: flex; flex-direction: column; }
        .event.healthy strong { color: var(--green); }
        .event.unhealthy strong { color: var(--red); }

        .empty { text-align: center; padding: 80px 0; color: var(--text-dim); }
        .tooltip-layer { position: absolute; }
"""

PAGE_TEMPLATE = Template("""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>$title</title>
    <style>$css</style>
</head>
<body class="$theme">
$body
</body>
</html>
""")


def build_page(title: str, body: str, dark: bool = False) -> str:
    """Wrap rendered body markup in the page shell.

    Args:
        title: Already-escaped page title.
        body: Rendered HTML body content.
        dark: Apply the dark theme.

    Returns:
        Complete HTML document.
    """
    return PAGE_TEMPLATE.safe_substitute(
        title=title,
        css=CSS_STYLES,
        theme="dark" if dark else "light",
        body=body,
    )
