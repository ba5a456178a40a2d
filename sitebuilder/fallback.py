from __future__ import annotations

from sitebuilder.llm_parsing import GeneratedSiteAssets

_HTML_ESCAPES = (
    ("&", "&amp;"),
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&#39;"),
)

_FALLBACK_CSS = (
    "body { font-family: Arial, sans-serif; background: #0b1220; color: #f8fafc; margin: 0; } "
    ".container { max-width: 860px; margin: 3rem auto; padding: 2rem; } "
    ".card { background: #1e293b; padding: 1rem; border-radius: 8px; } "
    "button { margin-top: 1rem; padding: 0.75rem 1rem; border: none; border-radius: 6px; "
    "cursor: pointer; background: #38bdf8; color: #0f172a; }"
)

_FALLBACK_JS = (
    'const stamp = document.getElementById("timestamp"); '
    'const btn = document.getElementById("refresh"); '
    "function setStamp(){ stamp.textContent = new Date().toString(); } "
    'btn.addEventListener("click", setStamp); setStamp();'
)


def escape_html(text: str) -> str:
    # Ampersand first so the entities added below are not escaped again
    for raw, entity in _HTML_ESCAPES:
        text = text.replace(raw, entity)
    return text


def generate_fallback(prompt: str) -> GeneratedSiteAssets:
    """Build the offline site used when the selected provider has no key configured."""
    html = (
        '<main class="container"><h1>AI Website Builder</h1>'
        "<p>This site was generated locally because no API key was configured.</p>"
        f'<section class="card"><h2>Your Prompt</h2><p>{escape_html(prompt)}</p></section>'
        '<button id="refresh">Refresh Timestamp</button><p id="timestamp"></p></main>'
    )
    return GeneratedSiteAssets(html=html, css=_FALLBACK_CSS, js=_FALLBACK_JS)
