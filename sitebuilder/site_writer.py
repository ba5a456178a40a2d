from __future__ import annotations

import logging
import os
import uuid
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from sitebuilder import config
from sitebuilder.llm_parsing import GeneratedSiteAssets

log = logging.getLogger(__name__)

INDEX_FILE = "index.html"
STYLESHEET_FILE = "style.css"
SCRIPT_FILE = "script.js"
PAGE_TITLE = "Generated AI Website"

# Jinja environment that looks in the package's templates/
_env = Environment(
    loader=FileSystemLoader(os.path.join(os.path.dirname(__file__), "templates")),
    autoescape=select_autoescape(["html", "xml"]),
    enable_async=False,
)


def render_page(html: str) -> str:
    """Wrap a body fragment in the fixed document shell that links the site's CSS/JS."""
    return _env.get_template("page.html").render(
        title=PAGE_TITLE,
        stylesheet_href=f"/{STYLESHEET_FILE}",
        script_src=f"/{SCRIPT_FILE}",
        body=html,
    )


def _replace_file(path: Path, content: str) -> None:
    # Unique temp name: concurrent builds must not share one
    tmp = path.with_name(f".{path.name}.{uuid.uuid4().hex[:8]}.tmp")
    try:
        tmp.write_text(content, encoding="utf-8")
        tmp.replace(path)
    finally:
        tmp.unlink(missing_ok=True)


def write_site(assets: GeneratedSiteAssets, site_dir: Optional[Path] = None) -> Path:
    """Overwrite index.html, style.css and script.js in `site_dir`; return the directory.

    Files are replaced one after another with no lock, so a reader or a racing
    build may see files from two different builds. Each file on its own is
    always complete.
    """
    target = Path(site_dir) if site_dir is not None else config.SITE_DIR
    target.mkdir(parents=True, exist_ok=True)
    _replace_file(target / INDEX_FILE, render_page(assets.html))
    _replace_file(target / STYLESHEET_FILE, assets.css)
    _replace_file(target / SCRIPT_FILE, assets.js)
    log.info("site.write: wrote %s", target)
    return target
