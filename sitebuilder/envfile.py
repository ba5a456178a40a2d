from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, Iterable, List, MutableMapping, Optional

log = logging.getLogger(__name__)


def parse_env_text(text: str) -> Dict[str, str]:
    """Parse KEY=value lines; comments, blanks and lines without "=" are skipped."""
    values: Dict[str, str] = {}
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, val = line.partition("=")
        key = key.strip()
        if key.startswith("export "):
            key = key[len("export "):].strip()
        val = val.strip()
        if len(val) >= 2 and val[0] == val[-1] and val[0] in {'"', "'"}:
            val = val[1:-1]
        if key:
            values[key] = val
    return values


def load_env_file(
    path: Path,
    keys: Iterable[str],
    environ: Optional[MutableMapping[str, str]] = None,
) -> List[str]:
    """Copy the listed `keys` from a .env file into `environ`; return the names set.

    Variables already present in the environment are left alone, and keys the
    service does not read are ignored.
    """
    env = os.environ if environ is None else environ
    if not path.is_file():
        return []
    try:
        values = parse_env_text(path.read_text(encoding="utf-8"))
    except OSError as e:
        log.warning("envfile: could not read %s: %r", path, e)
        return []
    loaded = []
    for key in keys:
        if key in values and key not in env:
            env[key] = values[key]
            loaded.append(key)
    if loaded:
        log.info("envfile: loaded %s from %s", ", ".join(loaded), path)
    return loaded
