from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from sitebuilder.envfile import load_env_file

log = logging.getLogger(__name__)

_PACKAGE_DIR = Path(__file__).resolve().parent
DEFAULT_PORT = 80

SETTINGS_KEYS = (
    "PORT",
    "HOST",
    "SITE_DIR",
    "PUBLIC_DIR",
    "PROVIDERS_CONFIG",
    "DEFAULT_PROVIDER_ID",
    "SITE_URL",
    "ALLOW_ORIGINS",
    "LLM_TIMEOUT_SECS",
    "LOG_LEVEL",
)

DOTENV_PATH = Path(os.getenv("DOTENV_PATH", ".env"))
# Keep tests offline: never pick up a developer's real keys under pytest
_USE_DOTENV = not os.getenv("PYTEST_CURRENT_TEST")
if _USE_DOTENV:
    load_env_file(DOTENV_PATH, SETTINGS_KEYS)


def parse_port(raw: Optional[str]) -> int:
    """Return the listen port from a PORT value, falling back to 80 when unusable."""
    raw = (raw or "").strip()
    if not raw:
        return DEFAULT_PORT
    try:
        port = int(raw)
    except ValueError:
        log.warning("config: ignoring non-numeric PORT=%r; using %d", raw, DEFAULT_PORT)
        return DEFAULT_PORT
    if not 0 < port < 65536:
        log.warning("config: ignoring out-of-range PORT=%d; using %d", port, DEFAULT_PORT)
        return DEFAULT_PORT
    return port


PORT = parse_port(os.getenv("PORT"))
HOST = os.getenv("HOST", "0.0.0.0").strip() or "0.0.0.0"
SITE_DIR = Path(os.getenv("SITE_DIR", "generated-site"))
PUBLIC_DIR = Path(os.getenv("PUBLIC_DIR", str(_PACKAGE_DIR / "public")))
PROVIDERS_CONFIG = Path(os.getenv("PROVIDERS_CONFIG", str(_PACKAGE_DIR / "providers.json")))
DEFAULT_PROVIDER_ID = os.getenv("DEFAULT_PROVIDER_ID", "openai").strip() or "openai"
SITE_URL = os.getenv("SITE_URL", "http://localhost").strip() or "http://localhost"
ALLOW_ORIGINS = [o.strip() for o in os.getenv("ALLOW_ORIGINS", "*").split(",") if o.strip()]

# Unset means requests waits on the provider indefinitely
_timeout_raw = os.getenv("LLM_TIMEOUT_SECS", "").strip()
LLM_TIMEOUT_SECS: Optional[float]
try:
    LLM_TIMEOUT_SECS = float(_timeout_raw) if _timeout_raw else None
except ValueError:
    log.warning("config: ignoring non-numeric LLM_TIMEOUT_SECS=%r", _timeout_raw)
    LLM_TIMEOUT_SECS = None


class ProviderDescriptor(BaseModel):
    """One upstream text-generation service as declared in the providers file."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, protected_namespaces=())

    id: str
    endpoint: str
    model: str
    api_key_env: str = Field(alias="apiKeyEnv")

    def public_view(self) -> Dict[str, object]:
        return {
            **self.model_dump(by_alias=True),
            "keyConfigured": bool(credential_for(self)),
        }


def load_providers(path: Path) -> List[ProviderDescriptor]:
    """Read `{"providers": [...]}` from `path`; raise ValueError on duplicate ids."""
    data = json.loads(path.read_text(encoding="utf-8"))
    providers = TypeAdapter(List[ProviderDescriptor]).validate_python(data.get("providers", []))
    seen = set()
    for p in providers:
        if p.id in seen:
            raise ValueError(f"duplicate provider id in {path}: {p.id}")
        seen.add(p.id)
    log.info("config: loaded %d providers from %s", len(providers), path)
    return providers


PROVIDERS: List[ProviderDescriptor] = load_providers(PROVIDERS_CONFIG)

if _USE_DOTENV:
    # Keys stay in os.environ; credential_for still reads them per request
    load_env_file(DOTENV_PATH, [p.api_key_env for p in PROVIDERS])


def find_provider(provider_id: object) -> Optional[ProviderDescriptor]:
    for p in PROVIDERS:
        if p.id == provider_id:
            return p
    return None


def credential_for(provider: ProviderDescriptor) -> str:
    """Return the provider's key from the live environment, or "" when unset."""
    return (os.getenv(provider.api_key_env) or "").strip()
