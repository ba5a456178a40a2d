import logging
import os
import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional, Tuple

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel

from sitebuilder import config, llm_client, site_writer
from sitebuilder.errors import ClientInputError
from sitebuilder.fallback import generate_fallback
from sitebuilder.llm_parsing import GeneratedSiteAssets, normalize

if not logging.getLogger().handlers:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

log = logging.getLogger(__name__)

INITIAL_PROMPT = "Create a modern landing page with a CTA button"


@asynccontextmanager
async def lifespan(app: FastAPI):
    # A failure here aborts startup: the root URL must never be empty
    site_writer.write_site(generate_fallback(INITIAL_PROMPT))
    log.info("startup: initial site written to %s", config.SITE_DIR)
    yield


app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.ALLOW_ORIGINS or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = str(uuid.uuid4())
    start = time.time()
    request.state.request_id = rid
    response = None
    try:
        response = await call_next(request)
        return response
    finally:
        dur_ms = int((time.time() - start) * 1000)
        log.info(
            "rid=%s method=%s path=%s status=%s dur_ms=%d",
            rid,
            request.method,
            request.url.path,
            getattr(response, "status_code", "?"),
            dur_ms,
        )


class BuildSiteRequest(BaseModel):
    # Any: type checks happen in _resolve_request and answer 400
    prompt: Any = None
    providerId: Any = None


@app.exception_handler(RequestValidationError)
async def _invalid_body(request: Request, exc: RequestValidationError):
    log.warning("invalid request body path=%s errors=%s", request.url.path, exc.errors())
    return JSONResponse(status_code=400, content={"error": "Request body must be a JSON object."})


@app.exception_handler(ClientInputError)
async def _client_error(request: Request, exc: ClientInputError):
    return JSONResponse(status_code=400, content={"error": str(exc)})


def _resolve_request(req: Optional[BuildSiteRequest]) -> config.ProviderDescriptor:
    prompt = req.prompt if req else None
    if not prompt or not isinstance(prompt, str):
        raise ClientInputError("A non-empty prompt is required.")
    provider_id = req.providerId if req.providerId is not None else config.DEFAULT_PROVIDER_ID
    provider = config.find_provider(provider_id)
    if provider is None:
        raise ClientInputError(f"Unknown provider: {provider_id}")
    return provider


def _generate(provider: config.ProviderDescriptor, prompt: str) -> Tuple[GeneratedSiteAssets, bool]:
    """Return (assets, used_fallback). The key is read fresh on every call."""
    api_key = config.credential_for(provider)
    if not api_key:
        log.info("build: no key in %s; using local fallback", provider.api_key_env)
        return generate_fallback(prompt), True
    raw = llm_client.dispatch(provider, api_key, prompt)
    return normalize(raw), False


@app.get("/api/health")
def health() -> Dict[str, str]:
    return {"status": "ok", "message": f"AI website builder is running on {config.SITE_URL}"}


@app.get("/api/providers")
def list_providers() -> Dict[str, Any]:
    """Configured providers plus whether each one's key is currently set."""
    return {"providers": [p.public_view() for p in config.PROVIDERS]}


@app.post("/api/build-site")
def build_site(req: Optional[BuildSiteRequest] = None):
    provider = _resolve_request(req)
    try:
        assets, used_fallback = _generate(provider, req.prompt)
        site_writer.write_site(assets)
    except Exception as e:
        log.exception("build: failed provider=%s", provider.id)
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to build website.", "details": str(e)},
        )

    log.info("build: site updated provider=%s fallback=%s", provider.id, used_fallback)
    return {
        "message": f"Website generated and running on {config.SITE_URL}",
        "provider": provider.id,
        "usedFallback": used_fallback,
        "websiteUrl": config.SITE_URL,
    }


# Mounted last: "/" would otherwise shadow the API routes
app.mount("/app", StaticFiles(directory=str(config.PUBLIC_DIR), html=True, check_dir=False), name="app")
app.mount("/", StaticFiles(directory=str(config.SITE_DIR), html=True, check_dir=False), name="site")
