from __future__ import annotations

import os
import sys
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel, Field

if __package__ in (None, ""):
    sys.path.append(str(Path(__file__).resolve().parent.parent))

from proposal_configurator.core import catalog
from proposal_configurator.core.crypto import encryption_enabled
from proposal_configurator.core.models import ClientData, ROIInputs, QuoteRequest
from proposal_configurator.core.proposal import (
    build_snapshot,
    decode_snapshot,
    encode_snapshot,
    format_brl,
    share_url,
)
from proposal_configurator.core.quote import run_quote
from proposal_configurator.core.roi import calculate_roi, calculate_value_pricing

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent


@asynccontextmanager
async def lifespan(_: FastAPI):
    mode = "cifrados" if encryption_enabled() else "em claro"
    print(f"[startup] configurador pronto, links de proposta {mode}", flush=True)
    yield


app = FastAPI(title="CRM Partner - Configurador de Propostas", version="0.1.0", lifespan=lifespan)

templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))
templates.env.filters["brl"] = format_brl


class ROIRequest(BaseModel):
    inputs: ROIInputs = Field(default_factory=ROIInputs)
    cost_plus_price: float = Field(default=0, ge=0)


class ProposalRequest(BaseModel):
    quote: QuoteRequest = Field(default_factory=QuoteRequest)
    client: ClientData = Field(default_factory=ClientData)
    stripe_checkout_url: str | None = None
    pix_key: str | None = None


@app.get("/api/health", response_class=JSONResponse)
async def health():
    return {"ok": True}


@app.get("/api/catalog", response_class=JSONResponse)
async def get_catalog():
    return catalog.catalog_payload()


@app.post("/api/quote", response_class=JSONResponse)
async def quote(payload: QuoteRequest):
    try:
        result = run_quote(payload)
    except ValueError as exc:
        return JSONResponse({"ok": False, "error": str(exc)}, status_code=400)
    return result.model_dump(mode="json")


@app.post("/api/roi", response_class=JSONResponse)
async def roi(payload: ROIRequest):
    outputs = calculate_roi(payload.inputs)
    value_pricing = calculate_value_pricing(payload.cost_plus_price, outputs.recovered_revenue)
    return {
        "roi": outputs.model_dump(mode="json"),
        "value_pricing": value_pricing.model_dump(mode="json"),
    }


@app.post("/api/proposals", response_class=JSONResponse)
async def create_proposal(request: Request, payload: ProposalRequest):
    try:
        result = run_quote(payload.quote)
    except ValueError as exc:
        return JSONResponse({"ok": False, "error": str(exc)}, status_code=400)

    snapshot = build_snapshot(
        payload.quote,
        result,
        client=payload.client,
        stripe_checkout_url=payload.stripe_checkout_url,
        pix_key=payload.pix_key,
    )
    token = encode_snapshot(snapshot)
    base_url = os.getenv("APP_PUBLIC_URL", "").strip() or str(request.base_url)
    print(f"[proposal] {snapshot.proposal_id} gerada para {snapshot.client.company_name or 'cliente'}", flush=True)
    return {
        "ok": True,
        "proposal_id": snapshot.proposal_id,
        "token": token,
        "url": share_url(token, base_url),
        "client_url": share_url(token, base_url, view="client"),
    }


@app.get("/api/proposals/{token}", response_class=JSONResponse)
async def read_proposal(token: str):
    snapshot = decode_snapshot(token)
    if snapshot is None:
        return JSONResponse({"ok": False, "error": "proposal_not_found"}, status_code=404)
    return snapshot.model_dump(mode="json")


@app.get("/proposal", response_class=HTMLResponse)
async def proposal_page(request: Request, data: str = "", view: str = "proposal"):
    snapshot = decode_snapshot(data)
    if snapshot is None:
        return HTMLResponse("<h1>Proposta nao encontrada</h1>", status_code=404)

    features = [
        (catalog.FEATURE_LABELS[key], enabled)
        for key, enabled in snapshot.result.features.model_dump().items()
    ]
    return templates.TemplateResponse(
        request=request,
        name="proposal.html",
        context={
            "snapshot": snapshot,
            "result": snapshot.result,
            "setup_items": snapshot.result.setup_items,
            "features": features,
            "is_client_view": view == "client",
        },
    )
