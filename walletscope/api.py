"""FastAPI app exposing wallet analysis over HTTP."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from walletscope.analysis import analyze_wallet
from walletscope.errors import WalletscopeError
from walletscope.models.schema import PnlMode, Timeframe
from walletscope.tokens.pricing import JupiterPriceSource

logger = logging.getLogger(__name__)

app = FastAPI(title="walletscope", version="1.0.0")


class AnalyzeRequest(BaseModel):
    wallet_address: str = Field(default="", alias="walletAddress")
    api_key: str | None = Field(default=None, alias="apiKey")
    timeframe: Timeframe = Timeframe.ALL
    mode: PnlMode = PnlMode.STRICT
    enrich_related: bool = Field(default=False, alias="enrichRelated")


@app.exception_handler(WalletscopeError)
async def _walletscope_error(request: Request, exc: WalletscopeError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(Exception)
async def _internal_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s", request.url.path)
    return JSONResponse(status_code=500, content={"error": str(exc) or "Internal server error"})


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.post("/api/analyze")
async def analyze(body: AnalyzeRequest):
    """Analyze a wallet. Errors come back as ``{"error": message}`` with a status class."""
    price_source = JupiterPriceSource() if body.mode is PnlMode.SIMPLE else None
    report = await analyze_wallet(
        body.wallet_address,
        timeframe=body.timeframe,
        mode=body.mode,
        api_key=body.api_key,
        price_source=price_source,
        enrich_related=body.enrich_related,
    )
    return report.model_dump(mode="json", by_alias=True)
