"""
HTTP API for legend roast cards.

Run with: uvicorn server:app --reload --port 8000
"""

import logging
from functools import lru_cache
from typing import Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import config
from card_schema import LegendRequest
from card_storage import CardStorageError
from legend_pipeline import LegendPipeline, build_default_pipeline
from roast_generator import RoastGenerationError
from share_codec import decode_card

config.configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Legend Roast Cards", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache(maxsize=1)
def get_pipeline() -> LegendPipeline:
    return build_default_pipeline()


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    # pydantic prefixes messages raised from validators
    message = message.removeprefix("Value error, ")
    logger.info("Rejected request to %s: %s", request.url.path, message)
    return _error(400, message)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.post("/api/roast-legend")
def roast_legend(body: LegendRequest, pipeline: LegendPipeline = Depends(get_pipeline)):
    try:
        outcome = pipeline.resolve(body)
    except RoastGenerationError as e:
        logger.error("Roast generation failed for %r: %s", body.name, e)
        return _error(500, "Failed to generate roast")
    except CardStorageError as e:
        logger.error("Storing card failed for %r: %s", body.name, e)
        return _error(500, "Failed to generate roast")
    except Exception:
        logger.exception("Unexpected error resolving %r", body.name)
        return _error(500, "Failed to generate roast")

    return {"success": True, **outcome.model_dump()}


@app.get("/api/card/{card_id}")
def get_card(card_id: str, pipeline: LegendPipeline = Depends(get_pipeline)):
    stored = pipeline.store.get_card(card_id)
    if stored is None:
        return _error(404, "Card not found")
    return stored.model_dump()


@app.get("/api/card-rank")
def get_card_rank(
    card_id: Optional[str] = Query(None, alias="cardId"),
    pipeline: LegendPipeline = Depends(get_pipeline),
):
    if not card_id:
        return _error(400, "Card ID is required")
    rank = pipeline.store.get_card_rank(card_id)
    if rank is None:
        return _error(404, "Card not found")
    return rank.model_dump()


@app.get("/api/share/{data}")
def get_shared_card(data: str):
    shared = decode_card(data)
    if shared is None:
        return _error(404, "Card could not be decoded")
    return {"card": shared.card.model_dump(), "dreamRole": shared.dreamRole}
