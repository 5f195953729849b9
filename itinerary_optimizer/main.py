from __future__ import annotations

import asyncio
from typing import Any, Dict

from fastapi import Body, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from itinerary_optimizer import config
from itinerary_optimizer.errors import NoFeasibleItinerary, TripValidationError
from itinerary_optimizer.orchestrator import orchestrate_trip

app = FastAPI(title="Itinerary Optimizer API")

# Operators can scope this via ITINERARY_OPTIMIZER_ALLOWED_ORIGINS.
allowed_origins = [origin.strip() for origin in config.ALLOWED_ORIGINS.split(",") if origin.strip()]
if not allowed_origins:
    allowed_origins = ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


async def _optimize_from_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Run the pipeline under the configured timeout and map failures to HTTP errors."""
    try:
        return await asyncio.wait_for(
            orchestrate_trip(dict(payload)),
            timeout=config.OPTIMIZE_TIMEOUT_SECONDS,
        )
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.errors(include_url=False, include_context=False)) from exc
    except TripValidationError as exc:
        raise HTTPException(
            status_code=422,
            detail={"error": type(exc).__name__, "message": str(exc)},
        ) from exc
    except NoFeasibleItinerary as exc:
        raise HTTPException(
            status_code=422,
            detail={"error": "NoFeasibleItinerary", "message": str(exc)},
        ) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except asyncio.TimeoutError as exc:
        raise HTTPException(status_code=504, detail="Itinerary optimization timed out") from exc


@app.post("/api/optimize")
async def api_optimize(payload: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
    """Primary endpoint: trip payload in, scored itinerary out."""
    return await _optimize_from_payload(payload)


@app.get("/api/health")
async def health() -> Dict[str, str]:
    return {"status": "ok"}
