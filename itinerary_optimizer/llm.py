# itinerary_optimizer/llm.py
import json
import logging
from typing import Any, Dict, List

from openai import OpenAI

from itinerary_optimizer import config
from itinerary_optimizer.agents.scorer import satisfaction_percent
from itinerary_optimizer.schemas import Itinerary, TripRequest

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
logger.setLevel(getattr(logging, config.LOG_LEVEL, logging.INFO))
logger.propagate = False

if config.OPENAI_API_KEY:
    _client = OpenAI(api_key=config.OPENAI_API_KEY)
else:  # pragma: no cover - exercised indirectly in tests without API key
    _client = None
    logger.warning("OPENAI_API_KEY not set; describe_itinerary returns stubbed notes")

SYSTEM_PROMPT = """You are a travel-planning assistant reviewing an itinerary
that has already been scheduled. Do not change the order, dates or stops.
Return JSON with three keys:
  1) summary (string, <= 400 characters)
  2) per_stop (array of {name, tips})
  3) cautions (array of strings: time zones, seasonality, geography)
Mark general knowledge as 'indicative'. Return ONLY valid JSON.
"""

GROUP_TEMPLATE = """Group trip overview:
- members: {members}
- departure: {departure}
- start date: {start}
- end date: {end}
- return to departure: {return_flag}

Scheduled stops (in order):
{stops}

Member satisfaction (0-100):
{satisfaction}
"""

SOLO_TEMPLATE = """Solo trip overview:
- departure: {departure}
- start date: {start}
- end date: {end}
- return to departure: {return_flag}

Scheduled stops (in order):
{stops}
"""


def _format_stops(request: TripRequest, itinerary: Itinerary) -> str:
    names = {t.id: t.name for t in request.travelers}
    lines: List[str] = []
    for idx, stop in enumerate(itinerary.stops, 1):
        line = (
            f"[{idx}] {stop.place.name} ({stop.kind}) "
            f"{stop.arrival.date().isoformat()} -> {stop.departure.date().isoformat()}"
        )
        if stop.requesters:
            line += f"; wanted by {', '.join(names.get(r, r) for r in stop.requesters)}"
        if stop.priority:
            line += f"; priority {stop.priority}/5"
        lines.append(line)
    return "\n".join(lines)


def build_prompt(request: TripRequest, itinerary: Itinerary) -> str:
    """Group prompt for several travelers, solo prompt otherwise."""
    common = {
        "departure": request.departure.name,
        "start": request.start.date().isoformat(),
        "end": request.end.date().isoformat() if request.end else "auto",
        "return_flag": "yes" if request.return_to_departure else "no",
        "stops": _format_stops(request, itinerary),
    }
    if len(request.travelers) <= 1:
        return SOLO_TEMPLATE.format(**common)

    percent = satisfaction_percent(itinerary.satisfaction, request.travelers)
    return GROUP_TEMPLATE.format(
        members=", ".join(t.name for t in request.travelers),
        satisfaction="\n".join(f"- {t.name}: {percent[t.id]}" for t in request.travelers),
        **common,
    )


def describe_itinerary(
    request: TripRequest,
    itinerary: Itinerary,
    model: str = config.ITINERARY_NOTES_MODEL,
) -> Dict[str, Any]:
    """Ask the hosted LLM for narrative notes on an already-optimised itinerary."""
    if _client is None:
        logger.info("Skipping LLM call; returning stub notes (missing client or API key).")
        return {
            "llm": "skipped",
            "reason": "missing_openai_client",
            "echo": {
                "departure": request.departure.name,
                "stops": [s.place.name for s in itinerary.stops],
            },
        }

    user_prompt = build_prompt(request, itinerary)
    logger.info("Invoking LLM model %s for %d itinerary stops", model, len(itinerary.stops))
    resp = _client.chat.completions.create(
        model=model,
        messages=[
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": user_prompt},
        ],
        temperature=0.2,
        response_format={"type": "json_object"},
    )

    raw = resp.choices[0].message.content
    try:
        parsed = json.loads(raw)
    except (TypeError, json.JSONDecodeError):
        parsed = None
    if not isinstance(parsed, dict):
        logger.warning("LLM response was not a JSON object; returning raw text")
        return {"error": "Invalid JSON from model", "raw": raw}
    logger.info("LLM notes parsed with keys: %s", ", ".join(sorted(parsed.keys())))
    return parsed
