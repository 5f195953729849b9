from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol, Sequence, Tuple
import logging

import httpx

from itinerary_optimizer import config
from itinerary_optimizer.errors import AirportLookupUnavailable
from itinerary_optimizer.schemas import GeoPoint, Place, looks_like_airport
from itinerary_optimizer.tools.geo import haversine_km

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
logger.setLevel(getattr(logging, config.LOG_LEVEL, logging.INFO))
logger.propagate = False


class AirportLookup(Protocol):
    async def nearest_airport(self, point: GeoPoint) -> Optional[Place]:
        ...


# (name, country, region, lon, lat)
_KNOWN_AIRPORTS: Tuple[Tuple[str, str, str, float, float], ...] = (
    ("Tokyo Haneda Airport", "Japan", "Tokyo", 139.7798, 35.5494),
    ("Narita International Airport", "Japan", "Chiba", 140.3929, 35.7719),
    ("Kansai International Airport", "Japan", "Osaka", 135.2381, 34.4320),
    ("Chubu Centrair International Airport", "Japan", "Aichi", 136.8049, 34.8583),
    ("New Chitose Airport", "Japan", "Hokkaido", 141.6810, 42.7750),
    ("Fukuoka Airport", "Japan", "Fukuoka", 130.4514, 33.5902),
    ("Naha Airport", "Japan", "Okinawa", 127.6465, 26.2060),
    ("London Heathrow Airport", "United Kingdom", "London", -0.4543, 51.4700),
    ("Charles de Gaulle Airport", "France", "Ile-de-France", 2.5479, 49.0097),
    ("Frankfurt Airport", "Germany", "Hesse", 8.5622, 50.0379),
    ("Amsterdam Airport Schiphol", "Netherlands", "North Holland", 4.7683, 52.3105),
    ("Los Angeles International Airport", "United States", "California", -118.4085, 33.9416),
    ("John F. Kennedy International Airport", "United States", "New York", -73.7781, 40.6413),
    ("Beijing Capital International Airport", "China", "Beijing", 116.5977, 40.0799),
    ("Singapore Changi Airport", "Singapore", "Singapore", 103.9915, 1.3644),
    ("Dubai International Airport", "United Arab Emirates", "Dubai", 55.3657, 25.2532),
    ("Sydney Airport", "Australia", "New South Wales", 151.1772, -33.9399),
)


def _known_airports() -> List[Place]:
    return [
        Place(
            name=name,
            country=country,
            region=region,
            point=GeoPoint(longitude=lon, latitude=lat),
            is_airport=True,
        )
        for name, country, region, lon, lat in _KNOWN_AIRPORTS
    ]


@dataclass
class StaticAirportLookup:
    """Nearest airport from a curated table, or None beyond ``max_distance_km``."""

    airports: Sequence[Place] = field(default_factory=_known_airports)
    max_distance_km: float = config.AIRPORT_SEARCH_RADIUS_KM

    async def nearest_airport(self, point: GeoPoint) -> Optional[Place]:
        nearest: Optional[Place] = None
        best = float("inf")
        for airport in self.airports:
            d = haversine_km(point, airport.point)
            if d < best:
                best = d
                nearest = airport
        if nearest is None or best > self.max_distance_km:
            return None
        return nearest


class MapboxAirportLookup:
    """
    Airport lookup backed by the Mapbox Search Box category endpoint.

    Transport failures and malformed payloads surface as
    ``AirportLookupUnavailable`` so the builder can degrade the leg; an empty
    result set is a plain ``None``.
    """
    CATEGORY_ENDPOINT = "https://api.mapbox.com/search/searchbox/v1/category/airport"

    def __init__(
        self,
        *,
        access_token: Optional[str] = None,
        timeout: float = config.AIRPORT_LOOKUP_TIMEOUT,
        language: str = "en",
    ):
        self.access_token = access_token or config.MAPBOX_ACCESS_TOKEN
        self.timeout = timeout
        self.language = language

    async def nearest_airport(self, point: GeoPoint) -> Optional[Place]:
        if not self.access_token:
            raise AirportLookupUnavailable("MAPBOX_ACCESS_TOKEN not configured")

        params = {
            "access_token": self.access_token,
            "proximity": f"{point.longitude},{point.latitude}",
            "limit": 5,
            "language": self.language,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(self.CATEGORY_ENDPOINT, params=params)
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Airport lookup failed near %s", point, exc_info=True)
            raise AirportLookupUnavailable(str(exc)) from exc

        try:
            features: List[Dict] = data.get("features") or []
            if not features:
                logger.info("No airport found near (%.4f, %.4f)", point.longitude, point.latitude)
                return None
            return self._to_place(self._pick_main_airport(features))
        except (KeyError, TypeError, AttributeError, IndexError, ValueError) as exc:
            logger.warning("Unexpected airport payload near %s", point, exc_info=True)
            raise AirportLookupUnavailable(f"Malformed airport search response: {exc}") from exc

    @staticmethod
    def _pick_main_airport(features: List[Dict]) -> Dict:
        # International hubs first, then anything that is named like an airport.
        for feature in features:
            name = (feature.get("properties") or {}).get("name") or ""
            if "international" in name.lower() or "国際" in name:
                return feature
        for feature in features:
            name = (feature.get("properties") or {}).get("name") or ""
            if looks_like_airport(name):
                return feature
        return features[0]

    @staticmethod
    def _to_place(feature: Dict) -> Place:
        props = feature.get("properties") or {}
        context = props.get("context") or {}
        lon, lat = feature["geometry"]["coordinates"][:2]
        return Place(
            name=props.get("name") or "Airport",
            country=(context.get("country") or {}).get("name"),
            region=(context.get("region") or {}).get("name"),
            point=GeoPoint(longitude=lon, latitude=lat),
            is_airport=True,
        )


@dataclass
class FallbackAirportLookup:
    """Ask ``primary`` first and fall back when it is unavailable."""

    primary: AirportLookup
    fallback: AirportLookup

    async def nearest_airport(self, point: GeoPoint) -> Optional[Place]:
        try:
            return await self.primary.nearest_airport(point)
        except AirportLookupUnavailable:
            logger.info("Primary airport lookup unavailable; using fallback table")
            return await self.fallback.nearest_airport(point)


def default_airport_lookup() -> AirportLookup:
    if config.MAPBOX_ACCESS_TOKEN:
        return FallbackAirportLookup(MapboxAirportLookup(), StaticAirportLookup())
    return StaticAirportLookup()
