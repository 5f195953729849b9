# debug_orchestrator.py
import asyncio
import json

from itinerary_optimizer.orchestrator import orchestrate_trip


async def main():
    payload = {
        "name": "Europe with friends",
        "members": [
            {"id": "aki", "name": "Aki"},
            {"id": "ben", "name": "Ben"},
            {"id": "chloe", "name": "Chloe"},
        ],
        "departureLocation": {"name": "Tokyo", "country": "Japan", "coordinates": [139.6917, 35.6895]},
        "startDate": "2025-10-10T09:00:00",
        "endDate": "2025-10-30T09:00:00",
        "returnToDeparture": True,
        "desiredLocations": [
            {
                "location": {"name": "Paris", "country": "France", "coordinates": [2.3522, 48.8566]},
                "requesters": ["aki", "chloe"],
                "priority": 5,
                "stayDuration": 72,
            },
            {
                "location": {"name": "Amsterdam", "country": "Netherlands", "coordinates": [4.9041, 52.3676]},
                "requesters": ["ben"],
                "priority": 4,
                "stayDuration": 48,
            },
            {
                "location": {"name": "Berlin", "country": "Germany", "coordinates": [13.4050, 52.5200]},
                "requesters": ["chloe"],
                "priority": 3,
                "stayDuration": 48,
            },
            {
                "location": {"name": "Kyoto", "country": "Japan", "coordinates": [135.7681, 35.0116]},
                "requesters": ["aki", "ben"],
                "priority": 2,
                "stayDuration": 24,
            },
        ],
        "seed": 7,
        "candidates": 4,
        "include_notes": True,
    }

    # Call orchestrator directly
    result = await orchestrate_trip(payload)
    print("➡️ Orchestrator returned:\n")
    print(json.dumps(result, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    asyncio.run(main())
