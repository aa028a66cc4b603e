import httpx
import pytest
from fastapi.testclient import TestClient

from route_sequencer.config import Settings
from route_sequencer.main import create_app
from route_sequencer.models.domain import Coordinates
from route_sequencer.services.routing.cache import RouteCache
from route_sequencer.services.routing.osrm_client import OSRMClient
from route_sequencer.services.routing.providers import OSRMProvider
from route_sequencer.services.routing.service import RouteOptimizationService


def _osrm_handler(request: httpx.Request) -> httpx.Response:
    return httpx.Response(
        200,
        json={
            "code": "Ok",
            "routes": [
                {
                    "distance": 1000.0,
                    "duration": 120.0,
                    "geometry": {"type": "LineString", "coordinates": [[2.35, 48.85], [2.34, 48.86]]},
                    "legs": [{"steps": [{"distance": 1000.0, "maneuver": {"instruction": "Drive north"}}]}],
                }
            ],
        },
    )


class StubGeocoder:
    def geocode(self, address: str):
        if address == "Eiffel Tower":
            return Coordinates(latitude=48.8584, longitude=2.2945)
        return None


@pytest.fixture
def api_client() -> TestClient:
    osrm = OSRMProvider(
        OSRMClient(base_url="http://osrm.test", max_retries=0, transport=httpx.MockTransport(_osrm_handler))
    )
    service = RouteOptimizationService(
        config=Settings(osrm_base_url=None, ors_api_key=None),
        providers=[osrm],
        route_cache=RouteCache(),
        geocoder=StubGeocoder(),
    )
    return TestClient(create_app(service))


PAYLOAD = {
    "stops": [
        {"id": "a", "address": "Start", "coordinates": {"latitude": 48.85, "longitude": 2.35}},
        {"id": "b", "address": "Middle", "coordinates": {"latitude": 48.86, "longitude": 2.34}},
        {"id": "c", "address": "End", "coordinates": {"latitude": 48.87, "longitude": 2.33}},
    ],
    "vehicle_type": "truck",
    "optimization_method": "shortest_distance",
}


def test_optimize_returns_route_and_metadata(api_client: TestClient):
    response = api_client.post("/api/routes/optimize", json=PAYLOAD)

    assert response.status_code == 200
    body = response.json()
    assert len(body["route"]["locations"]) == 3
    assert len(body["route"]["segments"]) == 2
    segment = body["route"]["segments"][0]
    # Truck on the generic driving profile is stretched.
    assert abs(segment["distance_km"] - 1.1) < 1e-9
    assert abs(segment["duration_min"] - 2.8) < 1e-9
    assert segment["polyline"]["type"] == "LineString"
    assert body["metadata"]["provider"] == "osrm"
    assert body["metadata"]["source"] == "computed"
    assert body["metadata"]["algorithm"] == "bounded-search"


def test_optimize_second_call_is_cached(api_client: TestClient):
    api_client.post("/api/routes/optimize", json=PAYLOAD)
    response = api_client.post("/api/routes/optimize", json=PAYLOAD)

    assert response.json()["metadata"]["source"] == "cache"
    stats = api_client.get("/api/routes/cache").json()
    assert stats["route_count"] == 1
    assert stats["approximate_size_bytes"] > 0


def test_optimize_rejects_unroutable_payload(api_client: TestClient):
    payload = {"stops": [{"id": "a", "address": "Lonely", "coordinates": {"latitude": 1.0, "longitude": 1.0}}]}

    response = api_client.post("/api/routes/optimize", json=payload)

    assert response.status_code == 400
    assert "At least 2 stops" in response.json()["detail"]


def test_optimize_rejects_out_of_range_coordinates(api_client: TestClient):
    payload = {
        "stops": [
            {"id": "a", "coordinates": {"latitude": 91.0, "longitude": 1.0}},
            {"id": "b", "coordinates": {"latitude": 1.0, "longitude": 1.0}},
        ]
    }

    assert api_client.post("/api/routes/optimize", json=payload).status_code == 422


def test_clear_cache_endpoint(api_client: TestClient):
    api_client.post("/api/routes/optimize", json=PAYLOAD)

    response = api_client.delete("/api/routes/cache")

    assert response.status_code == 204
    assert api_client.get("/api/routes/cache").json()["route_count"] == 0


def test_geocode_found_and_not_found(api_client: TestClient):
    found = api_client.get("/api/geocode", params={"address": "Eiffel Tower"})
    missing = api_client.get("/api/geocode", params={"address": "Atlantis"})

    assert found.status_code == 200
    assert found.json() == {"address": "Eiffel Tower", "latitude": 48.8584, "longitude": 2.2945}
    assert missing.status_code == 404


def test_health_endpoints(api_client: TestClient):
    assert api_client.get("/api/health").json() == {"status": "ok"}
    assert api_client.get("/api/health/osrm").json()["healthy"] is False
    capabilities = api_client.get("/api/health/capabilities").json()
    assert capabilities == {"truck_routing": False, "providers": ["osrm", "geodesic"]}
