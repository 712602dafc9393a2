# pytest services/maps/tests/test_maps_api.py -q

from unittest.mock import AsyncMock, MagicMock
from urllib.parse import parse_qs, urlparse

import pytest
from fastapi.testclient import TestClient

from services.maps.google_maps_client import GoogleMapsClient, get_google_maps_client
from services.maps.main import app, get_cache, get_random_source, strip_html

pytestmark = pytest.mark.unit

client = TestClient(app)


@pytest.fixture
def gmaps():
    fake = MagicMock()
    fake._is_enabled.return_value = True
    for name in ("geocode", "reverse_geocode", "nearby_places", "directions"):
        setattr(fake, name, AsyncMock())
    return fake


@pytest.fixture(autouse=True)
def overrides(memory_cache, gmaps):
    app.dependency_overrides[get_cache] = lambda: memory_cache
    app.dependency_overrides[get_google_maps_client] = lambda: gmaps
    app.dependency_overrides[get_random_source] = lambda: (lambda: 0.5)
    yield
    app.dependency_overrides.clear()


class TestGeocode:
    def test_geocode(self, gmaps):
        gmaps.geocode.return_value = {
            "status": "OK",
            "results": [
                {
                    "formatted_address": "Times Square, New York, NY, USA",
                    "geometry": {"location": {"lat": 40.758, "lng": -73.9855}},
                    "place_id": "abc",
                    "types": ["tourist_attraction"],
                }
            ],
        }
        r = client.get("/v1/maps/geocode?address=Times Square")
        assert r.status_code == 200
        assert r.json() == {
            "address": "Times Square, New York, NY, USA",
            "coordinates": {"lat": 40.758, "lng": -73.9855},
            "placeId": "abc",
            "types": ["tourist_attraction"],
        }
        gmaps.geocode.assert_awaited_once_with("Times Square")

    def test_non_ok_status_is_client_error(self, gmaps):
        gmaps.geocode.return_value = {"status": "ZERO_RESULTS", "results": []}
        r = client.get("/v1/maps/geocode?address=nowhere at all")
        assert r.status_code == 400
        assert r.json()["detail"] == {"error": "Geocoding failed", "details": "ZERO_RESULTS"}

    def test_address_required(self):
        r = client.get("/v1/maps/geocode")
        assert r.status_code == 400
        assert r.json()["detail"] == "Address parameter is required"

    def test_address_too_short(self):
        r = client.get("/v1/maps/geocode?address=abc")
        assert r.status_code == 400
        assert r.json()["detail"] == "Address must be at least 5 characters"

    def test_unconfigured(self, gmaps):
        gmaps._is_enabled.return_value = False
        r = client.get("/v1/maps/geocode?address=Times Square")
        assert r.status_code == 503


class TestReverseGeocode:
    def test_reverse(self, gmaps):
        gmaps.reverse_geocode.return_value = {
            "status": "OK",
            "results": [
                {"formatted_address": "1 Main St", "place_id": "p1", "address_components": []}
            ],
        }
        r = client.get("/v1/maps/reverse-geocode?lat=40.7&lng=-73.9")
        assert r.status_code == 200
        assert r.json()["coordinates"] == {"lat": 40.7, "lng": -73.9}
        assert r.json()["address"] == "1 Main St"

    def test_cached(self, gmaps):
        gmaps.reverse_geocode.return_value = {
            "status": "OK",
            "results": [{"formatted_address": "1 Main St", "place_id": "p1"}],
        }
        client.get("/v1/maps/reverse-geocode?lat=40.7&lng=-73.9")
        r = client.get("/v1/maps/reverse-geocode?lat=40.7&lng=-73.9")
        assert r.json()["cached"] is True
        assert gmaps.reverse_geocode.await_count == 1


class TestPlaces:
    def test_nearby(self, gmaps):
        gmaps.nearby_places.return_value = {
            "status": "OK",
            "results": [
                {
                    "place_id": "p1",
                    "name": "Cafe",
                    "geometry": {"location": {"lat": 1, "lng": 2}},
                    "rating": 4.5,
                    "types": ["cafe"],
                    "vicinity": "Main St",
                    "opening_hours": {"open_now": True},
                }
            ],
            "next_page_token": "tok",
        }
        r = client.get("/v1/maps/places/nearby?lat=1&lng=2&radius=500&type=cafe")
        assert r.status_code == 200
        body = r.json()
        assert body["nextPageToken"] == "tok"
        assert body["places"][0]["openNow"] is True
        assert body["places"][0]["priceLevel"] is None
        gmaps.nearby_places.assert_awaited_once_with(1.0, 2.0, 500, "cafe")

    def test_radius_out_of_range(self):
        r = client.get("/v1/maps/places/nearby?lat=1&lng=2&radius=60000")
        assert r.status_code == 400
        assert r.json()["detail"] == "Radius must not exceed 50000 meters"


class TestDirections:
    def test_strips_html_from_steps(self, gmaps):
        gmaps.directions.return_value = {
            "status": "OK",
            "routes": [
                {
                    "legs": [
                        {
                            "distance": {"text": "1 km", "value": 1000},
                            "duration": {"text": "3 mins", "value": 180},
                            "start_address": "A",
                            "end_address": "B",
                            "steps": [
                                {
                                    "html_instructions": "Turn <b>left</b> onto <div>Main St</div>",
                                    "distance": {"value": 1000},
                                    "duration": {"value": 180},
                                    "start_location": {"lat": 1, "lng": 2},
                                    "end_location": {"lat": 1.01, "lng": 2},
                                }
                            ],
                        }
                    ],
                    "overview_polyline": {"points": "abc"},
                }
            ],
        }
        r = client.get("/v1/maps/directions?origin=A&destination=B")
        assert r.status_code == 200
        body = r.json()
        assert body["steps"][0]["instruction"] == "Turn left onto Main St"
        assert body["polyline"] == "abc"
        gmaps.directions.assert_awaited_once_with("A", "B", "driving")

    def test_requires_both_ends(self):
        r = client.get("/v1/maps/directions?origin=A")
        assert r.status_code == 400
        assert r.json()["detail"] == "Origin and destination parameters are required"

    def test_not_found(self, gmaps):
        gmaps.directions.return_value = {"status": "NOT_FOUND", "routes": []}
        r = client.get("/v1/maps/directions?origin=A&destination=B")
        assert r.status_code == 400
        assert r.json()["detail"]["details"] == "NOT_FOUND"


class TestTraffic:
    def test_simulated(self):
        r = client.get("/v1/maps/traffic?lat=40.7&lng=-73.9")
        assert r.status_code == 200
        body = r.json()
        assert body["radius"] == 5000
        assert body["trafficLevel"] == "moderate"
        assert body["congestionScore"] == 50
        assert body["averageSpeed"] == 50
        assert body["incidents"] == 2

    def test_cached(self):
        client.get("/v1/maps/traffic?lat=40.7&lng=-73.9")
        r = client.get("/v1/maps/traffic?lat=40.7&lng=-73.9")
        assert r.json()["cached"] is True

    def test_invalid_coordinates(self):
        r = client.get("/v1/maps/traffic?lat=40.7&lng=-190")
        assert r.status_code == 400


class TestStaticMap:
    def test_builds_url_without_upstream_call(self):
        app.dependency_overrides[get_google_maps_client] = lambda: GoogleMapsClient(api_key="k")
        r = client.get("/v1/maps/static-map?center=40.7,-73.9&markers=color:red|40.7,-73.9")
        assert r.status_code == 200
        body = r.json()
        assert body["parameters"]["zoom"] == 13
        url = urlparse(body["url"])
        assert url.path == "/maps/api/staticmap"
        query = parse_qs(url.query)
        assert query["center"] == ["40.7,-73.9"]
        assert query["size"] == ["600x400"]
        assert query["maptype"] == ["roadmap"]
        assert query["markers"] == ["color:red|40.7,-73.9"]
        assert query["key"] == ["k"]

    def test_center_required(self):
        r = client.get("/v1/maps/static-map")
        assert r.status_code == 400
        assert r.json()["detail"] == "Center parameter is required"


def test_strip_html():
    assert strip_html("<b>Head</b> north") == "Head north"
    assert strip_html(None) == ""
