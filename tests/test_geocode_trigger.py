import pytest
from googlemaps import exceptions as gmaps_errors

from src.backend.crud import documents
from src.backend.crud.business import business_patch, create_business, update_business
from src.backend.schemas.business import BusinessCreate, BusinessUpdate
from src.backend.services.geocoding import GeocodeResult, GeocodingError, GoogleGeocoder, parse_results
from src.backend.utils.triggers import TriggerRegistry, triggers

OMAHA = GeocodeResult(lat=41.15, lng=-95.93, formatted_address="123 Main St, Omaha, NE")


async def test_business_with_location_is_not_geocoded(db, geocoder):
    geocoder.results = [OMAHA]
    await documents.set_document(db, "businesses", "b1", {"name": "Cafe", "address": "1 Elm St", "lat": 1.0, "lng": 2.0})
    await triggers.drain()

    assert geocoder.calls == []
    snap = await documents.get_document(db, "businesses", "b1")
    assert (snap.get("lat"), snap.get("lng")) == (1.0, 2.0)


async def test_business_without_address_is_not_geocoded(db, geocoder):
    await documents.set_document(db, "businesses", "b1", {"name": "Cafe"})
    await triggers.drain()
    assert geocoder.calls == []


async def test_address_is_geocoded_and_first_result_stored(db, geocoder):
    geocoder.results = [OMAHA, GeocodeResult(lat=0.0, lng=0.0)]
    await documents.set_document(db, "businesses", "b1", {"name": "Cafe", "address": "123 Main St"})
    await triggers.drain()

    # one call for the create; the follow-up write already has a location
    assert geocoder.calls == ["123 Main St"]
    snap = await documents.get_document(db, "businesses", "b1")
    assert snap.get("lat") == 41.15
    assert snap.get("lng") == -95.93
    assert snap.get("name") == "Cafe"


async def test_zero_results_leave_location_unset(db, geocoder):
    geocoder.results = []
    await documents.set_document(db, "businesses", "b1", {"name": "Cafe", "address": "Nowhere"})
    await triggers.drain()

    assert geocoder.calls == ["Nowhere"]
    snap = await documents.get_document(db, "businesses", "b1")
    assert snap.get("lat") is None and snap.get("lng") is None


async def test_provider_error_is_swallowed(db, geocoder):
    geocoder.error = GeocodingError("denied")
    snap = await documents.set_document(db, "businesses", "b1", {"name": "Cafe", "address": "123 Main St"})
    await triggers.drain()

    assert snap.exists
    assert (await documents.get_document(db, "businesses", "b1")).get("lat") is None


async def test_deleting_a_business_does_not_geocode(db, geocoder):
    await documents.set_document(db, "businesses", "b1", {"name": "Cafe", "lat": 1.0, "lng": 2.0, "address": "x"})
    await documents.delete_document(db, "businesses", "b1")
    await triggers.drain()
    assert geocoder.calls == []


async def test_other_collections_do_not_fire(db, geocoder):
    await documents.set_document(db, "organizations", "o1", {"name": "Org", "address": "123 Main St"})
    await triggers.drain()
    assert geocoder.calls == []


async def test_address_change_resets_location_and_regeocodes(db, geocoder):
    geocoder.results = [OMAHA]
    created = await create_business(db, BusinessCreate(name="Cafe", address="123 Main St"))
    await triggers.drain()
    assert (await documents.get_document(db, "businesses", created.id)).get("lat") == 41.15

    geocoder.results = [GeocodeResult(lat=41.2, lng=-96.0)]
    updated = await update_business(db, created.id, BusinessUpdate(name="Cafe", address="500 Oak St"))
    assert updated.get("lat") is None and updated.get("lng") is None
    assert updated.get("qr_code_secret") == created.get("qr_code_secret")

    await triggers.drain()
    snap = await documents.get_document(db, "businesses", created.id)
    assert (snap.get("lat"), snap.get("lng")) == (41.2, -96.0)
    assert geocoder.calls == ["123 Main St", "500 Oak St"]


def test_business_patch_uses_dotted_details_and_keeps_location_when_address_unchanged():
    patch = business_patch({"address": "1 Elm"}, BusinessUpdate(name="Cafe", address="1 Elm", details={"city": "Bellevue"}))
    assert patch["details.city"] == "Bellevue"
    assert "lat" not in patch and "lng" not in patch


async def test_registry_passes_path_params_and_isolates_failures():
    registry = TriggerRegistry()
    seen = []

    @registry.on_document_written("businesses/{businessId}")
    async def record(event):
        seen.append(event.params)

    @registry.on_document_written("businesses/{businessId}")
    async def boom(event):
        raise RuntimeError("handler failure")

    assert registry.handlers_for("businesses", "abc") != []
    assert registry.handlers_for("businesses", "abc/scans") == []

    from src.backend.schemas.document import DocumentSnapshot, WriteEvent

    before = DocumentSnapshot("businesses", "abc", None)
    after = DocumentSnapshot("businesses", "abc", {"name": "x"})
    registry.dispatch(WriteEvent("businesses", "abc", before, after))
    await registry.drain()
    assert seen == [{"businessId": "abc"}]


def test_parse_results_skips_entries_without_location():
    results = [
        {"geometry": {}},
        {"geometry": {"location": {"lat": 41.15, "lng": -95.93}}, "formatted_address": "123 Main St"},
    ]
    assert parse_results(results) == [GeocodeResult(41.15, -95.93, "123 Main St")]


class _MapsClient:
    def __init__(self, results=None, exc=None):
        self.results = results or []
        self.exc = exc
        self.calls = []

    def geocode(self, address):
        self.calls.append(address)
        if self.exc:
            raise self.exc
        return self.results


def test_google_geocoder_returns_ranked_results():
    client = _MapsClient([{"geometry": {"location": {"lat": 41.15, "lng": -95.93}}}])
    g = GoogleGeocoder(api_key="k", timeout=1.0, client=client)

    assert g.geocode_sync("123 Main St") == [GeocodeResult(41.15, -95.93)]
    assert client.calls == ["123 Main St"]


def test_google_geocoder_maps_client_errors():
    assert GoogleGeocoder(client=_MapsClient([])).geocode_sync("x") == []

    for exc in (
        gmaps_errors.ApiError("REQUEST_DENIED", "bad key"),
        gmaps_errors.TransportError("connection reset"),
        gmaps_errors.Timeout(),
    ):
        with pytest.raises(GeocodingError):
            GoogleGeocoder(client=_MapsClient(exc=exc)).geocode_sync("x")


def test_google_geocoder_builds_single_attempt_client(monkeypatch):
    from src.backend.services import geocoding

    seen = {}

    def fake_client(**kwargs):
        seen.update(kwargs)
        return _MapsClient([])

    monkeypatch.setattr(geocoding.googlemaps, "Client", fake_client)
    GoogleGeocoder(api_key="AIza-test", timeout=1.0).geocode_sync("x")
    assert seen == {"key": "AIza-test", "timeout": 1.0, "retry_timeout": 1.0, "retry_over_query_limit": False}


def test_google_geocoder_rejected_key_is_a_geocoding_error():
    # googlemaps refuses keys that do not look like Maps keys
    with pytest.raises(GeocodingError):
        GoogleGeocoder(api_key="not-a-maps-key").geocode_sync("x")
