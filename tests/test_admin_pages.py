import asyncio

from src.backend.crud import documents
from src.backend.utils.database import AsyncSessionLocal

from tests.conftest import csrf_from, settle


def _docs(collection):
    async def _load():
        async with AsyncSessionLocal() as db:
            rows, _ = await documents.list_documents(db, collection, order_by=None)
            return rows

    return asyncio.run(_load())


# -------- Auth --------
def test_login_with_bad_password_goes_back_to_login(client):
    token = csrf_from(client)
    resp = client.post(
        "/auth/login",
        data={"email": "nobody@example.com", "password": "x", "csrf_token": token},
        follow_redirects=False,
    )
    assert resp.status_code == 303
    assert resp.headers["location"].startswith("/login?error=")


def test_login_form_without_csrf_is_rejected(client):
    client.get("/login")
    resp = client.post("/auth/login", data={"email": "a@b.co", "password": "x"}, follow_redirects=False)
    assert resp.status_code == 403


def test_logout_clears_access(admin_client):
    assert admin_client.get("/admin/dashboard").status_code == 200
    resp = admin_client.post("/auth/logout", follow_redirects=False)
    assert resp.status_code == 303
    assert admin_client.get("/api/database").status_code == 401


# -------- Dashboard --------
def test_dashboard_counts_and_feed(admin_client):
    admin_client.post("/api/database?collection=businesses&document=b1", json={"name": "Olde Towne Coffee", "lat": 1.0, "lng": 2.0})
    admin_client.post(
        "/api/database?collection=scans",
        json={"business_id": "b1", "user_id": "player-7", "timestamp": "2026-10-18T10:00:00+00:00"},
    )
    admin_client.post("/api/database?collection=users", json={"name": "player-7"})

    resp = admin_client.get("/admin/dashboard")
    assert resp.status_code == 200
    assert "Olde Towne Coffee" in resp.text

    feed = admin_client.get("/admin/dashboard/feed").json()
    assert feed["stats"] == {"total_scans": 1, "players": 1, "businesses": 1, "organizations": 0}
    assert feed["scans"][0]["property"] == "Olde Towne Coffee"
    assert feed["scans"][0]["player"] == "player-7"


# -------- Organizations --------
def test_create_and_list_organization(admin_client):
    resp = admin_client.post(
        "/admin/organizations",
        data={"name": "Bellevue Community", "contactEmail": "Contact@Bellevue.com"},
        follow_redirects=False,
    )
    assert resp.status_code == 303
    assert resp.headers["location"] == "/admin/organizations"

    [org] = _docs("organizations")
    assert org.get("name") == "Bellevue Community"
    assert org.get("contactEmail") == "contact@bellevue.com"
    assert org.get("settings") == {"is_active": True}

    page = admin_client.get("/admin/organizations")
    assert "Bellevue Community" in page.text
    assert "created" in page.text  # flash


def test_invalid_email_is_rejected_before_any_write(admin_client):
    resp = admin_client.post("/admin/organizations", data={"name": "Org", "contactEmail": "not-an-email"})
    assert resp.status_code == 400
    assert "email" in resp.text.lower()
    assert _docs("organizations") == []


def test_missing_name_is_rejected(admin_client):
    resp = admin_client.post("/admin/organizations", data={"name": "  ", "contactEmail": "a@example.com"})
    assert resp.status_code == 400
    assert "Organization name is required" in resp.text
    assert _docs("organizations") == []


def test_update_and_delete_organization(admin_client):
    admin_client.post("/admin/organizations", data={"name": "Old", "contactEmail": "a@example.com"})
    [org] = _docs("organizations")

    assert admin_client.get(f"/admin/organizations/{org.id}/edit").status_code == 200
    resp = admin_client.post(
        f"/admin/organizations/{org.id}", data={"name": "New", "contactEmail": "b@example.com"}, follow_redirects=False
    )
    assert resp.status_code == 303
    [org] = _docs("organizations")
    assert org.get("name") == "New"
    assert org.get("settings") == {"is_active": True}

    resp = admin_client.post(f"/admin/organizations/{org.id}/delete", follow_redirects=False)
    assert resp.status_code == 303
    assert _docs("organizations") == []


def test_org_form_post_without_csrf_is_rejected(admin_client):
    resp = admin_client.post(
        "/admin/organizations",
        data={"name": "Org", "contactEmail": "a@example.com"},
        headers={"X-CSRF-Token": ""},
    )
    assert resp.status_code == 403
    assert _docs("organizations") == []


def test_edit_unknown_organization_is_404(admin_client):
    assert admin_client.get("/admin/organizations/nope/edit").status_code == 404


# -------- Businesses --------
def test_create_business_defaults_and_geocodes(admin_client, geocoder):
    from src.backend.services.geocoding import GeocodeResult

    geocoder.results = [GeocodeResult(lat=41.15, lng=-95.93)]
    resp = admin_client.post(
        "/admin/businesses",
        data={
            "name": "Olde Towne Coffee",
            "category": "Cafe",
            "points_per_visit": "15",
            "address": "123 Main St",
            "city": "Bellevue",
            "hours": "Mon: 9am-5pm\nTue: 9am-5pm",
        },
        follow_redirects=False,
    )
    assert resp.status_code == 303
    settle(admin_client)

    [biz] = _docs("businesses")
    assert biz.get("total_scans") == 0
    assert biz.get("points_per_visit") == 15
    assert biz.get("qr_code_secret").startswith(f"secret_{biz.id}_")
    assert biz.get("details.city") == "Bellevue"
    assert biz.get("details.hours") == {"Mon": "9am-5pm", "Tue": "9am-5pm"}
    assert geocoder.calls == ["123 Main St"]


def test_business_validation(admin_client):
    resp = admin_client.post("/admin/businesses", data={"name": "Cafe", "points_per_visit": "-1"})
    assert resp.status_code == 400
    resp = admin_client.post("/admin/businesses", data={"name": ""})
    assert resp.status_code == 400
    assert "Business name is required" in resp.text
    assert _docs("businesses") == []


def test_edit_business_keeps_hidden_details_and_resets_location(admin_client):
    admin_client.post(
        "/api/database?collection=businesses&document=b1",
        json={
            "name": "Cafe",
            "address": "1 Elm St",
            "lat": 41.0,
            "lng": -96.0,
            "details": {"city": "Omaha", "extra": "keep me"},
        },
    )
    resp = admin_client.post(
        "/admin/businesses/b1",
        data={"name": "Cafe", "address": "2 Oak St", "city": "Bellevue"},
        follow_redirects=False,
    )
    assert resp.status_code == 303
    settle(admin_client)

    [biz] = _docs("businesses")
    assert biz.get("details.city") == "Bellevue"
    assert biz.get("details.extra") == "keep me"
    assert "lat" in biz.data and biz.get("lat") is None
    assert biz.get("lng") is None


def test_business_pages_render(admin_client):
    admin_client.post("/admin/organizations", data={"name": "Bellevue Community", "contactEmail": "a@example.com"})
    page = admin_client.get("/admin/businesses/new")
    assert page.status_code == 200
    assert "Bellevue Community" in page.text
    assert admin_client.get("/admin/businesses").status_code == 200


# -------- Tiles --------
def test_save_tile(admin_client):
    resp = admin_client.post(
        "/admin/tiles",
        data={"tileName": "St. Charles Place", "owner": "Ann", "rentLevel": "3", "specialNotes": "Hotel soon"},
        follow_redirects=False,
    )
    assert resp.status_code == 303

    [tile] = _docs("tiles")
    assert tile.id == "st-charles-place"
    assert tile.data["rentLevel"] == 3
    assert admin_client.get("/admin/tiles").text.count("St. Charles Place") >= 2


def test_tile_validation(admin_client):
    assert admin_client.post("/admin/tiles", data={"tileName": "Nowhere"}).status_code == 400
    assert admin_client.post("/admin/tiles", data={"tileName": "Go", "rentLevel": "6"}).status_code == 400
    assert admin_client.post("/admin/tiles", data={"tileName": "Go", "specialNotes": "x" * 161}).status_code == 400
    assert _docs("tiles") == []


# -------- Store failures surface on the page --------
def _locked(*args, **kwargs):
    raise RuntimeError("database is locked")


async def _alocked(*args, **kwargs):
    _locked()


def test_business_update_failure_rerenders_form(admin_client, monkeypatch):
    from src.backend.routes import business_admin_pages

    admin_client.post("/api/database?collection=businesses&document=b1", json={"name": "Cafe", "lat": 1.0, "lng": 2.0})
    monkeypatch.setattr(business_admin_pages, "update_business", _alocked)

    resp = admin_client.post("/admin/businesses/b1", data={"name": "Cafe"}, headers={"Accept": "text/html"})
    assert resp.status_code == 500
    assert resp.headers["content-type"].startswith("text/html")
    assert "Failed to update business: database is locked" in resp.text


def test_business_delete_failure_flashes(admin_client, monkeypatch):
    from src.backend.routes import business_admin_pages

    admin_client.post("/api/database?collection=businesses&document=b1", json={"name": "Cafe", "lat": 1.0, "lng": 2.0})
    monkeypatch.setattr(business_admin_pages, "delete_business", _alocked)

    resp = admin_client.post("/admin/businesses/b1/delete", headers={"Accept": "text/html"}, follow_redirects=False)
    assert resp.status_code == 303
    assert resp.headers["location"] == "/admin/businesses"
    assert "Failed to delete business: database is locked" in admin_client.get("/admin/businesses").text
    assert [b.id for b in _docs("businesses")] == ["b1"]


def test_org_update_and_delete_failures_are_reported(admin_client, monkeypatch):
    from src.backend.routes import org_admin_pages

    admin_client.post("/admin/organizations", data={"name": "Org", "contactEmail": "a@example.com"})
    [org] = _docs("organizations")
    monkeypatch.setattr(org_admin_pages, "update_org", _alocked)
    monkeypatch.setattr(org_admin_pages, "delete_org", _alocked)

    resp = admin_client.post(f"/admin/organizations/{org.id}", data={"name": "New", "contactEmail": "b@example.com"})
    assert resp.status_code == 500
    assert "Failed to update organization: database is locked" in resp.text

    resp = admin_client.post(f"/admin/organizations/{org.id}/delete", follow_redirects=False)
    assert resp.status_code == 303
    assert "Failed to delete organization" in admin_client.get("/admin/organizations").text


def test_tile_save_failure_rerenders_page(admin_client, monkeypatch):
    from src.backend.routes import tile_admin_pages

    monkeypatch.setattr(tile_admin_pages, "save_tile", _alocked)
    resp = admin_client.post("/admin/tiles", data={"tileName": "Go"}, headers={"Accept": "text/html"})
    assert resp.status_code == 500
    assert "Failed to save tile: database is locked" in resp.text
    assert _docs("tiles") == []


def test_business_list_reload_picks_up_geocoded_location(admin_client, geocoder):
    from src.backend.services.geocoding import GeocodeResult

    geocoder.results = [GeocodeResult(lat=41.15, lng=-95.93)]
    page = admin_client.get("/admin/businesses")
    assert 'data-live-collection="businesses"' in page.text

    admin_client.post("/admin/businesses", data={"name": "Cafe", "address": "123 Main St"})
    settle(admin_client)

    # the live script re-fetches this same page and swaps in its tbody
    reloaded = admin_client.get("/admin/businesses", headers={"Accept": "text/html"})
    assert "41.15000, -95.93000" in reloaded.text
    script = admin_client.get("/static/js/admin.js").text
    assert "[data-live-collection] tbody" in script
