import pytest

from cesizen.backend.app import info_library
from cesizen.backend.app.stress_engine import RiskTier


@pytest.fixture
def admin_headers(make_user, monkeypatch):
    monkeypatch.setenv("CESIZEN_ADMIN_EMAILS", "admin@example.com")
    return make_user("admin@example.com")


def test_slugify_strips_accents_and_punctuation():
    assert info_library.slugify("Améliorer son sommeil : 7 habitudes !") == "ameliorer-son-sommeil-7-habitudes"
    assert info_library.slugify("???") == ""


def test_tiers_column_round_trip_keeps_enum_order():
    stored = info_library.format_tiers([RiskTier.HIGH, RiskTier.LOW])
    assert stored == "Low,High"
    assert info_library.parse_tiers(stored + ",Bogus") == [RiskTier.LOW, RiskTier.HIGH]


def test_seeded_articles_listed(client):
    resp = client.get("/api/info")
    assert resp.status_code == 200
    resources = resp.json()["resources"]
    assert [r["slug"] for r in resources] == [a["slug"] for a in info_library.ARTICLES]
    assert resources[2]["tiers"] == ["Moderate", "High"]


def test_get_by_id_or_slug(client):
    by_id = client.get("/api/info/2")
    assert by_id.status_code == 200
    slug = by_id.json()["slug"]
    by_slug = client.get(f"/api/info/{slug}")
    assert by_slug.json()["id"] == 2
    assert by_slug.json()["content"]
    assert client.get("/api/info/404").status_code == 404
    assert client.get("/api/info/nothing-here").status_code == 404


def test_writes_require_admin(client, auth_headers):
    payload = {"title": "Marcher en forêt", "content": "Vingt minutes suffisent."}
    assert client.post("/api/info", json=payload).status_code == 401
    assert client.post("/api/info", json=payload, headers=auth_headers).status_code == 403
    assert client.delete("/api/info/1", headers=auth_headers).status_code == 403


def test_admin_create_update_delete(client, admin_headers):
    created = client.post(
        "/api/info",
        json={"title": "Marcher en forêt", "content": "Vingt minutes suffisent.", "tiers": ["High"]},
        headers=admin_headers,
    )
    assert created.status_code == 201
    resource = created.json()
    assert resource["slug"] == "marcher-en-foret"
    assert resource["tiers"] == ["High"]

    updated = client.post(
        "/api/info",
        json={"id": resource["id"], "title": "Marcher en forêt", "content": "Trente minutes.", "is_published": False},
        headers=admin_headers,
    )
    assert updated.status_code == 200
    assert updated.json()["content"] == "Trente minutes."
    assert client.get(f"/api/info/{resource['id']}").status_code == 403
    assert "marcher-en-foret" not in [r["slug"] for r in client.get("/api/info").json()["resources"]]

    assert client.delete(f"/api/info/{resource['id']}", headers=admin_headers).json() == {"deleted": resource["id"]}
    assert client.delete(f"/api/info/{resource['id']}", headers=admin_headers).status_code == 404


def test_slug_conflicts_and_missing_update_target(client, admin_headers):
    existing = client.get("/api/info/1").json()
    clash = client.post(
        "/api/info",
        json={"title": existing["title"], "content": "Copie."},
        headers=admin_headers,
    )
    assert clash.status_code == 400
    missing = client.post("/api/info", json={"id": 999, "title": "Fantôme", "content": "x"}, headers=admin_headers)
    assert missing.status_code == 404
    blank = client.post("/api/info", json={"title": "!!!", "content": "x"}, headers=admin_headers)
    assert blank.status_code == 400


def test_recommendations_draw_from_stored_articles(client, admin_headers):
    for resource in client.get("/api/info").json()["resources"]:
        client.delete(f"/api/info/{resource['id']}", headers=admin_headers)
    created = client.post(
        "/api/info",
        json={"title": "Respirer avant une réunion", "content": "Trois cycles 4-4-4.", "tiers": ["High"]},
        headers=admin_headers,
    ).json()

    high = client.get("/api/recommendations", params={"stressLevel": "élevé", "limit": 20}).json()
    articles = [item for item in high["recommendations"] if item["type"] == "article"]
    assert [(a["id"], a["path"]) for a in articles] == [(str(created["id"]), f"/api/info/{created['id']}")]

    low = client.get("/api/recommendations", params={"stressLevel": "faible", "limit": 20}).json()
    assert all(item["type"] == "exercise" for item in low["recommendations"])
