"""Tests for the du-foundation FastAPI routes."""

import json

from conftest import CJS_ROUTES, CJS_SERVER_INDEX, LEGACY_MANIFEST, write_project

from du_foundation.settings import settings

# ---------------------------------------------------------------------------
# GET /api/health
# ---------------------------------------------------------------------------


class TestHealth:
    def test_health_ok(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert "timestamp" in data
        assert "version" in data


# ---------------------------------------------------------------------------
# GET /api/foundation/config
# ---------------------------------------------------------------------------


class TestGetConfig:
    """Tests for the /api/foundation/config endpoint."""

    def test_defaults_to_settings_capacity(self, client, monkeypatch):
        monkeypatch.setattr(settings, "capacity", "small")
        resp = client.get("/api/foundation/config")
        assert resp.status_code == 200
        data = resp.json()
        assert data["currentCapacity"] == "small"
        assert data["foundationConfig"]["capacity"] == "small"
        assert data["foundationConfig"]["userRange"] == {"min": 10_001, "max": 50_000}
        assert data["updatedAt"] is None

    def test_recommendations(self, client, monkeypatch):
        monkeypatch.setattr(settings, "capacity", "small")
        data = client.get("/api/foundation/config").json()
        recs = data["recommendations"]
        assert recs["current"]["capacity"] == "small"
        assert recs["previous"]["capacity"] == "micro"
        assert recs["next"]["capacity"] == "medium"
        assert recs["upgradePath"] == ["medium", "large", "enterprise"]

    def test_corrupt_file_falls_back(self, client, monkeypatch):
        monkeypatch.setattr(settings, "capacity", "nano")
        out = settings.project_root / "foundation"
        out.mkdir()
        (out / "foundation-config.json").write_text("{{{", encoding="utf-8")
        resp = client.get("/api/foundation/config")
        assert resp.status_code == 200
        assert resp.json()["currentCapacity"] == "nano"


# ---------------------------------------------------------------------------
# GET /api/foundation/capacities
# ---------------------------------------------------------------------------


class TestListCapacities:
    def test_all_tiers_in_order(self, client):
        resp = client.get("/api/foundation/capacities")
        assert resp.status_code == 200
        data = resp.json()
        assert [c["key"] for c in data] == [
            "nano",
            "micro",
            "small",
            "medium",
            "large",
            "enterprise",
        ]
        assert all(c["key"] == c["capacity"] for c in data)
        assert data[0]["resources"]["ramMB"] == 512
        assert data[-1]["userRange"]["max"] == 10_000_000


# ---------------------------------------------------------------------------
# POST /api/foundation/reconfigure
# ---------------------------------------------------------------------------


class TestReconfigure:
    """Tests for the /api/foundation/reconfigure endpoint."""

    def test_persists_tier(self, client):
        resp = client.post("/api/foundation/reconfigure", json={"foundationCapacity": "large"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["currentCapacity"] == "large"
        assert data["foundationConfig"]["resources"]["ramMB"] == 8192
        assert data["updatedAt"] is not None

        path = settings.project_root / "foundation" / "foundation-config.json"
        stored = json.loads(path.read_text(encoding="utf-8"))
        assert stored["foundationCapacity"] == "large"

        again = client.get("/api/foundation/config").json()
        assert again["currentCapacity"] == "large"
        assert again["updatedAt"] == data["updatedAt"]

    def test_case_insensitive(self, client):
        resp = client.post("/api/foundation/reconfigure", json={"foundationCapacity": "MEDIUM"})
        assert resp.status_code == 200
        assert resp.json()["currentCapacity"] == "medium"

    def test_unknown_tier_rejected(self, client):
        resp = client.post("/api/foundation/reconfigure", json={"foundationCapacity": "huge"})
        assert resp.status_code == 400
        assert "Unknown capacity tier" in resp.json()["error"]
        assert not (settings.project_root / "foundation" / "foundation-config.json").exists()

    def test_unknown_tier_keeps_previous(self, client):
        client.post("/api/foundation/reconfigure", json={"foundationCapacity": "micro"})
        client.post("/api/foundation/reconfigure", json={"foundationCapacity": "huge"})
        assert client.get("/api/foundation/config").json()["currentCapacity"] == "micro"

    def test_missing_field(self, client):
        resp = client.post("/api/foundation/reconfigure", json={})
        assert resp.status_code == 422


# ---------------------------------------------------------------------------
# GET /api/foundation/suggest
# ---------------------------------------------------------------------------


class TestSuggest:
    def test_suggests_tier(self, client):
        resp = client.get("/api/foundation/suggest", params={"maxUsers": 25_000})
        assert resp.status_code == 200
        data = resp.json()
        assert data["maxUsers"] == 25_000
        assert data["suggestedCapacity"] == "small"
        assert data["profile"]["capacity"] == "small"

    def test_zero_users(self, client):
        resp = client.get("/api/foundation/suggest", params={"maxUsers": 0})
        assert resp.json()["suggestedCapacity"] == "nano"

    def test_above_every_range(self, client):
        resp = client.get("/api/foundation/suggest", params={"maxUsers": 50_000_000})
        assert resp.json()["suggestedCapacity"] == "enterprise"

    def test_negative_rejected(self, client):
        resp = client.get("/api/foundation/suggest", params={"maxUsers": -5})
        assert resp.status_code == 422

    def test_missing_param(self, client):
        assert client.get("/api/foundation/suggest").status_code == 422


# ---------------------------------------------------------------------------
# GET /api/foundation/hardware-fit
# ---------------------------------------------------------------------------


class TestHardwareFit:
    def test_fits(self, client):
        resp = client.get(
            "/api/foundation/hardware-fit",
            params={"capacity": "small", "ramMB": 8192, "cpuCores": 4},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["capacity"] == "small"
        assert data["ramUsagePercent"] == 25.0
        assert data["cpuUsagePercent"] == 50.0
        assert data["compatible"] is True

    def test_unknown_tier(self, client):
        resp = client.get(
            "/api/foundation/hardware-fit",
            params={"capacity": "galactic", "ramMB": 8192, "cpuCores": 4},
        )
        assert resp.status_code == 400
        assert "error" in resp.json()

    def test_non_positive_hardware(self, client):
        resp = client.get(
            "/api/foundation/hardware-fit",
            params={"capacity": "small", "ramMB": 0, "cpuCores": 4},
        )
        assert resp.status_code == 422


# ---------------------------------------------------------------------------
# POST /api/foundation/scan, POST /api/foundation/migrate
# ---------------------------------------------------------------------------


class TestScan:
    """Tests for the /api/foundation/scan endpoint."""

    def test_empty_project_incompatible(self, client):
        resp = client.post("/api/foundation/scan")
        assert resp.status_code == 200
        data = resp.json()
        assert data["classification"] == "INCOMPATIBLE"
        assert data["maxScore"] == 100
        assert any(i["message"] == "package.json not found" for i in data["issues"])
        assert (settings.project_root / "foundation" / "scan-report.json").exists()

    def test_missing_root_is_500(self, client, monkeypatch, tmp_path):
        monkeypatch.setattr(settings, "project_root", tmp_path / "gone")
        resp = client.post("/api/foundation/scan")
        assert resp.status_code == 500
        assert "not found" in resp.json()["error"]


class TestMigrate:
    """Tests for the /api/foundation/migrate endpoint."""

    def test_migrates_legacy_project(self, client):
        write_project(
            settings.project_root,
            manifest=LEGACY_MANIFEST,
            dirs=("server", "client"),
            files={"server/index.js": CJS_SERVER_INDEX, "server/routes.js": CJS_ROUTES},
        )
        resp = client.post("/api/foundation/migrate")
        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is True
        assert data["initialClassification"] == "NEEDS_ADJUSTMENT"
        assert data["finalClassification"] == "COMPATIBLE"
        assert "Created directory shared/" in data["migrationsApplied"]
        assert data["backupPath"]

    def test_incompatible_project_refused(self, client):
        resp = client.post("/api/foundation/migrate")
        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is False
        assert data["migrationsApplied"] == []
        assert data["manualActions"]

    def test_missing_root_is_500(self, client, monkeypatch, tmp_path):
        monkeypatch.setattr(settings, "project_root", tmp_path / "gone")
        resp = client.post("/api/foundation/migrate")
        assert resp.status_code == 500
        assert "error" in resp.json()
