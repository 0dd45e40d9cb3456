"""Tests for the FastAPI web API."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import yaml
from fastapi.testclient import TestClient

from lanwake.auth.token import make_token
from lanwake.core.discovery import Candidate
from lanwake.core.errors import ScanFailedError, UnsupportedPlatformError

SECRET = "test-secret"


def _write_config(tmp_path: Path, **settings: object) -> Path:
    config = {"settings": {"secret": SECRET, "devices_file": "devices.json", **settings}}
    p = tmp_path / "config.yaml"
    p.write_text(yaml.dump(config))
    return p


@pytest.fixture()
def client(tmp_path: Path):
    from lanwake.api.routes import create_app

    app = create_app(config_path=str(_write_config(tmp_path)))
    c = TestClient(app)
    c.headers["Authorization"] = f"Bearer {make_token(SECRET)}"
    yield c


@pytest.fixture()
def anon(client: TestClient) -> TestClient:
    return TestClient(client.app)


class TestStatusEndpoint:
    def test_status_needs_no_token(self, anon: TestClient) -> None:
        resp = anon.get("/api/status")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "online"
        assert set(data) == {"status", "message", "version"}


class TestAuth:
    def test_missing_token_is_401(self, anon: TestClient) -> None:
        resp = anon.get("/api/devices")
        assert resp.status_code == 401
        assert resp.json() == {"error": "Authentication required"}

    def test_bad_token_is_401(self, anon: TestClient) -> None:
        resp = anon.get("/api/devices", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401
        assert resp.json() == {"error": "Authentication failed"}

    def test_token_signed_with_other_secret_is_401(self, anon: TestClient) -> None:
        token = make_token("other-secret")
        resp = anon.get("/api/devices", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401

    def test_non_bearer_scheme_is_401(self, anon: TestClient) -> None:
        resp = anon.get("/api/devices", headers={"Authorization": f"Basic {make_token(SECRET)}"})
        assert resp.status_code == 401

    @patch("lanwake.core.wol.send_magic_packet")
    def test_wake_requires_token(self, mock_send: MagicMock, anon: TestClient) -> None:
        resp = anon.post("/api/wake", json={"macAddress": "AA:BB:CC:DD:EE:FF"})
        assert resp.status_code == 401
        mock_send.assert_not_called()

    def test_cors_preflight_is_answered(self, anon: TestClient) -> None:
        resp = anon.options(
            "/api/devices",
            headers={
                "Origin": "http://localhost:3000",
                "Access-Control-Request-Method": "GET",
            },
        )
        assert resp.status_code == 200
        assert "access-control-allow-origin" in resp.headers


class TestSecretSeeding:
    def test_missing_secret_is_generated_and_saved(self, tmp_path: Path) -> None:
        from lanwake.api.routes import create_app

        path = tmp_path / "config.yaml"
        path.write_text(yaml.dump({"settings": {"devices_file": "devices.json"}}))

        app = create_app(config_path=str(path))

        saved = yaml.safe_load(path.read_text())
        assert saved["settings"]["secret"] == app.state.settings.secret
        assert len(app.state.settings.secret) == 64

    def test_empty_config_is_seeded_with_secret(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        from lanwake.api.routes import create_app

        monkeypatch.setenv("LANWAKE_DEVICES_FILE", str(tmp_path / "devices.json"))
        monkeypatch.delenv("LANWAKE_SECRET", raising=False)
        path = tmp_path / "config.yaml"
        path.write_text("")

        app = create_app(config_path=str(path))

        assert yaml.safe_load(path.read_text())["settings"]["secret"] == app.state.settings.secret

    def test_missing_config_uses_ephemeral_secret(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        from lanwake.api.routes import create_app

        monkeypatch.setenv("LANWAKE_DEVICES_FILE", str(tmp_path / "devices.json"))
        monkeypatch.delenv("LANWAKE_SECRET", raising=False)
        app = create_app(config_path=str(tmp_path / "absent.yaml"))

        assert app.state.settings.secret
        assert not (tmp_path / "absent.yaml").exists()

    def test_invalid_config_raises(self, tmp_path: Path) -> None:
        from lanwake.api.routes import create_app
        from lanwake.config.loader import ConfigError

        with pytest.raises(ConfigError):
            create_app(config_path=str(_write_config(tmp_path, port=0)))


class TestDevices:
    def test_list_empty(self, client: TestClient) -> None:
        resp = client.get("/api/devices")
        assert resp.status_code == 200
        assert resp.json() == []

    def test_create_device(self, client: TestClient) -> None:
        resp = client.post(
            "/api/devices",
            json={"macAddress": "AA:BB:CC:DD:EE:FF", "ipAddress": "192.168.1.9", "tags": ["pc"]},
        )
        assert resp.status_code == 201
        body = resp.json()
        assert body["name"] == "Device (AA:BB:CC:DD:EE:FF)"
        assert body["ipAddress"] == "192.168.1.9"
        assert body["tags"] == ["pc"]
        assert body["isOnline"] is False
        assert {"id", "createdAt", "broadcastAddress", "port"} <= set(body)

    def test_create_without_mac_is_400(self, client: TestClient) -> None:
        resp = client.post("/api/devices", json={"name": "nameless"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "MAC address is required"}

    def test_create_with_bad_mac_is_400(self, client: TestClient) -> None:
        resp = client.post("/api/devices", json={"macAddress": "12345"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Invalid MAC address format"}

    def test_malformed_json_is_400(self, client: TestClient) -> None:
        resp = client.post(
            "/api/devices", content=b"{not json", headers={"Content-Type": "application/json"}
        )
        assert resp.status_code == 400
        assert "error" in resp.json()

    def test_second_post_merges(self, client: TestClient) -> None:
        first = client.post("/api/devices", json={"macAddress": "AA:BB:CC:DD:EE:FF", "name": "X", "tags": ["a"]})
        second = client.post("/api/devices", json={"macAddress": "aa:bb:cc:dd:ee:ff", "name": "", "tags": ["b"]})

        assert second.status_code == 201
        assert second.json()["id"] == first.json()["id"]
        assert second.json()["name"] == "X"
        assert sorted(second.json()["tags"]) == ["a", "b"]
        assert len(client.get("/api/devices").json()) == 1

    def test_patch_device(self, client: TestClient) -> None:
        device_id = client.post("/api/devices", json={"macAddress": "AA:BB:CC:DD:EE:FF"}).json()["id"]

        resp = client.patch(
            f"/api/devices/{device_id}",
            json={"name": "Desktop", "isOnline": True, "broadcastAddress": "10.0.0.255", "port": 7},
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["name"] == "Desktop"
        assert body["isOnline"] is True
        assert (body["broadcastAddress"], body["port"]) == ("10.0.0.255", 7)

    def test_patch_null_is_online_is_400(self, client: TestClient) -> None:
        device_id = client.post("/api/devices", json={"macAddress": "AA:BB:CC:DD:EE:FF"}).json()["id"]

        resp = client.patch(f"/api/devices/{device_id}", json={"isOnline": None})

        assert resp.status_code == 400
        assert client.get("/api/devices").json()[0]["isOnline"] is False

    def test_patch_unknown_device_is_404(self, client: TestClient) -> None:
        resp = client.patch("/api/devices/nope", json={"name": "x"})
        assert resp.status_code == 404
        assert "error" in resp.json()

    def test_patch_cannot_change_id(self, client: TestClient) -> None:
        device_id = client.post("/api/devices", json={"macAddress": "AA:BB:CC:DD:EE:FF"}).json()["id"]

        resp = client.patch(f"/api/devices/{device_id}", json={"id": "hijacked"})

        assert resp.status_code == 400
        assert client.get("/api/devices").json()[0]["id"] == device_id

    def test_delete_device(self, client: TestClient) -> None:
        device_id = client.post("/api/devices", json={"macAddress": "AA:BB:CC:DD:EE:FF"}).json()["id"]

        resp = client.delete(f"/api/devices/{device_id}")

        assert resp.status_code == 200
        assert "message" in resp.json()
        assert client.get("/api/devices").json() == []

    def test_delete_unknown_device_is_404(self, client: TestClient) -> None:
        resp = client.delete("/api/devices/nope")
        assert resp.status_code == 404

    def test_devices_persist_across_app_instances(self, client: TestClient, tmp_path: Path) -> None:
        from lanwake.api.routes import create_app

        client.post("/api/devices", json={"macAddress": "AA:BB:CC:DD:EE:FF", "name": "NAS"})

        other = TestClient(create_app(config_path=str(tmp_path / "config.yaml")))
        other.headers["Authorization"] = f"Bearer {make_token(SECRET)}"
        assert [d["name"] for d in other.get("/api/devices").json()] == ["NAS"]


class TestWakeEndpoint:
    @patch("lanwake.core.wol.send_magic_packet")
    def test_wake_with_defaults(self, mock_send: MagicMock, client: TestClient) -> None:
        resp = client.post("/api/wake", json={"macAddress": "AA:BB:CC:DD:EE:FF"})

        assert resp.status_code == 200
        assert resp.json() == {
            "message": "Wake packet sent successfully",
            "macAddress": "AA:BB:CC:DD:EE:FF",
            "broadcastAddress": "255.255.255.255",
            "port": 9,
        }
        mock_send.assert_called_once()

    @patch("lanwake.core.wol.send_magic_packet")
    def test_wake_with_overrides(self, mock_send: MagicMock, client: TestClient) -> None:
        resp = client.post(
            "/api/wake",
            json={"macAddress": "AA:BB:CC:DD:EE:FF", "broadcastAddress": "192.168.1.255", "port": 7},
        )
        assert resp.status_code == 200
        assert mock_send.call_args.kwargs == {"ip_address": "192.168.1.255", "port": 7}

    @patch("lanwake.core.wol.send_magic_packet")
    def test_configured_defaults_apply(self, mock_send: MagicMock, tmp_path: Path) -> None:
        from lanwake.api.routes import create_app

        path = _write_config(tmp_path, broadcast_address="10.1.1.255", wol_port=7)
        c = TestClient(create_app(config_path=str(path)))
        c.headers["Authorization"] = f"Bearer {make_token(SECRET)}"

        resp = c.post("/api/wake", json={"macAddress": "AA:BB:CC:DD:EE:FF"})

        assert (resp.json()["broadcastAddress"], resp.json()["port"]) == ("10.1.1.255", 7)

    @patch("lanwake.core.wol.send_magic_packet")
    def test_missing_mac_is_400(self, mock_send: MagicMock, client: TestClient) -> None:
        resp = client.post("/api/wake", json={})
        assert resp.status_code == 400
        assert resp.json() == {"error": "MAC address is required"}
        mock_send.assert_not_called()

    @patch("lanwake.core.wol.send_magic_packet")
    def test_bad_mac_is_400(self, mock_send: MagicMock, client: TestClient) -> None:
        resp = client.post("/api/wake", json={"macAddress": "AA:BB:CC"})
        assert resp.status_code == 400
        mock_send.assert_not_called()

    @patch("lanwake.core.wol.send_magic_packet")
    def test_send_failure_is_500(self, mock_send: MagicMock, client: TestClient) -> None:
        mock_send.side_effect = OSError("Network is unreachable")

        resp = client.post("/api/wake", json={"macAddress": "AA:BB:CC:DD:EE:FF"})

        assert resp.status_code == 500
        assert resp.json() == {"error": "Failed to send WOL packet"}


class TestDeviceWakeEndpoint:
    @patch("lanwake.core.wol.send_magic_packet")
    def test_wakes_stored_device(self, mock_send: MagicMock, client: TestClient) -> None:
        device_id = client.post("/api/devices", json={"macAddress": "AA:BB:CC:DD:EE:FF"}).json()["id"]
        client.patch(f"/api/devices/{device_id}", json={"broadcastAddress": "10.0.0.255"})

        resp = client.post(f"/api/devices/{device_id}/wake")

        assert resp.status_code == 200
        assert resp.json()["macAddress"] == "AA:BB:CC:DD:EE:FF"
        assert resp.json()["broadcastAddress"] == "10.0.0.255"
        assert mock_send.call_args.kwargs == {"ip_address": "10.0.0.255", "port": 9}

    @patch("lanwake.core.wol.send_magic_packet")
    def test_body_mac_wins_over_registry(self, mock_send: MagicMock, client: TestClient) -> None:
        resp = client.post(
            "/api/devices/unregistered/wake", json={"macAddress": "11:22:33:44:55:66", "port": 7}
        )

        assert resp.status_code == 200
        assert resp.json()["macAddress"] == "11:22:33:44:55:66"
        assert resp.json()["port"] == 7

    @patch("lanwake.core.wol.send_magic_packet")
    def test_body_port_overrides_stored_device(
        self, mock_send: MagicMock, client: TestClient
    ) -> None:
        device_id = client.post("/api/devices", json={"macAddress": "AA:BB:CC:DD:EE:FF"}).json()["id"]

        resp = client.post(f"/api/devices/{device_id}/wake", json={"port": 7})

        assert resp.json()["port"] == 7

    @patch("lanwake.core.wol.send_magic_packet")
    def test_unknown_device_is_404(self, mock_send: MagicMock, client: TestClient) -> None:
        resp = client.post("/api/devices/nope/wake")
        assert resp.status_code == 404
        mock_send.assert_not_called()


class TestNetworkScanEndpoint:
    @patch("lanwake.core.scan.scan")
    def test_returns_candidates(self, mock_scan: MagicMock, client: TestClient) -> None:
        mock_scan.return_value = [Candidate(ip_address="192.168.1.5", mac_address="aa:bb:cc:dd:ee:ff")]

        resp = client.get("/api/network/scan")

        assert resp.status_code == 200
        assert resp.json() == [
            {
                "ipAddress": "192.168.1.5",
                "macAddress": "aa:bb:cc:dd:ee:ff",
                "name": "Device (192.168.1.5)",
                "isOnline": True,
            }
        ]

    @patch("lanwake.core.scan.scan")
    def test_scan_does_not_touch_registry(self, mock_scan: MagicMock, client: TestClient) -> None:
        mock_scan.return_value = [Candidate(ip_address="192.168.1.5", mac_address="aa:bb:cc:dd:ee:ff")]

        client.get("/api/network/scan")

        assert client.get("/api/devices").json() == []

    @patch("lanwake.core.scan.scan")
    def test_unsupported_platform_is_400(self, mock_scan: MagicMock, client: TestClient) -> None:
        mock_scan.side_effect = UnsupportedPlatformError("Network scanning is not supported")
        resp = client.get("/api/network/scan")
        assert resp.status_code == 400

    @patch("lanwake.core.scan.scan")
    def test_scan_failure_is_500(self, mock_scan: MagicMock, client: TestClient) -> None:
        mock_scan.side_effect = ScanFailedError("Network scan failed: arp not found")
        resp = client.get("/api/network/scan")
        assert resp.status_code == 500
        assert resp.json() == {"error": "Network scan failed: arp not found"}

    @patch("lanwake.core.scan.subprocess.run")
    def test_uses_configured_timeout(self, mock_run: MagicMock, tmp_path: Path) -> None:
        from lanwake.api.routes import create_app

        mock_run.return_value = MagicMock(returncode=0, stdout="", stderr="")
        c = TestClient(create_app(config_path=str(_write_config(tmp_path, scan_timeout=4))))
        c.headers["Authorization"] = f"Bearer {make_token(SECRET)}"

        with patch("lanwake.core.scan.sys.platform", "linux"):
            c.get("/api/network/scan")

        assert mock_run.call_args.kwargs["timeout"] == 4


class TestEndToEnd:
    @patch("lanwake.core.wol.send_magic_packet")
    def test_add_then_wake(self, mock_send: MagicMock, client: TestClient) -> None:
        created = client.post("/api/devices", json={"macAddress": "AA:BB:CC:DD:EE:FF"})
        assert created.status_code == 201
        assert created.json()["name"] == "Device (AA:BB:CC:DD:EE:FF)"
        assert created.json()["isOnline"] is False

        woke = client.post("/api/wake", json={"macAddress": "AA:BB:CC:DD:EE:FF"})

        assert woke.status_code == 200
        body = woke.json()
        assert body["macAddress"] == "AA:BB:CC:DD:EE:FF"
        assert body["broadcastAddress"] == "255.255.255.255"
        assert body["port"] == 9
