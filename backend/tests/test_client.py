"""
API client tests.

Uses httpx.MockTransport for transport-level behavior and
httpx.WSGITransport to drive the real application end to end.
"""

import json
import threading

import httpx
import pytest

from stockpile.client import (
    ApiError,
    ConnectionMonitor,
    ConnectionStatus,
    OfflineError,
    StockpileClient,
)


def _mock_client(handler, **kwargs):
    return StockpileClient("http://stockpile.test", transport=httpx.MockTransport(handler), **kwargs)


def _ok(request):
    return httpx.Response(200, json={"ok": True})


# =============================================================================
# ERRORS
# =============================================================================

class TestApiError:

    def test_prefers_message(self):
        client = _mock_client(lambda r: httpx.Response(403, json={"error": "Permission denied", "message": "Managers only"}))

        with pytest.raises(ApiError) as exc:
            client.get("/admin")

        assert str(exc.value) == "API Error: 403 Managers only"
        assert exc.value.status_code == 403

    def test_falls_back_to_error(self):
        client = _mock_client(lambda r: httpx.Response(409, json={"error": "sale s1 was modified"}))

        with pytest.raises(ApiError, match="API Error: 409 sale s1 was modified"):
            client.put("/sales/s1", json={})

    def test_plain_text_body(self):
        client = _mock_client(lambda r: httpx.Response(500, text="x" * 150))

        with pytest.raises(ApiError) as exc:
            client.get("/inventory")

        assert str(exc.value) == "API Error: 500 Internal Server Error - " + "x" * 100
        assert exc.value.body == "x" * 150


# =============================================================================
# REQUESTS
# =============================================================================

class TestRequests:

    def test_bearer_token(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("Authorization")
            return _ok(request)

        _mock_client(handler, token="abc").get("/sales")
        assert seen["auth"] == "Bearer abc"

    def test_public_key_when_signed_out(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("Authorization")
            return _ok(request)

        _mock_client(handler, public_key="pub").seed()
        assert seen["auth"] == "Bearer pub"

    def test_version_sent_as_if_match(self):
        seen = {}

        def handler(request):
            seen["if_match"] = request.headers.get("If-Match")
            seen["body"] = json.loads(request.content)
            return _ok(request)

        _mock_client(handler, token="t").update_sale("s1", {"customerId": "c"}, version=4)

        assert seen["if_match"] == "4"
        assert seen["body"] == {"customerId": "c"}

    def test_ids_are_path_encoded(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.raw_path
            return _ok(request)

        _mock_client(handler, token="t").delete_product("a/b")
        assert seen["path"] == b"/inventory/product/a%2Fb"

    def test_seed_force_param(self):
        seen = {}

        def handler(request):
            seen["force"] = request.url.params.get("force")
            return _ok(request)

        _mock_client(handler, public_key="pub").seed(force=True)
        assert seen["force"] == "true"

    def test_activity_filters_drop_empty_values(self):
        seen = {}

        def handler(request):
            seen["params"] = dict(request.url.params)
            return _ok(request)

        _mock_client(handler, token="t").get_activity(type="sale", range=None, q="", page=2)
        assert seen["params"] == {"type": "sale", "page": "2"}


# =============================================================================
# CONNECTIVITY
# =============================================================================

class TestOffline:

    def test_writes_fail_fast_while_offline(self):
        calls = []

        def handler(request):
            calls.append(request.method)
            return _ok(request)

        client = _mock_client(handler, token="t", status=ConnectionStatus(online=False))

        with pytest.raises(OfflineError):
            client.create_product({"name": "X"})
        with pytest.raises(OfflineError):
            client.delete_sale("s1")

        assert calls == []

    def test_reads_still_attempted(self):
        calls = []

        def handler(request):
            calls.append(request.method)
            return _ok(request)

        client = _mock_client(handler, token="t", status=ConnectionStatus(online=False))
        client.get_inventory()

        assert calls == ["GET"]


class TestPing:

    def test_signed_out_is_online(self):
        def handler(request):
            raise AssertionError("no request expected")

        assert _mock_client(handler).ping() is True

    def test_reachable(self):
        assert _mock_client(_ok, token="t").ping() is True

    def test_error_status(self):
        assert _mock_client(lambda r: httpx.Response(503), token="t").ping() is False

    def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("down", request=request)

        assert _mock_client(handler, token="t").ping() is False


class TestConnectionStatus:

    def test_listeners_fire_on_change_only(self):
        status = ConnectionStatus()
        changes = []
        unsubscribe = status.subscribe(changes.append)

        status.set_online(True)
        status.set_online(False)
        status.set_online(False)
        unsubscribe()
        status.set_online(True)

        assert changes == [False]
        assert status.online is True


class TestConnectionMonitor:

    def test_check_once(self):
        reachable = {"value": False}

        def handler(request):
            if not reachable["value"]:
                raise httpx.ConnectError("down", request=request)
            return _ok(request)

        client = _mock_client(handler, token="t")
        monitor = ConnectionMonitor(client)

        assert monitor.check_once() is False
        assert client.status.offline

        reachable["value"] = True
        assert monitor.check_once() is True
        assert client.status.online

    def test_background_loop(self):
        def handler(request):
            raise httpx.ConnectError("down", request=request)

        client = _mock_client(handler, token="t")
        went_offline = threading.Event()
        client.status.subscribe(lambda online: None if online else went_offline.set())
        monitor = ConnectionMonitor(client, interval=0.01)

        monitor.start()
        try:
            assert went_offline.wait(2)
            assert monitor.running
        finally:
            monitor.stop(timeout=2)

        assert not monitor.running


# =============================================================================
# END TO END
# =============================================================================

class TestAgainstApp:

    def test_seed_login_and_read(self, app):
        transport = httpx.WSGITransport(app=app)

        with StockpileClient("http://stockpile.test", public_key=app.config["PUBLIC_API_KEY"], transport=transport) as client:
            assert client.seed()["count"] == 26
            assert client.health()["status"] == "ok"

            client.login("manager@example.com", "12345678")
            assert client.current_user["role"] == "manager"

            inventory = client.get_inventory()
            assert inventory["stock"]["p1"] == 35

            product = client.update_product("p4", {"name": "Notebook", "categoryId": "c3"}, version=1)
            assert product["version"] == 2

            with pytest.raises(ApiError) as exc:
                client.update_product("p4", {"name": "Stale", "categoryId": "c3"}, version=1)
            assert exc.value.status_code == 409

            client.logout()
            assert client.token is None
