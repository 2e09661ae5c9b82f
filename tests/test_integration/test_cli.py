"""Integration tests for the ``storefront`` CLI.

Every command runs through the real Typer app, the real context and query
cache, and the fake API served over :class:`httpx.MockTransport` (passed
in through ``ctx.obj``).  Config and session directories are isolated
per test.
"""

from __future__ import annotations

from pathlib import Path

import httpx
import pytest
from typer.testing import CliRunner

from storefront_client import __version__
from storefront_client.app import app
from storefront_client.auth.credential_store import CredentialStore
from storefront_client.config import load_settings
from storefront_client.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_SERVER_ERROR,
)

BASE = "http://api.test/api/v1"

PRODUCT = {"id": "p1", "name": "Desk Lamp", "price": 24.5, "category": "lighting", "stock": 4}


@pytest.fixture
def invoke(isolated_config: Path, fake_api, cli_runner: CliRunner):
    """Run the CLI against the fake API."""

    def _invoke(*args: str, input: str | None = None):
        return cli_runner.invoke(
            app,
            ["--base-url", BASE, *args],
            obj={"http_transport": fake_api.transport()},
            input=input,
        )

    return _invoke


@pytest.fixture
def signed_in(isolated_config: Path) -> str:
    store = CredentialStore()
    try:
        store.set("tok_cli")
    finally:
        store.close()
    return "tok_cli"


def _stored_token() -> str | None:
    store = CredentialStore()
    try:
        return store.get()
    finally:
        store.close()


class TestRoot:
    def test_version(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_no_args_shows_help(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(app, [])
        assert "products" in result.output
        assert "favorites" in result.output


class TestSession:
    def test_login_stores_token(self, invoke, fake_api) -> None:
        fake_api.add(
            "POST",
            "/auth/login",
            json={"data": {"token": "tok_new", "user": {"id": "u1", "role": "admin"}}},
        )
        result = invoke("login", "--email", "ada@example.com", "--password", "pw")

        assert result.exit_code == 0, result.output
        assert "Signed in as ada@example.com (admin)" in result.output
        assert _stored_token() == "tok_new"

    def test_login_prompts_for_password(self, invoke, fake_api) -> None:
        fake_api.add(
            "POST", "/auth/login", json={"data": {"token": "t", "user": {"id": "u1"}}}
        )
        result = invoke("login", "--email", "ada@example.com", input="pw\n")
        assert result.exit_code == 0, result.output

    def test_bad_credentials(self, invoke, fake_api) -> None:
        fake_api.add(
            "POST", "/auth/login", status=401, json={"error": {"message": "Invalid credentials"}}
        )
        result = invoke("login", "--email", "ada@example.com", "--password", "nope")
        assert result.exit_code == EXIT_AUTH_FAILURE
        assert "Invalid credentials" in result.output
        assert _stored_token() is None

    def test_register_does_not_sign_in(self, invoke, fake_api) -> None:
        fake_api.add(
            "POST", "/auth/register", status=201, json={"data": {"id": "u2", "email": "b@c.d"}}
        )
        result = invoke("register", "--email", "b@c.d", "--password", "pw", input="pw\n")
        assert result.exit_code == 0, result.output
        assert "Registered b@c.d" in result.output
        assert _stored_token() is None

    def test_logout(self, invoke, signed_in) -> None:
        result = invoke("logout")
        assert result.exit_code == 0
        assert "Signed out." in result.output
        assert _stored_token() is None

    def test_logout_when_signed_out(self, invoke) -> None:
        result = invoke("logout")
        assert result.exit_code == 0
        assert "Not signed in." in result.output

    def test_status(self, invoke, signed_in) -> None:
        result = invoke("--json", "status")
        assert result.exit_code == 0
        assert '"authenticated": true' in result.output
        assert BASE in result.output


class TestCatalog:
    def test_products_list_sorted(self, invoke, fake_api) -> None:
        fake_api.add("GET", "/products", json={"data": [PRODUCT]})
        result = invoke("--plain", "products", "list", "--sort", "price", "--desc")

        assert result.exit_code == 0, result.output
        assert "p1\tDesk Lamp\t24.50\tlighting\t4" in result.output
        params = fake_api.requests[0].url.params
        assert (params["sort[field]"], params["sort[dir]"]) == ("price", "desc")

    def test_product_not_found(self, invoke) -> None:
        result = invoke("products", "show", "missing")
        assert result.exit_code == EXIT_NOT_FOUND
        assert "Not found" in result.output

    def test_favorites_list_sends_bearer(self, invoke, fake_api, signed_in) -> None:
        fake_api.add(
            "GET", "/favorites", json={"data": [{"product": PRODUCT, "createdAt": 1}]}
        )
        result = invoke("--json", "favorites", "list")

        assert result.exit_code == 0, result.output
        assert '"name": "Desk Lamp"' in result.output
        assert fake_api.requests[0].headers["authorization"] == f"Bearer {signed_in}"

    def test_expired_session_clears_token(self, invoke, fake_api, signed_in) -> None:
        fake_api.add("GET", "/favorites", status=401, json={"error": {"message": "Token expired"}})
        result = invoke("favorites", "list")

        assert result.exit_code == EXIT_AUTH_FAILURE
        assert "Token expired (HTTP 401)" in result.output
        assert "storefront login" in result.output
        assert _stored_token() is None

    def test_favorites_toggle(self, invoke, fake_api, signed_in) -> None:
        fake_api.add("GET", "/favorites/p1", json={"data": {"favorite": False}})
        fake_api.add("POST", "/favorites/p1", status=201, json={"data": {}})
        result = invoke("favorites", "toggle", "p1")
        assert result.exit_code == 0, result.output
        assert "p1 is now a favourite." in result.output

    def test_validation_error_exit_code(self, invoke, fake_api, signed_in) -> None:
        fake_api.add(
            "POST", "/favorites/p1", status=409, json={"error": {"message": "Already a favourite"}}
        )
        result = invoke("favorites", "add", "p1")
        assert result.exit_code == EXIT_INVALID_USAGE
        assert "Already a favourite" in result.output


class TestAdmin:
    def _entries(self, start: int, count: int) -> list[dict]:
        return [
            {
                "id": f"a{i}",
                "action": "admin.user.promote",
                "summary": f"entry {i}",
                "createdAt": 1700000000000 - i,
                "actorEmail": "root@example.com",
            }
            for i in range(start, start + count)
        ]

    def test_audit_logs_follows_cursor(self, invoke, fake_api, signed_in) -> None:
        def handler(request):
            if "after" in request.url.params:
                return httpx.Response(200, json={"data": self._entries(2, 1), "meta": {}})
            return httpx.Response(
                200, json={"data": self._entries(0, 2), "meta": {"nextCursor": 1699999999999}}
            )

        fake_api.add("GET", "/admin/audit-logs", handler=handler)
        result = invoke("--plain", "admin", "audit-logs", "--limit", "2", "--pages", "5")

        assert result.exit_code == 0, result.output
        assert "entry 0" in result.output
        assert "entry 2" in result.output
        assert len(fake_api.calls("GET", "/admin/audit-logs")) == 2
        assert "More entries available" not in result.output

    def test_audit_logs_suggests_more_pages(self, invoke, fake_api, signed_in) -> None:
        fake_api.add(
            "GET",
            "/admin/audit-logs",
            json={"data": self._entries(0, 2), "meta": {"nextCursor": 5}},
        )
        result = invoke("--plain", "admin", "audit-logs", "--limit", "2")
        assert result.exit_code == 0, result.output
        assert "More entries available: --pages 2" in result.output

    def test_delete_user_requires_confirmation(self, invoke, fake_api, signed_in) -> None:
        fake_api.add("DELETE", "/admin/users/u1", status=204)
        result = invoke("admin", "delete-user", "u1", input="n\n")
        assert result.exit_code != 0
        assert fake_api.calls("DELETE", "/admin/users/u1") == []

        result = invoke("admin", "delete-user", "u1", "--yes")
        assert result.exit_code == 0, result.output
        assert len(fake_api.calls("DELETE", "/admin/users/u1")) == 1

    def test_metrics_table(self, invoke, fake_api, signed_in) -> None:
        text = (
            "# TYPE http_requests_total counter\n"
            'http_requests_total{method="GET"} 7\n'
            'http_requests_total{method="POST"} 3\n'
            "# TYPE orders_in_progress gauge\n"
            "orders_in_progress 2\n"
        )
        fake_api.add(
            "GET",
            "/metrics",
            handler=lambda request: httpx.Response(
                200, text=text, headers={"Content-Type": "text/plain"}
            ),
        )
        result = invoke("--plain", "admin", "metrics", "--name", "http_requests_total")
        assert result.exit_code == 0, result.output
        assert "http_requests_total" in result.output
        assert "10" in result.output
        assert "orders_in_progress" not in result.output


ORDER = {
    "id": "o1",
    "userId": "u1",
    "userEmail": "u1@example.com",
    "items": [],
    "totalAmount": 58.9,
    "status": "pending",
    "paymentMethod": "credit_card",
    "shippingAddress": {
        "fullName": "U One",
        "street": "1 Main St",
        "city": "Springfield",
        "state": "IL",
        "postalCode": "62701",
        "country": "US",
    },
    "createdAt": "2024-01-01T00:00:00Z",
    "updatedAt": "2024-01-01T00:00:00Z",
}


class TestOrders:
    def test_list_mine(self, invoke, fake_api, signed_in) -> None:
        fake_api.add(
            "GET",
            "/orders/my",
            json={"success": True, "data": [ORDER], "meta": {"count": 1, "hasMore": True}},
        )
        result = invoke("--plain", "orders", "list", "--limit", "1")
        assert result.exit_code == 0, result.output
        assert "o1" in result.output
        assert "58.90" in result.output
        assert "More orders available: --pages 2" in result.output

    def test_list_all_with_status(self, invoke, fake_api, signed_in) -> None:
        fake_api.add(
            "GET",
            "/orders",
            json={"success": True, "data": [], "meta": {"count": 0, "hasMore": False}},
        )
        result = invoke("--plain", "orders", "list", "--all", "--status", "shipped")
        assert result.exit_code == 0, result.output
        assert "No orders." in result.output
        assert fake_api.calls("GET", "/orders")[0].url.params["status"] == "shipped"

    def test_status_without_all_is_usage_error(self, invoke, fake_api, signed_in) -> None:
        result = invoke("orders", "list", "--status", "shipped")
        assert result.exit_code == EXIT_INVALID_USAGE
        assert fake_api.requests == []

    def test_cancel(self, invoke, fake_api, signed_in) -> None:
        fake_api.add(
            "POST",
            "/orders/o1/cancel",
            json={"success": True, "data": {**ORDER, "status": "cancelled"}},
        )
        result = invoke("orders", "cancel", "o1", "--yes")
        assert result.exit_code == 0, result.output
        assert "cancelled" in result.output


class TestHealth:
    HEALTH = {
        "api": {"ok": True, "timestamp": "2024-01-01T00:00:00Z", "uptimeSec": 5},
        "database": {"ok": True, "store": "memory", "latencyMs": 2},
    }

    def test_healthy(self, invoke, fake_api) -> None:
        fake_api.add("GET", "/health", json=self.HEALTH)
        result = invoke("--json", "health")
        assert result.exit_code == 0, result.output
        assert '"store": "memory"' in result.output

    def test_database_down(self, invoke, fake_api) -> None:
        down = {
            "api": self.HEALTH["api"],
            "database": {"ok": False, "store": "firestore", "error": "deadline exceeded"},
        }
        fake_api.add("GET", "/health", status=503, json=down)
        result = invoke("health")
        assert result.exit_code == EXIT_SERVER_ERROR
        assert "Database (firestore): deadline exceeded" in result.output

    def test_unreachable(self, isolated_config, cli_runner: CliRunner) -> None:
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        result = cli_runner.invoke(
            app,
            ["--base-url", BASE, "health"],
            obj={"http_transport": httpx.MockTransport(refuse)},
        )
        assert result.exit_code == EXIT_CONNECTION_ERROR
        assert "storefront config show" in result.output


class TestConfig:
    def test_set_url(self, isolated_config, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(app, ["config", "set-url", "https://shop.example.com/api/v1/"])
        assert result.exit_code == 0, result.output
        assert load_settings().base_url == "https://shop.example.com/api/v1"

    def test_set_url_rejects_invalid(self, isolated_config, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(app, ["config", "set-url", "shop.example.com"])
        assert result.exit_code == 2
        assert "Invalid API base URL" in result.output

    def test_show_reflects_base_url_flag(self, isolated_config, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(app, ["--json", "--base-url", BASE, "config", "show"])
        assert result.exit_code == 0, result.output
        assert f'"base_url": "{BASE}"' in result.output

    def test_reset(self, isolated_config, cli_runner: CliRunner) -> None:
        cli_runner.invoke(app, ["config", "set-url", "https://shop.example.com/api/v1"])
        result = cli_runner.invoke(app, ["config", "reset", "--yes"])
        assert result.exit_code == 0
        assert load_settings().base_url == "http://localhost:4000/api/v1"
