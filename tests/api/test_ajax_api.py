"""API tests for the AJAX dispatch endpoint.

Covers the response envelope, handler errors and dispatch failures, form
posts, and the session cookie written back by the session middleware.
"""

import json
from unittest.mock import AsyncMock, MagicMock

from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from vufind_ajax.constants import DEFAULT_SESSION_COOKIE_NAME as SESSION_COOKIE
from vufind_ajax.middleware import ErrorHandlerMiddleware, RateLimitMiddleware
from vufind_ajax.repository.session_store_repository import CatalogSession

URL = "/AJAX/JSON"


def _log_in(client: TestClient, mock_redis: MagicMock, user_id: int = 7) -> None:
    """Point the client at a stored session belonging to user_id."""
    mock_redis.get.return_value = CatalogSession(
        session_id="01HEXISTING", user_id=user_id
    ).to_payload()
    client.cookies.set(SESSION_COOKIE, "01HEXISTING")


# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------


class TestEnvelope:
    """Tests for the {"data", "status"} answer of successful handlers."""

    def test_ok_envelope(self, client: TestClient) -> None:
        """keepAlive answers data True with status OK."""
        response = client.get(URL, params={"method": "keepAlive"})

        assert response.status_code == 200
        assert response.json() == {"data": True, "status": "OK"}

    def test_canonical_method_name(self, client: TestClient) -> None:
        """The canonical handler name dispatches like its alias."""
        response = client.get(URL, params={"method": "KeepAlive"})

        assert response.json()["status"] == "OK"

    def test_need_auth_envelope(self, client: TestClient) -> None:
        """Anonymous comment posts answer 401 with status NEED_AUTH."""
        response = client.post(
            URL + "?method=commentRecord", data={"id": "rec1", "comment": "Nice"}
        )

        assert response.status_code == 401
        assert response.json() == {
            "data": "You must be logged in first",
            "status": "NEED_AUTH",
        }

    def test_handler_error_envelope(self, client: TestClient) -> None:
        """A handler's 4xx answer keeps its message and reports ERROR."""
        response = client.get(URL, params={"method": "closeBroadcast"})

        assert response.status_code == 400
        assert response.json() == {
            "data": "Missing parameter 'id'",
            "status": "ERROR",
        }


# ---------------------------------------------------------------------------
# Dispatch failures
# ---------------------------------------------------------------------------


class TestDispatchErrors:
    """Tests for failures raised before or while building a handler."""

    def test_unknown_method(self, client: TestClient) -> None:
        response = client.get(URL, params={"method": "getFoo"})

        body = response.json()
        assert response.status_code == 400
        assert body["data"] == "Invalid Method: getFoo"
        assert body["status"] == "ERROR"
        assert body["error"]["code"] == "UNKNOWN_METHOD"
        assert body["error"]["details"] == {"method": "getFoo"}
        assert response.headers["X-Request-ID"]

    def test_missing_method(self, client: TestClient) -> None:
        response = client.get(URL)

        body = response.json()
        assert response.status_code == 400
        assert body["error"]["code"] == "MISSING_PARAMETER"
        assert body["error"]["field"] == "method"

    def test_request_id_is_echoed(self, client: TestClient) -> None:
        response = client.get(
            URL, params={"method": "getFoo"}, headers={"X-Request-ID": "req-1"}
        )

        assert response.headers["X-Request-ID"] == "req-1"
        assert response.json()["request_id"] == "req-1"

    def test_unconfigured_service(self, app: FastAPI, client: TestClient) -> None:
        """Handlers needing a missing service fail with a configuration error."""
        app.state.ils = None

        response = client.get(URL, params={"method": "getItemStatuses"})

        body = response.json()
        assert response.status_code == 500
        assert body["error"]["code"] == "CONFIGURATION_ERROR"
        assert body["data"] == "Service 'ils' is not configured"
        assert "stack_trace" not in body


# ---------------------------------------------------------------------------
# Form posts and sessions
# ---------------------------------------------------------------------------


class TestSessions:
    """Tests for session loading, saving and the session cookie."""

    def test_new_session_sets_cookie(
        self, client: TestClient, mock_redis: MagicMock
    ) -> None:
        response = client.get(URL, params={"method": "keepAlive"})

        assert response.cookies.get(SESSION_COOKIE)
        mock_redis.setex.assert_awaited_once()
        key, ttl, _ = mock_redis.setex.await_args.args
        assert key == f"session:{response.cookies.get(SESSION_COOKIE)}"
        assert ttl == 600

    def test_read_only_handler_skips_save(
        self, client: TestClient, mock_redis: MagicMock
    ) -> None:
        """getIlsStatus disables session writes, so nothing is stored."""
        response = client.get(URL, params={"method": "getIlsStatus"})

        assert response.json() == {"data": "", "status": "OK"}
        mock_redis.setex.assert_not_awaited()
        assert SESSION_COOKIE not in response.cookies

    def test_posted_form_reaches_handler(
        self, client: TestClient, mock_redis: MagicMock
    ) -> None:
        """closeBroadcast stores the posted id in the saved session."""
        response = client.post(URL + "?method=closeBroadcast", data={"id": "12"})

        assert response.json() == {"data": True, "status": "OK"}
        payload = json.loads(mock_redis.setex.await_args.args[2])
        assert payload["data"] == {"closed_broadcasts": ["12"]}

    def test_existing_session_loads_user(
        self,
        app: FastAPI,
        client: TestClient,
        mock_redis: MagicMock,
        mock_user_repo: MagicMock,
    ) -> None:
        _log_in(client, mock_redis)

        response = client.post(
            URL + "?method=commentRecord", data={"id": "rec1", "comment": "Nice"}
        )

        assert response.json() == {"data": {"id": 99}, "status": "OK"}
        mock_redis.get.assert_awaited_once_with("session:01HEXISTING")
        mock_user_repo.get_by_id.assert_awaited_once_with(7)
        app.state.comments_repo.add.assert_awaited_once_with(7, 11, "Nice")
        assert SESSION_COOKIE not in response.cookies

    def test_unchanged_session_only_refreshes_ttl(
        self, client: TestClient, mock_redis: MagicMock
    ) -> None:
        """A handler that leaves the session alone triggers no rewrite."""
        _log_in(client, mock_redis)

        client.post(
            URL + "?method=commentRecord", data={"id": "rec1", "comment": "Nice"}
        )

        mock_redis.setex.assert_not_awaited()
        mock_redis.expire.assert_awaited_once_with("session:01HEXISTING", 600)

    def test_changed_existing_session_is_saved(
        self, client: TestClient, mock_redis: MagicMock
    ) -> None:
        _log_in(client, mock_redis)

        client.post(URL + "?method=closeBroadcast", data={"id": "12"})

        key, _, payload = mock_redis.setex.await_args.args
        assert key == "session:01HEXISTING"
        assert json.loads(payload)["data"] == {"closed_broadcasts": ["12"]}

    def test_expired_session_starts_a_new_one(
        self, client: TestClient, mock_redis: MagicMock
    ) -> None:
        client.cookies.set(SESSION_COOKIE, "01HEXPIRED")

        response = client.get(URL, params={"method": "keepAlive"})

        assert response.cookies.get(SESSION_COOKIE) not in (None, "01HEXPIRED")


# ---------------------------------------------------------------------------
# Rate limiting
# ---------------------------------------------------------------------------


def _rate_limited_app(request_count: int) -> FastAPI:
    redis = MagicMock()
    redis.zremrangebyscore = AsyncMock()
    redis.zcard = AsyncMock(return_value=request_count)
    redis.zadd = AsyncMock()
    redis.expire = AsyncMock()

    async def get_redis():
        return redis

    _app = FastAPI()

    @_app.get(URL)
    async def answer() -> dict:
        return {"data": True, "status": "OK"}

    @_app.post(URL)
    async def answer_form(request: Request) -> dict:
        form = await request.form()
        return {"data": form.get("method"), "status": "OK"}

    _app.add_middleware(
        RateLimitMiddleware,
        redis_client=get_redis,
        window_seconds=60,
        max_requests=5,
    )
    _app.add_middleware(ErrorHandlerMiddleware)
    _app.state.redis = redis
    return _app


class TestRateLimiting:
    """Tests for the per-client, per-method request limit."""

    def test_under_limit(self) -> None:
        _app = _rate_limited_app(request_count=4)

        response = TestClient(_app).get(URL, params={"method": "keepAlive"})

        assert response.status_code == 200
        key = _app.state.redis.zadd.await_args.args[0]
        assert key == "ratelimit:ip:testclient:keepAlive"

    def test_posted_method_gets_its_own_bucket(self) -> None:
        _app = _rate_limited_app(request_count=0)

        response = TestClient(_app).post(URL, data={"method": "getItemStatuses"})

        assert response.json() == {"data": "getItemStatuses", "status": "OK"}
        key = _app.state.redis.zadd.await_args.args[0]
        assert key == "ratelimit:ip:testclient:getItemStatuses"

    def test_over_limit(self) -> None:
        _app = _rate_limited_app(request_count=5)

        response = TestClient(_app).get(URL, params={"method": "keepAlive"})

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "60"
        assert response.json()["error"]["code"] == "TOO_MANY_REQUESTS"
        _app.state.redis.zadd.assert_not_awaited()
