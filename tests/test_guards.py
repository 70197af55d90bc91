"""starlette 機能ガードのユニットテスト"""

from types import SimpleNamespace

import pytest
from feature_rollout import (
    Environment,
    FeatureCheckResult,
    FeatureConfig,
    FeatureDisabledError,
    FeatureRolloutErrorCodes,
    InMemoryConfigLookup,
    ReasonCode,
    RolloutDecision,
)
from feature_rollout.guards import FeatureGuard, default_user_id, feature_disabled_handler
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response
from starlette.routing import Route
from starlette.testclient import TestClient


def make_guard(**kwargs) -> FeatureGuard:
    lookup = InMemoryConfigLookup(
        {
            "auth": {Environment.LOCAL: FeatureConfig(enabled=True, rollout_percentage=100)},
            "collections": {
                Environment.LOCAL: FeatureConfig(
                    enabled=True, rollout_percentage=0, whitelist=frozenset({"user-vip"})
                )
            },
            "legacy": {Environment.LOCAL: FeatureConfig(enabled=False)},
        }
    )
    return FeatureGuard(RolloutDecision(lookup), **kwargs)


def make_app(guard: FeatureGuard) -> Starlette:
    def api_collections(request: Request) -> Response:
        status = int(request.query_params.get("status", "503"))
        response = guard.guard_api_feature(request, "collections", disabled_status=status)
        if response is not None:
            return response
        return JSONResponse({"items": []})

    def api_login(request: Request) -> Response:
        response = guard.guard_api_feature(
            request,
            "auth",
            allow_anonymous=True,
            disabled_message="Authentication temporarily unavailable",
        )
        return response or JSONResponse({"ok": True})

    def api_legacy(request: Request) -> Response:
        guard.require_api_feature(request, "legacy", disabled_status=404)
        return JSONResponse({"ok": True})

    def page_collections(request: Request) -> Response:
        response = guard.guard_page_feature(request, "collections", redirect_to="/fallback")
        return response or PlainTextResponse("collections")

    def page_dashboard(request: Request) -> Response:
        response = guard.guard_page_features(request, ["auth", "collections"])
        css = guard.feature_class(request, "collections", "visible", "hidden")
        return response or PlainTextResponse(css)

    return Starlette(
        routes=[
            Route("/api/collections", api_collections),
            Route("/api/login", api_login),
            Route("/api/legacy", api_legacy),
            Route("/collections", page_collections),
            Route("/dashboard", page_dashboard),
        ],
        exception_handlers={FeatureDisabledError: feature_disabled_handler},
    )


def header_user_id(request: Request) -> str | None:
    return request.headers.get("x-user-id")


@pytest.fixture
def client() -> TestClient:
    return TestClient(make_app(make_guard(user_id_getter=header_user_id)))


def test_api_guard_returns_503_with_retry_after(client: TestClient) -> None:
    """無効な場合は 503 と Retry-After を返す。"""
    resp = client.get("/api/collections", headers={"x-user-id": "user-other"})
    assert resp.status_code == 503
    assert resp.headers["retry-after"] == "3600"
    assert resp.json() == {
        "error": "Service Temporarily Unavailable",
        "feature": "collections",
        "reason": "rollout_excluded",
    }


def test_api_guard_returns_404(client: TestClient) -> None:
    """disabled_status=404 なら Not Found（Retry-After なし）。"""
    resp = client.get("/api/collections?status=404")
    assert resp.status_code == 404
    assert "retry-after" not in resp.headers
    assert resp.json() == {"error": "Not Found", "feature": "collections", "reason": "no_user_id"}


def test_api_guard_passes_whitelisted_user(client: TestClient) -> None:
    """有効な場合はハンドラの処理が続く。"""
    resp = client.get("/api/collections", headers={"x-user-id": "user-vip"})
    assert resp.status_code == 200
    assert resp.json() == {"items": []}


def test_api_guard_allow_anonymous(client: TestClient) -> None:
    """allow_anonymous なら未ログインでも通過する。"""
    resp = client.get("/api/login")
    assert resp.status_code == 200


def test_require_api_feature_uses_exception_handler(client: TestClient) -> None:
    """require_api_feature の例外が JSON レスポンスになる。"""
    resp = client.get("/api/legacy", headers={"x-user-id": "user-1"})
    assert resp.status_code == 404
    assert resp.json() == {"error": "Not Found", "feature": "legacy", "reason": "feature_disabled"}


def test_page_guard_redirects(client: TestClient) -> None:
    """ページガードは無効ならリダイレクトする。"""
    resp = client.get("/collections", follow_redirects=False)
    assert resp.status_code == 302
    assert resp.headers["location"] == "/fallback"


def test_page_guard_passes(client: TestClient) -> None:
    """ページガードは有効なら通過する。"""
    resp = client.get("/collections", headers={"x-user-id": "user-vip"})
    assert resp.status_code == 200
    assert resp.text == "collections"


def test_page_guard_multiple_features(client: TestClient) -> None:
    """複数機能のいずれかが無効ならリダイレクトする。"""
    resp = client.get("/dashboard", headers={"x-user-id": "user-other"}, follow_redirects=False)
    assert resp.status_code == 302
    assert resp.headers["location"] == "/404"

    resp = client.get("/dashboard", headers={"x-user-id": "user-vip"})
    assert resp.status_code == 200
    assert resp.text == "visible"


def _request(user_id: str | None = None) -> Request:
    request = Request({"type": "http", "method": "GET", "path": "/", "headers": []})
    if user_id is not None:
        request.state.user = SimpleNamespace(id=user_id)
    return request


def test_default_user_id() -> None:
    """request.state.user.id を読み取る。"""
    assert default_user_id(_request()) is None
    assert default_user_id(_request("user-1")) == "user-1"


def test_custom_user_id_getter() -> None:
    """ユーザー ID の取得方法を差し替えられること。"""
    guard = make_guard(user_id_getter=lambda request: "user-vip")
    assert guard.is_api_feature_enabled(_request(), "collections") is True
    assert guard.is_page_feature_enabled(_request(), "collections") is True


def test_is_api_feature_enabled() -> None:
    """is_api_feature_enabled の判定。"""
    guard = make_guard(debug=True)
    assert guard.is_api_feature_enabled(_request("user-1"), "auth") is True
    assert guard.is_api_feature_enabled(_request(), "auth") is False
    assert guard.is_api_feature_enabled(_request(), "auth", allow_anonymous=True) is True


def test_feature_class_default_disabled_class() -> None:
    """無効時の既定クラスは空文字列。"""
    guard = make_guard()
    assert guard.feature_class(_request("user-other"), "collections", "visible") == ""


def test_invalid_disabled_status() -> None:
    """404 / 503 以外のステータスは ValueError。"""
    guard = make_guard()
    with pytest.raises(ValueError):
        guard.guard_api_feature(_request("user-1"), "auth", disabled_status=500)


def test_feature_disabled_error() -> None:
    """FeatureDisabledError のコードと内容。"""
    result = FeatureCheckResult(enabled=False, reason=ReasonCode.FEATURE_DISABLED)
    err = FeatureDisabledError("legacy", result, status=404)
    assert err.code == FeatureRolloutErrorCodes.FEATURE_DISABLED
    assert err.feature_name == "legacy"
    assert err.result is result
    assert err.source == "legacy"
    assert str(err) == "FEATURE_DISABLED: Feature is disabled (feature_disabled) [legacy]"
