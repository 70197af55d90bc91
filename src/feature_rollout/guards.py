"""starlette 向けの機能ガード"""

from __future__ import annotations

from collections.abc import Callable, Iterable

import structlog
from starlette.requests import Request
from starlette.responses import JSONResponse, RedirectResponse, Response

from .decision import RolloutDecision
from .exceptions import FeatureDisabledError
from .models import FeatureCheckContext, FeatureCheckResult

_DEFAULT_MESSAGES: dict[int, str] = {
    404: "Not Found",
    503: "Service Temporarily Unavailable",
}

# 503 の場合に再試行を促すまでの秒数
RETRY_AFTER_SECONDS = 3600

UserIdGetter = Callable[[Request], str | None]


def default_user_id(request: Request) -> str | None:
    """request.state.user.id をユーザー ID として返す。未ログインなら None。"""
    user = getattr(request.state, "user", None)
    user_id = getattr(user, "id", None)
    if user_id is None:
        return None
    return str(user_id)


def _disabled_body(feature_name: str, result: FeatureCheckResult, message: str) -> dict[str, str]:
    return {"error": message, "feature": feature_name, "reason": result.reason.value}


def _disabled_headers(status: int) -> dict[str, str]:
    if status == 503:
        return {"Retry-After": str(RETRY_AFTER_SECONDS)}
    return {}


def _check_status(status: int) -> None:
    if status not in _DEFAULT_MESSAGES:
        raise ValueError(f"disabled_status must be 404 or 503, got {status}")


class FeatureGuard:
    """RolloutDecision の判定結果を HTTP レスポンスに変換する。

    API 用のガードは JSON エラー、ページ用のガードはリダイレクトを返す。
    新しい判定ロジックは持たない。
    """

    def __init__(
        self,
        decision: RolloutDecision,
        *,
        user_id_getter: UserIdGetter | None = None,
        debug: bool = False,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._decision = decision
        self._user_id_getter = user_id_getter or default_user_id
        self._debug = debug
        self._logger = logger or structlog.stdlib.get_logger(__name__)

    def _check(
        self, request: Request, feature_name: str, allow_anonymous: bool = False
    ) -> FeatureCheckResult:
        user_id = self._user_id_getter(request)
        result = self._decision.is_feature_enabled(
            feature_name,
            FeatureCheckContext(user_id=user_id, allow_anonymous=allow_anonymous),
        )
        if self._debug:
            self._logger.debug(
                "feature_guard_checked",
                feature=feature_name,
                enabled=result.enabled,
                reason=result.reason.value,
                user_id=user_id or "anonymous",
                path=request.url.path,
            )
        return result

    # --- API ---

    def guard_api_feature(
        self,
        request: Request,
        feature_name: str,
        *,
        disabled_status: int = 503,
        disabled_message: str | None = None,
        allow_anonymous: bool = False,
    ) -> JSONResponse | None:
        """機能が無効ならエラーレスポンスを返す。有効なら None。

        Args:
            request: リクエスト
            feature_name: 機能名
            disabled_status: 404（機能が存在しない扱い）または 503（一時的に利用不可）
            disabled_message: レスポンスの error に入れるメッセージ
            allow_anonymous: 未ログインユーザーを許可するか（ログイン API など）
        """
        _check_status(disabled_status)
        result = self._check(request, feature_name, allow_anonymous)
        if result.enabled:
            return None
        message = disabled_message or _DEFAULT_MESSAGES[disabled_status]
        return JSONResponse(
            _disabled_body(feature_name, result, message),
            status_code=disabled_status,
            headers=_disabled_headers(disabled_status),
        )

    def require_api_feature(
        self,
        request: Request,
        feature_name: str,
        *,
        disabled_status: int = 503,
        disabled_message: str | None = None,
        allow_anonymous: bool = False,
    ) -> None:
        """機能が無効なら FeatureDisabledError を送出する。

        feature_disabled_handler を例外ハンドラとして登録して使う。
        """
        _check_status(disabled_status)
        result = self._check(request, feature_name, allow_anonymous)
        if not result.enabled:
            raise FeatureDisabledError(
                feature_name, result, status=disabled_status, message=disabled_message
            )

    def is_api_feature_enabled(
        self, request: Request, feature_name: str, *, allow_anonymous: bool = False
    ) -> bool:
        return self._check(request, feature_name, allow_anonymous).enabled

    # --- ページ ---

    def guard_page_feature(
        self, request: Request, feature_name: str, *, redirect_to: str = "/404"
    ) -> RedirectResponse | None:
        """機能が無効なら redirect_to へのリダイレクトを返す。有効なら None。"""
        if self._check(request, feature_name).enabled:
            return None
        return RedirectResponse(redirect_to, status_code=302)

    def guard_page_features(
        self,
        request: Request,
        feature_names: Iterable[str],
        *,
        redirect_to: str = "/404",
    ) -> RedirectResponse | None:
        """全ての機能が有効な場合のみ None。最初に無効だった機能でリダイレクトする。"""
        for feature_name in feature_names:
            response = self.guard_page_feature(request, feature_name, redirect_to=redirect_to)
            if response is not None:
                return response
        return None

    def is_page_feature_enabled(self, request: Request, feature_name: str) -> bool:
        return self._check(request, feature_name).enabled

    def feature_class(
        self,
        request: Request,
        feature_name: str,
        enabled_class: str,
        disabled_class: str = "",
    ) -> str:
        """テンプレート用に、機能の状態に応じた CSS クラスを返す。"""
        if self.is_page_feature_enabled(request, feature_name):
            return enabled_class
        return disabled_class


async def feature_disabled_handler(request: Request, exc: Exception) -> Response:
    """FeatureDisabledError を JSON レスポンスに変換する例外ハンドラ。"""
    if not isinstance(exc, FeatureDisabledError):
        raise exc
    message = exc.detail or _DEFAULT_MESSAGES.get(exc.status, "Feature Unavailable")
    return JSONResponse(
        _disabled_body(exc.feature_name, exc.result, message),
        status_code=exc.status,
        headers=_disabled_headers(exc.status),
    )
