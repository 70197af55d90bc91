"""feature_rollout ライブラリの例外型定義"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import FeatureCheckResult


class FeatureRolloutError(Exception):
    """feature_rollout ライブラリのエラー基底クラス。

    判定処理 (RolloutDecision) からは送出されない。設定の読み込みとガードでのみ使う。

    Attributes:
        code: FeatureRolloutErrorCodes の値
        source: エラーの発生元（設定ファイルのパスや機能名）。不明なら None
    """

    def __init__(
        self,
        code: str,
        message: str,
        *,
        source: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.source = source
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        text = f"{self.code}: {super().__str__()}"
        if self.source is not None:
            text += f" [{self.source}]"
        return text


class FeatureRolloutErrorCodes:
    """エラーコード定数。"""

    # 設定の読み込み
    READ_FILE: str = "READ_FILE_ERROR"
    PARSE_YAML: str = "PARSE_YAML_ERROR"
    VALIDATION: str = "VALIDATION_ERROR"
    # ガード
    FEATURE_DISABLED: str = "FEATURE_DISABLED"


class FeatureDisabledError(FeatureRolloutError):
    """ガードで機能が無効と判定された場合のエラー。

    status はレスポンスに使う HTTP ステータス (404 または 503)。
    """

    def __init__(
        self,
        feature_name: str,
        result: FeatureCheckResult,
        status: int = 503,
        message: str | None = None,
    ) -> None:
        super().__init__(
            code=FeatureRolloutErrorCodes.FEATURE_DISABLED,
            message=message or f"Feature is disabled ({result.reason.value})",
            source=feature_name,
        )
        self.feature_name = feature_name
        self.result = result
        self.status = status
        self.detail = message
