"""ロールアウト判定"""

from __future__ import annotations

import math
from collections.abc import Iterable

import structlog

from .bucket import DEFAULT_SALT, is_user_in_rollout
from .lookup import ConfigLookupProtocol
from .models import (
    DEFAULT_FEATURE_CONFIG,
    Environment,
    FeatureCheckContext,
    FeatureCheckResult,
    FeatureConfig,
    FeaturesSnapshot,
    ReasonCode,
)


def _clamp_percentage(value: float) -> float:
    if math.isnan(value):
        return 0.0
    return min(max(value, 0.0), 100.0)


class RolloutDecision:
    """機能の有効/無効を判定する。

    判定は次の順で行い、最初に一致したルールで確定する。

    1. 機能設定を取得（未登録なら常に無効の既定設定）
    2. 機能が無効なら feature_disabled
    3. ユーザーが blacklist にいれば user_blacklisted（whitelist より優先）
    4. ユーザーが whitelist にいれば user_whitelisted
    5. ユーザー ID がなければ anonymous_allowed または no_user_id
    6. バケット値とロールアウト率で rollout_included / rollout_excluded

    状態を持たないため、複数スレッドから同時に呼び出してよい。
    """

    def __init__(
        self,
        lookup: ConfigLookupProtocol,
        default_environment: Environment = Environment.LOCAL,
        *,
        salt: str = DEFAULT_SALT,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._lookup = lookup
        self._default_environment = Environment(default_environment)
        self._salt = salt
        self._logger = logger or structlog.stdlib.get_logger(__name__)

    @property
    def default_environment(self) -> Environment:
        return self._default_environment

    def _resolve_config(self, feature_name: str, environment: Environment) -> FeatureConfig:
        config = self._lookup.get_feature_config(feature_name, environment)
        if config is None:
            self._logger.debug(
                "feature_config_missing",
                feature=feature_name,
                environment=environment.value,
            )
            return DEFAULT_FEATURE_CONFIG
        return config

    def is_feature_enabled(
        self, feature_name: str, context: FeatureCheckContext | None = None
    ) -> FeatureCheckResult:
        """機能が有効かどうかを理由コード付きで返す。例外は送出しない。"""
        ctx = context or FeatureCheckContext()
        environment = Environment(ctx.environment or self._default_environment)
        config = self._resolve_config(feature_name, environment)

        if not config.enabled:
            return FeatureCheckResult(enabled=False, reason=ReasonCode.FEATURE_DISABLED)

        user_id = ctx.user_id
        # 空文字列は ID なしとして扱う
        if user_id and user_id in config.blacklist:
            return FeatureCheckResult(enabled=False, reason=ReasonCode.USER_BLACKLISTED)

        if user_id and user_id in config.whitelist:
            return FeatureCheckResult(enabled=True, reason=ReasonCode.USER_WHITELISTED)

        if not user_id:
            if ctx.allow_anonymous:
                return FeatureCheckResult(enabled=True, reason=ReasonCode.ANONYMOUS_ALLOWED)
            return FeatureCheckResult(enabled=False, reason=ReasonCode.NO_USER_ID)

        included = is_user_in_rollout(
            user_id,
            feature_name,
            _clamp_percentage(config.rollout_percentage),
            self._salt,
        )
        return FeatureCheckResult(
            enabled=included,
            reason=ReasonCode.ROLLOUT_INCLUDED if included else ReasonCode.ROLLOUT_EXCLUDED,
        )

    def is_enabled(self, feature_name: str, context: FeatureCheckContext | None = None) -> bool:
        """is_feature_enabled の真偽値のみを返す。"""
        return self.is_feature_enabled(feature_name, context).enabled

    def get_all_features(
        self,
        user_id: str | None = None,
        environment: Environment | None = None,
        feature_names: Iterable[str] | None = None,
    ) -> dict[str, FeatureCheckResult]:
        """複数の機能をまとめて判定する。

        feature_names を省略した場合は設定に登録済みの全機能が対象。
        """
        names = list(feature_names) if feature_names is not None else self._lookup.feature_names()
        context = FeatureCheckContext(user_id=user_id, environment=environment)
        return {name: self.is_feature_enabled(name, context) for name in names}

    def get_features_config(self, environment: Environment | None = None) -> FeaturesSnapshot:
        """環境ごとに解決された設定の一覧を返す。"""
        env = Environment(environment or self._default_environment)
        features = {
            name: self._lookup.get_feature_config(name, env) or DEFAULT_FEATURE_CONFIG
            for name in self._lookup.feature_names()
        }
        return FeaturesSnapshot(environment=env, features=features)
