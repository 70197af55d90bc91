"""feature_rollout データモデル"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Environment(str, Enum):
    """デプロイ環境。"""

    LOCAL = "local"
    INTEGRATION = "integration"
    PRODUCTION = "production"


class ReasonCode(str, Enum):
    """判定理由コード。値は外部に公開される安定した文字列。"""

    FEATURE_DISABLED = "feature_disabled"
    USER_BLACKLISTED = "user_blacklisted"
    USER_WHITELISTED = "user_whitelisted"
    NO_USER_ID = "no_user_id"
    ANONYMOUS_ALLOWED = "anonymous_allowed"
    ROLLOUT_INCLUDED = "rollout_included"
    ROLLOUT_EXCLUDED = "rollout_excluded"


@dataclass(frozen=True)
class FeatureConfig:
    """環境ごとの機能設定。

    whitelist / blacklist はリストで渡しても frozenset に正規化される。
    """

    enabled: bool = False
    rollout_percentage: float = 0.0
    whitelist: frozenset[str] = field(default_factory=frozenset)
    blacklist: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        object.__setattr__(self, "whitelist", _as_frozenset(self.whitelist))
        object.__setattr__(self, "blacklist", _as_frozenset(self.blacklist))

    def to_dict(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "rollout_percentage": self.rollout_percentage,
            "whitelist": sorted(self.whitelist),
            "blacklist": sorted(self.blacklist),
        }


def _as_frozenset(values: Iterable[str] | None) -> frozenset[str]:
    if values is None:
        return frozenset()
    if isinstance(values, str):
        return frozenset([values])
    return frozenset(values)


DEFAULT_FEATURE_CONFIG = FeatureConfig()
"""未登録の機能に使うフェイルセーフ設定（常に無効）。"""


@dataclass
class FeatureCheckContext:
    """機能判定コンテキスト。"""

    user_id: str | None = None
    environment: Environment | None = None
    allow_anonymous: bool = False


@dataclass(frozen=True)
class FeatureCheckResult:
    """機能判定結果。"""

    enabled: bool
    reason: ReasonCode

    def to_dict(self) -> dict[str, Any]:
        return {"enabled": self.enabled, "reason": self.reason.value}


@dataclass(frozen=True)
class FeaturesSnapshot:
    """ある環境で解決された機能設定の一覧（運用確認用）。"""

    environment: Environment
    features: dict[str, FeatureConfig] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "environment": self.environment.value,
            "features": {name: cfg.to_dict() for name, cfg in self.features.items()},
        }
