"""ConfigLookup プロトコル"""

from __future__ import annotations

from typing import Protocol

from .models import Environment, FeatureConfig


class ConfigLookupProtocol(Protocol):
    """機能設定の参照元プロトコル。

    同期的かつ副作用なしで呼び出せること。未登録の組み合わせは None を返す（例外にしない）。
    """

    def get_feature_config(
        self, feature_name: str, environment: Environment
    ) -> FeatureConfig | None: ...

    def feature_names(self) -> list[str]: ...
