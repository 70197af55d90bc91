"""InMemoryConfigLookup 実装"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from .exceptions import FeatureRolloutError, FeatureRolloutErrorCodes
from .models import Environment, FeatureConfig
from .schema import FeatureConfigModel


class InMemoryConfigLookup:
    """インメモリの機能設定テーブル。

    生成時にコピーを取り、以後は変更しない。
    """

    def __init__(
        self,
        features: Mapping[str, Mapping[Environment, FeatureConfig]] | None = None,
    ) -> None:
        self._features: dict[str, dict[Environment, FeatureConfig]] = {
            name: {Environment(env): cfg for env, cfg in envs.items()}
            for name, envs in (features or {}).items()
        }

    @classmethod
    def from_mapping(
        cls, features: Mapping[str, Mapping[str, Mapping[str, Any] | FeatureConfig]]
    ) -> InMemoryConfigLookup:
        """プレーンな dict から生成する。

        dict の設定は FeatureConfigModel で検証する（"false" などの文字列は bool に変換、
        rolloutPercentage も受け付ける）。

        Raises:
            FeatureRolloutError: 環境名または設定値が不正な場合 (VALIDATION_ERROR)
        """
        table: dict[str, dict[Environment, FeatureConfig]] = {}
        for name, envs in features.items():
            table[name] = {
                _parse_environment_key(name, env): _parse_feature_config(name, env, cfg)
                for env, cfg in envs.items()
            }
        return cls(table)

    def get_feature_config(
        self, feature_name: str, environment: Environment
    ) -> FeatureConfig | None:
        envs = self._features.get(feature_name)
        if envs is None:
            return None
        return envs.get(environment)

    def feature_names(self) -> list[str]:
        return list(self._features)

    def __len__(self) -> int:
        return len(self._features)


def _parse_environment_key(feature_name: str, env: str) -> Environment:
    try:
        return Environment(env)
    except ValueError as e:
        raise FeatureRolloutError(
            code=FeatureRolloutErrorCodes.VALIDATION,
            message=f"Unknown environment: {env!r}",
            source=feature_name,
            cause=e,
        ) from e


def _parse_feature_config(
    feature_name: str, env: str, cfg: Mapping[str, Any] | FeatureConfig
) -> FeatureConfig:
    if isinstance(cfg, FeatureConfig):
        return cfg
    try:
        return FeatureConfigModel.model_validate(dict(cfg)).to_feature_config()
    except ValidationError as e:
        raise FeatureRolloutError(
            code=FeatureRolloutErrorCodes.VALIDATION,
            message=f"Invalid feature config for environment {env!r}: {e}",
            source=feature_name,
            cause=e,
        ) from e
