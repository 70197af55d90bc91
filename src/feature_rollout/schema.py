"""機能設定ファイルのスキーマ（pydantic BaseModel）"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from .models import Environment, FeatureConfig


class FeatureConfigModel(BaseModel):
    """1 つの環境における機能設定。"""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    enabled: bool = False
    rollout_percentage: float = Field(default=0.0, ge=0.0, le=100.0, alias="rolloutPercentage")
    whitelist: list[str] = Field(default_factory=list)
    blacklist: list[str] = Field(default_factory=list)

    def to_feature_config(self) -> FeatureConfig:
        return FeatureConfig(
            enabled=self.enabled,
            rollout_percentage=self.rollout_percentage,
            whitelist=frozenset(self.whitelist),
            blacklist=frozenset(self.blacklist),
        )


class FeaturesFile(BaseModel):
    """機能設定ファイル全体。

    features:
      auth:
        production:
          enabled: true
          rollout_percentage: 25
    """

    model_config = ConfigDict(extra="forbid")

    features: dict[str, dict[Environment, FeatureConfigModel]] = Field(default_factory=dict)

    def to_table(self) -> dict[str, dict[Environment, FeatureConfig]]:
        return {
            name: {env: cfg.to_feature_config() for env, cfg in envs.items()}
            for name, envs in self.features.items()
        }
