"""共通フィクスチャ"""

import pytest
from feature_rollout import Environment, FeatureConfig, InMemoryConfigLookup, RolloutDecision


@pytest.fixture
def lookup() -> InMemoryConfigLookup:
    return InMemoryConfigLookup(
        {
            "auth": {
                Environment.LOCAL: FeatureConfig(enabled=True, rollout_percentage=100),
                Environment.INTEGRATION: FeatureConfig(enabled=True, rollout_percentage=100),
                Environment.PRODUCTION: FeatureConfig(
                    enabled=True,
                    rollout_percentage=100,
                    blacklist=frozenset({"user-banned"}),
                ),
            },
            "collections": {
                Environment.LOCAL: FeatureConfig(enabled=True, rollout_percentage=100),
                Environment.INTEGRATION: FeatureConfig(
                    enabled=True,
                    rollout_percentage=50,
                    whitelist=frozenset({"user-beta"}),
                ),
                Environment.PRODUCTION: FeatureConfig(enabled=False, rollout_percentage=0),
            },
        }
    )


@pytest.fixture
def decision(lookup: InMemoryConfigLookup) -> RolloutDecision:
    return RolloutDecision(lookup, Environment.INTEGRATION)
