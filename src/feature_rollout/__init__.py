"""feature_rollout library."""

from .bucket import DEFAULT_SALT, get_user_bucket, is_user_in_rollout
from .decision import RolloutDecision
from .environment import detect_environment, parse_environment
from .exceptions import FeatureDisabledError, FeatureRolloutError, FeatureRolloutErrorCodes
from .hash import murmur_hash3
from .loader import load, load_mapping
from .lookup import ConfigLookupProtocol
from .memory import InMemoryConfigLookup
from .models import (
    DEFAULT_FEATURE_CONFIG,
    Environment,
    FeatureCheckContext,
    FeatureCheckResult,
    FeatureConfig,
    FeaturesSnapshot,
    ReasonCode,
)

__all__ = [
    "DEFAULT_FEATURE_CONFIG",
    "DEFAULT_SALT",
    "ConfigLookupProtocol",
    "Environment",
    "FeatureCheckContext",
    "FeatureCheckResult",
    "FeatureConfig",
    "FeatureDisabledError",
    "FeatureRolloutError",
    "FeatureRolloutErrorCodes",
    "FeaturesSnapshot",
    "InMemoryConfigLookup",
    "ReasonCode",
    "RolloutDecision",
    "detect_environment",
    "get_user_bucket",
    "is_user_in_rollout",
    "load",
    "load_mapping",
    "murmur_hash3",
    "parse_environment",
]
