"""一貫性のあるユーザーバケット割り当て"""

from __future__ import annotations

from .hash import murmur_hash3

DEFAULT_SALT = "feature-flags"

# 0.001 刻みで 0.000 - 99.999
_BUCKET_RESOLUTION = 100_000
_BUCKET_SCALE = 1000.0


def get_user_bucket(user_id: str, feature_name: str, salt: str = DEFAULT_SALT) -> float:
    """ユーザーと機能の組に対するバケット値 [0, 100) を返す。

    同じ (user_id, feature_name, salt) には常に同じ値を返す。
    """
    key = f"{salt}:{feature_name}:{user_id}"
    normalized = murmur_hash3(key) % _BUCKET_RESOLUTION
    return normalized / _BUCKET_SCALE


def is_user_in_rollout(
    user_id: str,
    feature_name: str,
    rollout_percentage: float,
    salt: str = DEFAULT_SALT,
) -> bool:
    """ユーザーがロールアウト対象かどうか。

    バケット値が rollout_percentage 未満なら対象。0 なら全員対象外、100 なら全員対象。
    """
    return get_user_bucket(user_id, feature_name, salt) < rollout_percentage
