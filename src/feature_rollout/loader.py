"""機能設定ファイル読み込み"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import ValidationError

from .exceptions import FeatureRolloutError, FeatureRolloutErrorCodes
from .memory import InMemoryConfigLookup
from .schema import FeaturesFile

logger = structlog.stdlib.get_logger(__name__)


def _load_features_document(path: Path) -> dict[str, Any]:
    """機能設定の YAML ドキュメントを dict として読み込む。

    空ファイルは空の設定として扱う。トップレベルが dict でなければ PARSE_YAML_ERROR。
    """
    source = str(path)
    try:
        with path.open(encoding="utf-8") as stream:
            document = yaml.safe_load(stream)
    except OSError as e:
        raise FeatureRolloutError(
            FeatureRolloutErrorCodes.READ_FILE,
            "Cannot open feature config",
            source=source,
            cause=e,
        ) from e
    except yaml.YAMLError as e:
        raise FeatureRolloutError(
            FeatureRolloutErrorCodes.PARSE_YAML,
            f"Invalid YAML in feature config: {e}",
            source=source,
            cause=e,
        ) from e

    if document is None:
        return {}
    if not isinstance(document, dict):
        raise FeatureRolloutError(
            FeatureRolloutErrorCodes.PARSE_YAML,
            f"Feature config must be a mapping, got {type(document).__name__}",
            source=source,
        )
    return document


def _merge_features(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """features テーブルを 機能 → 環境 の単位でマージする。

    override 側の環境エントリは base 側を丸ごと置き換える。
    """
    result = dict(base)
    base_features = base.get("features") or {}
    override_features = override.get("features") or {}
    if not isinstance(base_features, dict) or not isinstance(override_features, dict):
        # スキーマ検証でエラーにする
        result["features"] = override_features or base_features
        return result

    merged: dict[str, Any] = {
        name: dict(envs) if isinstance(envs, dict) else envs
        for name, envs in base_features.items()
    }
    for name, envs in override_features.items():
        if isinstance(envs, dict) and isinstance(merged.get(name), dict):
            merged[name].update(envs)
        else:
            merged[name] = envs
    result["features"] = merged
    return result


def load_mapping(data: Mapping[str, Any]) -> InMemoryConfigLookup:
    """パース済みの dict から設定テーブルを生成する。"""
    try:
        parsed = FeaturesFile.model_validate(dict(data))
    except ValidationError as e:
        raise FeatureRolloutError(
            code=FeatureRolloutErrorCodes.VALIDATION,
            message=f"Feature config validation failed: {e}",
            cause=e,
        ) from e
    return InMemoryConfigLookup(parsed.to_table())


def load(base_path: Path, env_path: Path | None = None) -> InMemoryConfigLookup:
    """機能設定ファイルを読み込んで InMemoryConfigLookup を返す。

    base_path: ベース設定ファイルパス（必須）
    env_path: 上書き用設定ファイルパス（オプション）。存在する場合はベースにマージ。
    """
    data = _load_features_document(base_path)
    if env_path is not None and env_path.exists():
        data = _merge_features(data, _load_features_document(env_path))
    lookup = load_mapping(data)
    logger.debug("feature_config_loaded", path=str(base_path), features=len(lookup))
    return lookup
