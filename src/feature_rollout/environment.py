"""実行環境の判定（ホスト側で利用）"""

from __future__ import annotations

import os
from collections.abc import Mapping

import structlog

from .models import Environment

logger = structlog.stdlib.get_logger(__name__)

DEFAULT_ENV_VARIABLE = "ENV_NAME"


def parse_environment(value: str | None) -> Environment | None:
    """文字列を Environment に変換する。該当しなければ None。"""
    if value is None:
        return None
    try:
        return Environment(value.strip().lower())
    except ValueError:
        return None


def detect_environment(
    environ: Mapping[str, str] | None = None,
    *,
    variable: str = DEFAULT_ENV_VARIABLE,
    fallback: Environment = Environment.LOCAL,
) -> Environment:
    """環境変数から実行環境を判定する。

    Args:
        environ: 参照する環境変数（省略時は os.environ）
        variable: 環境名を保持する変数名
        fallback: 未設定・不正値の場合に使う環境

    Returns:
        判定された Environment
    """
    source = os.environ if environ is None else environ
    raw = source.get(variable)
    env = parse_environment(raw)
    if env is not None:
        return env
    logger.warning(
        "unknown_environment_name",
        variable=variable,
        value=raw,
        fallback=fallback.value,
        allowed=[e.value for e in Environment],
    )
    return fallback
