"""ユーザーバケット用 32bit ハッシュ"""

from __future__ import annotations

import sys

_MASK32 = 0xFFFFFFFF

_C1 = 0xCC9E2D51
_C2 = 0x1B873593


def _rotl32(x: int, r: int) -> int:
    return ((x << r) | (x >> (32 - r))) & _MASK32


# memoryview.cast はネイティブのバイトオーダーで読む
_UTF16_NATIVE = "utf-16-le" if sys.byteorder == "little" else "utf-16-be"


def _code_units(key: str) -> memoryview:
    """文字列を UTF-16 コードユニット列として返す。

    BMP 外の文字はサロゲートペア (2 ユニット) になる。孤立サロゲートもそのまま 1 ユニット。
    """
    return memoryview(key.encode(_UTF16_NATIVE, "surrogatepass")).cast("H")


def murmur_hash3(key: str, seed: int = 0) -> int:
    """MurmurHash3 の finalizer を使った 32bit ハッシュを返す。

    標準の MurmurHash3 (4 バイトブロック単位) とは異なり、UTF-16 コードユニットを
    1 つずつ 32bit ブロックとして混ぜ込む。既存のバケット割り当てを保つため、
    このアルゴリズムは変更しないこと。

    Args:
        key: ハッシュ対象の文字列（空文字列も可）
        seed: シード値（2^32 で剰余を取る）

    Returns:
        0 以上 2^32 未満の符号なし整数
    """
    units = _code_units(key)
    h1 = seed & _MASK32

    for cu in units:
        k1 = (cu * _C1) & _MASK32
        k1 = _rotl32(k1, 15)
        k1 = (k1 * _C2) & _MASK32

        h1 ^= k1
        h1 = _rotl32(h1, 13)
        h1 = (h1 * 5 + 0xE6546B64) & _MASK32

    # finalization
    h1 ^= len(units)
    h1 ^= h1 >> 16
    h1 = (h1 * 0x85EBCA6B) & _MASK32
    h1 ^= h1 >> 13
    h1 = (h1 * 0xC2B2AE35) & _MASK32
    h1 ^= h1 >> 16
    return h1
