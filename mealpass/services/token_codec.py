"""
核销码生成

核销码只是 bookings 表里的查找键：扫码时不解析、不信任其中任何字段，
所有判断都以库里的预订记录为准。唯一性最终由 bookings.token 的 UNIQUE 约束保证。
"""

import base64
import hashlib
import re
import secrets

TOKEN_BYTES = 15          # 120 bit -> 24 个 base32 字符，无填充
GROUP_SIZE = 4
SEPARATOR = "-"

_STRIP_RE = re.compile(r"[\s\-_]+")


def _group(raw: str) -> str:
    return SEPARATOR.join(raw[i:i + GROUP_SIZE] for i in range(0, len(raw), GROUP_SIZE))


def mint(seed: str) -> str:
    """生成新的核销码

    Args:
        seed: 标识本次预订的种子（如 booking_id），与随机数一起做哈希

    Returns:
        形如 ABCD-EFGH-IJKL-MNOP-QRST-UVWX 的字符串
    """
    digest = hashlib.blake2b(
        seed.encode("utf-8") + secrets.token_bytes(32),
        digest_size=TOKEN_BYTES,
    ).digest()
    return _group(base64.b32encode(digest).decode("ascii"))


def normalize(raw: str) -> str:
    """把扫描或手工输入的字符串规范化为存储格式

    去掉空白和分隔符并转大写后重新分组；不做任何解码。
    """
    if raw is None:
        return ""
    compact = _STRIP_RE.sub("", raw).upper()
    return _group(compact)
