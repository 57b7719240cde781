"""Fixed-width encodings of shares and commitments.

二进制格式用于持久化与传输；字典格式用于加密包内的 JSON 载荷与签名。
"""

from __future__ import annotations

import base64
from typing import Dict

from data_models import Commitment, DualShare, Share
from errors import EncodingError
from group import SchnorrGroup

INDEX_WIDTH = 4


def _encode_index(index: int) -> bytes:
    return index.to_bytes(INDEX_WIDTH, "big")


def _decode_index(data: bytes) -> int:
    index = int.from_bytes(data[:INDEX_WIDTH], "big")
    if index < 1:
        raise EncodingError("Share index must be positive")
    return index


def encode_share(share: Share, group: SchnorrGroup) -> bytes:
    return _encode_index(share.index) + group.scalar_to_bytes(share.value)


def decode_share(data: bytes, group: SchnorrGroup) -> Share:
    if len(data) != INDEX_WIDTH + group.scalar_width:
        raise EncodingError(f"Share encoding must be {INDEX_WIDTH + group.scalar_width} bytes")
    return Share(_decode_index(data), group.scalar_from_bytes(data[INDEX_WIDTH:]))


def encode_dual_share(share: DualShare, group: SchnorrGroup) -> bytes:
    return (
        _encode_index(share.index)
        + group.scalar_to_bytes(share.value)
        + group.scalar_to_bytes(share.blinding)
    )


def decode_dual_share(data: bytes, group: SchnorrGroup) -> DualShare:
    width = group.scalar_width
    if len(data) != INDEX_WIDTH + 2 * width:
        raise EncodingError(f"Dual-share encoding must be {INDEX_WIDTH + 2 * width} bytes")
    value = group.scalar_from_bytes(data[INDEX_WIDTH:INDEX_WIDTH + width])
    blinding = group.scalar_from_bytes(data[INDEX_WIDTH + width:])
    return DualShare(_decode_index(data), value, blinding)


def encode_commitment(commitment: Commitment, group: SchnorrGroup) -> bytes:
    parts = [len(commitment).to_bytes(INDEX_WIDTH, "big")]
    parts.extend(group.element_to_bytes(element) for element in commitment)
    return b"".join(parts)


def decode_commitment(data: bytes, group: SchnorrGroup) -> Commitment:
    if len(data) < INDEX_WIDTH:
        raise EncodingError("Commitment encoding is truncated")
    count = int.from_bytes(data[:INDEX_WIDTH], "big")
    width = group.element_width
    if count < 1 or len(data) != INDEX_WIDTH + count * width:
        raise EncodingError("Commitment length does not match its element count")
    body = data[INDEX_WIDTH:]
    return Commitment(
        tuple(group.element_from_bytes(body[k * width:(k + 1) * width]) for k in range(count))
    )


# —— JSON 友好的字典形式 / JSON-safe dict forms ——

def dual_share_to_dict(share: DualShare, group: SchnorrGroup) -> Dict[str, object]:
    return {
        "index": share.index,
        "value": base64.b64encode(group.scalar_to_bytes(share.value)).decode(),
        "blinding": base64.b64encode(group.scalar_to_bytes(share.blinding)).decode(),
    }


def dual_share_from_dict(data: Dict[str, object], group: SchnorrGroup) -> DualShare:
    try:
        index = int(data["index"])
        value = group.scalar_from_bytes(base64.b64decode(data["value"]))
        blinding = group.scalar_from_bytes(base64.b64decode(data["blinding"]))
    except (KeyError, TypeError, ValueError) as exc:
        raise EncodingError(f"Malformed dual-share payload: {exc}") from exc
    if index < 1:
        raise EncodingError("Share index must be positive")
    return DualShare(index, value, blinding)


def commitment_to_text(commitment: Commitment, group: SchnorrGroup) -> str:
    return base64.b64encode(encode_commitment(commitment, group)).decode()


def commitment_from_text(text: str, group: SchnorrGroup) -> Commitment:
    try:
        raw = base64.b64decode(text, validate=True)
    except ValueError as exc:
        raise EncodingError(f"Malformed commitment text: {exc}") from exc
    return decode_commitment(raw, group)
