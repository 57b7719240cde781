"""Randomness sources injected into the sharing engines.

核心模块从不直接调用全局随机数，所有随机性均由调用者注入。
"""

from __future__ import annotations

import hashlib
import secrets
import threading

# 额外抽取的字节数，使取模后的偏差可以忽略
_EXTRA_BYTES = 16


class SecureRandom:
    """基于操作系统 CSPRNG 的随机源 / CSPRNG-backed randomness source."""

    def __init__(self, label: str = "root") -> None:
        self.label = label

    def derive_child(self, label: str) -> "SecureRandom":
        return SecureRandom(f"{self.label}/{label}")

    def random_scalar(self, modulus: int) -> int:
        """Uniform integer in [0, modulus)."""
        if modulus <= 0:
            raise ValueError("Modulus must be positive")
        return secrets.randbelow(modulus)

    def token_bytes(self, length: int) -> bytes:
        return secrets.token_bytes(length)

    def __repr__(self) -> str:
        return f"SecureRandom({self.label!r})"


class SeededRandom:
    """确定性随机源，仅用于测试向量 / Deterministic SHAKE-256 stream for reproducible tests.

    Never use this outside tests: anyone who knows the seed knows every
    polynomial coefficient drawn from it.
    """

    def __init__(self, seed: bytes | str) -> None:
        if isinstance(seed, str):
            seed = seed.encode()
        self.seed = seed
        self._counter = 0
        self._lock = threading.Lock()

    def derive_child(self, label: str) -> "SeededRandom":
        return SeededRandom(self.seed + b"/" + label.encode())

    def token_bytes(self, length: int) -> bytes:
        with self._lock:
            block = self.seed + self._counter.to_bytes(8, "big")
            self._counter += 1
        return hashlib.shake_256(block).digest(length)

    def random_scalar(self, modulus: int) -> int:
        if modulus <= 0:
            raise ValueError("Modulus must be positive")
        width = (modulus.bit_length() + 7) // 8 + _EXTRA_BYTES
        return int.from_bytes(self.token_bytes(width), "big") % modulus

    def __repr__(self) -> str:
        return f"SeededRandom({self.seed!r})"
