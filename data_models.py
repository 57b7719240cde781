"""Dataclasses shared across the Shamir, Pedersen VSS and DVSS implementations.

消息与状态对象均为不可变数据类，参与者之间只传递这些对象。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterator, Set, Tuple

from constants import DEFAULT_GENERATOR_LABEL, DEFAULT_PHASE_TIMEOUT
from errors import InvalidDegree


@dataclass(frozen=True)
class Share:
    index: int
    value: int

    def __post_init__(self) -> None:
        if self.index < 1:
            raise ValueError(f"Share index must be a positive integer, got {self.index}")


@dataclass(frozen=True)
class DualShare:
    """Pedersen 份额 (f(i), f'(i)) / Secret share and blinding share at one index."""

    index: int
    value: int
    blinding: int

    def __post_init__(self) -> None:
        if self.index < 1:
            raise ValueError(f"Share index must be a positive integer, got {self.index}")

    @property
    def secret_share(self) -> Share:
        return Share(self.index, self.value)


@dataclass(frozen=True)
class Commitment:
    """对多项式系数的承诺 / One group element per polynomial coefficient."""

    elements: Tuple[int, ...]

    def __post_init__(self) -> None:
        if not self.elements:
            raise ValueError("A commitment needs at least one element")

    def __len__(self) -> int:
        return len(self.elements)

    def __getitem__(self, j: int) -> int:
        return self.elements[j]

    def __iter__(self) -> Iterator[int]:
        return iter(self.elements)

    @property
    def degree(self) -> int:
        return len(self.elements) - 1


@dataclass
class PerformanceStats:
    """性能统计数据类 / Collects timing and operation counts for each protocol phase."""

    phase_name: str
    duration: float
    operations: Dict[str, int] | None = None

    def __post_init__(self) -> None:
        if self.operations is None:
            self.operations = {}


@dataclass
class EncryptedSharePackage:
    """加密的份额包 / Encrypted dual-share sent point-to-point by a sub-dealer."""

    sender_id: int
    receiver_id: int
    encrypted_data: bytes
    nonce: bytes
    kem_public: bytes
    key_signature: bytes
    signature: bytes


@dataclass
class CommitmentBroadcast:
    """承诺广播 / A dealer's signed coefficient commitment."""

    dealer_id: int
    commitment: Commitment
    signature: bytes = b""


@dataclass
class Complaint:
    """投诉消息 / Complaint raised against a dealer whose share failed verification."""

    accuser_id: int
    accused_id: int
    reason: str
    timestamp: float
    signature: bytes = b""


@dataclass
class ComplaintResponse:
    """投诉应答 / The disputed dual-share, broadcast in the clear by the accused dealer."""

    dealer_id: int
    accuser_id: int
    share: DualShare
    signature: bytes = b""


class ComplaintLedger:
    """Append-only record of which parties accused which dealer.

    Queried by count; there is deliberately no way to withdraw an entry.
    """

    def __init__(self) -> None:
        self._accusers: Dict[int, Set[int]] = {}

    def add(self, accused_id: int, accuser_id: int) -> bool:
        """Record a complaint. Returns False if it was already on file."""
        accusers = self._accusers.setdefault(accused_id, set())
        if accuser_id in accusers:
            return False
        accusers.add(accuser_id)
        return True

    def accusers(self, accused_id: int) -> FrozenSet[int]:
        return frozenset(self._accusers.get(accused_id, ()))

    def count(self, accused_id: int) -> int:
        return len(self._accusers.get(accused_id, ()))

    def accused(self) -> FrozenSet[int]:
        return frozenset(dealer for dealer, accusers in self._accusers.items() if accusers)

    def __len__(self) -> int:
        return sum(len(accusers) for accusers in self._accusers.values())

    def __contains__(self, pair: object) -> bool:
        if not isinstance(pair, tuple) or len(pair) != 2:
            return False
        accused_id, accuser_id = pair
        return accuser_id in self._accusers.get(accused_id, ())


@dataclass
class DVSSConfig:
    """协议参数 / Parameters of one (t, n) DVSS run."""

    n: int
    t: int
    phase_timeout: float = DEFAULT_PHASE_TIMEOUT
    max_complaints: int | None = None
    generator_label: bytes = DEFAULT_GENERATOR_LABEL

    def __post_init__(self) -> None:
        if self.n < 1:
            raise ValueError(f"Number of parties must be positive, got {self.n}")
        if not 0 <= self.t < self.n:
            raise InvalidDegree(self.t, self.n)
        if self.phase_timeout <= 0:
            raise ValueError("Phase timeout must be positive")
        if self.max_complaints is None:
            self.max_complaints = self.t

    @property
    def quorum(self) -> int:
        return self.t + 1

    @property
    def party_ids(self) -> range:
        return range(1, self.n + 1)
