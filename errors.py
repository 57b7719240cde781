"""Error taxonomy shared by the Shamir, Pedersen VSS and DVSS modules."""

from __future__ import annotations

from typing import Iterable


class SecretSharingError(Exception):
    """Base class for every error raised by the secret sharing core."""


class InvalidDegree(SecretSharingError, ValueError):
    def __init__(self, degree: int, n: int | None = None) -> None:
        self.degree = degree
        self.n = n
        if n is None:
            message = f"Polynomial degree must be non-negative, got {degree}"
        else:
            message = f"Threshold t={degree} out of range for n={n} (need 0 <= t < n)"
        super().__init__(message)


class DuplicateIndex(SecretSharingError, ValueError):
    def __init__(self, index: int) -> None:
        self.index = index
        super().__init__(f"Index {index} appears more than once")


class InsufficientShares(SecretSharingError, ValueError):
    def __init__(self, required: int, presented: int) -> None:
        self.required = required
        self.presented = presented
        super().__init__(f"Need at least {required} shares, got {presented}")


class EncodingError(SecretSharingError, ValueError):
    """Raised when a fixed-width encoding cannot be decoded."""


class VerificationFailed(SecretSharingError):
    def __init__(self, indices: Iterable[int], message: str | None = None) -> None:
        self.indices = sorted(indices)
        super().__init__(message or f"Shares failed commitment verification: {self.indices}")


class ComplaintUnresolved(SecretSharingError):
    def __init__(self, dealer_id: int, accusers: Iterable[int]) -> None:
        self.dealer_id = dealer_id
        self.accusers = sorted(accusers)
        super().__init__(
            f"Dealer {dealer_id} did not answer complaints from {self.accusers}"
        )


class Disqualified(SecretSharingError):
    """A sub-dealer was excluded. Reported as an event, not raised by the protocol."""

    def __init__(self, dealer_id: int, reason: str) -> None:
        self.dealer_id = dealer_id
        self.reason = reason
        super().__init__(f"Dealer {dealer_id} disqualified: {reason}")


class ProtocolAborted(SecretSharingError):
    def __init__(self, qual: Iterable[int], required: int, message: str | None = None) -> None:
        self.qual = frozenset(qual)
        self.required = required
        super().__init__(
            message
            or f"Qualified set {sorted(self.qual)} has {len(self.qual)} dealers, need at least {required}"
        )


class InvalidPhaseTransition(SecretSharingError):
    def __init__(self, current: object, attempted: str) -> None:
        self.current = current
        self.attempted = attempted
        super().__init__(f"Cannot {attempted} while in state {current}")
