from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class SkipKind(str, Enum):
    INSUFFICIENT_TRANSACTIONS = "insufficient_transactions"
    DUPLICATE_POSITION = "duplicate_position"
    POOL_NOT_FOUND = "pool_not_found"
    NO_POOL_TRANSACTIONS = "no_pool_transactions"
    SIMULATION_MISMATCH = "simulation_mismatch"
    POOL_SIMULATION_ERROR = "pool_simulation_error"


@dataclass(frozen=True)
class SkipReason:
    """A block or candidate that produced no finding, and why."""

    kind: SkipKind
    block_number: int
    message: str
    tx_hashes: Tuple[str, ...] = ()


class SandwichScanError(Exception):
    """Recoverable per-block or per-candidate failure.

    Detectors turn these into SkipReason records and carry on with the
    rest of the batch.
    """

    kind: SkipKind

    def __init__(self, message: str, block_number: Optional[int] = None):
        self.message = message
        self.block_number = block_number
        super().__init__(message)

    def to_skip(
        self, block_number: int, tx_hashes: Tuple[str, ...] = ()
    ) -> SkipReason:
        return SkipReason(
            kind=self.kind,
            block_number=block_number,
            message=self.message,
            tx_hashes=tx_hashes,
        )


class InsufficientTransactionsError(SandwichScanError):
    kind = SkipKind.INSUFFICIENT_TRANSACTIONS


class DuplicatePositionError(SandwichScanError):
    kind = SkipKind.DUPLICATE_POSITION


class PoolNotFoundError(SandwichScanError):
    kind = SkipKind.POOL_NOT_FOUND


class NoPoolTransactionsError(SandwichScanError):
    kind = SkipKind.NO_POOL_TRANSACTIONS


class SimulationMismatchError(SandwichScanError):
    kind = SkipKind.SIMULATION_MISMATCH


class PoolSimulationError(SandwichScanError):
    kind = SkipKind.POOL_SIMULATION_ERROR
