from collections import Counter, defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence

from errors import DuplicatePositionError


@dataclass(frozen=True)
class SwapTransaction:
    tx_hash: str
    block_number: int
    timestamp: int
    tx_position_in_block: int
    from_address: str
    token_in: str
    token_out: str
    amount_in: float
    amount_out: float
    gas_price: int
    pool_address: str
    token_launch_block: int
    is_contract_caller: bool
    usd_value_in: float
    usd_value_out: float
    gas_cost_usd: float

    def execution_rate(self) -> float:
        """USD received per USD spent; 0.0 when nothing was spent."""
        if self.usd_value_in <= 0:
            return 0.0
        return self.usd_value_out / self.usd_value_in


def group_transactions_by_block(
    transactions: Iterable[SwapTransaction],
) -> Dict[int, List[SwapTransaction]]:
    """Partition transactions per block, each list sorted by position."""
    grouped: Dict[int, List[SwapTransaction]] = defaultdict(list)

    for tx in transactions:
        grouped[tx.block_number].append(tx)

    for txs in grouped.values():
        txs.sort(key=lambda tx: tx.tx_position_in_block)

    return dict(grouped)


def check_unique_positions(
    block_number: int, block_transactions: Sequence[SwapTransaction]
) -> None:
    counts = Counter(tx.tx_position_in_block for tx in block_transactions)
    duplicates = sorted(pos for pos, count in counts.items() if count > 1)

    if duplicates:
        raise DuplicatePositionError(
            f"Block {block_number} has several transactions at position(s) "
            f"{', '.join(str(pos) for pos in duplicates)}; ordering is ambiguous",
            block_number=block_number,
        )
