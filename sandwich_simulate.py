from dataclasses import dataclass
from functools import partial
from typing import Iterable, List, Mapping, Optional, Sequence

import config
from errors import (
    NoPoolTransactionsError,
    PoolNotFoundError,
    SandwichScanError,
    SimulationMismatchError,
)
from loggers import logger
from sandwich_detect import (
    EQUIVALENCE_POLICY,
    DetectionPolicy,
    DetectionResult,
    analyze_blocks,
    find_sandwich_candidates,
    resolve_equivalence,
)
from simulation import Pool, replay_swaps
from tokens import TokenEquivalence
from transactions import SwapTransaction


@dataclass(frozen=True)
class SandwichAttackBySimulation:
    front_run_tx: SwapTransaction
    victim_tx: SwapTransaction
    back_run_tx: SwapTransaction
    victim_loss_percentage: float
    simulated_amount_out: float
    counterfactual_amount_out: float

    @property
    def block_number(self) -> int:
        return self.victim_tx.block_number

    @property
    def attacker(self) -> str:
        return self.front_run_tx.from_address


def relative_difference_pct(actual: float, simulated: float) -> float:
    return abs(actual - simulated) / actual * 100.0


def simulate_victim_output(
    initial_pool: Pool,
    pool_transactions: Sequence[SwapTransaction],
    victim: SwapTransaction,
    exclude_position: Optional[int] = None,
) -> float:
    """Replay the pool's swaps that precede the victim, then the victim.

    `exclude_position` drops one earlier swap (the front-run) from the replay.
    """
    before_victim = [
        tx
        for tx in pool_transactions
        if tx.tx_position_in_block < victim.tx_position_in_block
        and tx.tx_position_in_block != exclude_position
    ]
    pool = replay_swaps(initial_pool, before_victim)
    return pool.simulate_swap(victim).tokens_received


def check_simulation_is_like_reality(
    initial_pool: Pool,
    pool_transactions: Sequence[SwapTransaction],
    victim: SwapTransaction,
    tolerance_pct: float = config.SIMULATION_TOLERANCE_PCT,
) -> float:
    """Replay what actually happened and compare with the victim's output.

    Returns the simulated output; raises SimulationMismatchError when it is
    further than `tolerance_pct` from the recorded one, meaning the
    supplied reserves cannot be trusted for this block.
    """
    simulated = simulate_victim_output(initial_pool, pool_transactions, victim)

    if victim.amount_out <= 0:
        raise SimulationMismatchError(
            f"Victim {victim.tx_hash} has no recorded output to compare against",
            block_number=victim.block_number,
        )

    difference_pct = relative_difference_pct(victim.amount_out, simulated)
    if difference_pct > tolerance_pct:
        raise SimulationMismatchError(
            f"Simulated output for {victim.tx_hash} is {difference_pct:.3f}% off "
            f"the recorded one (tolerance {tolerance_pct}%)",
            block_number=victim.block_number,
        )

    return simulated


def simulate_sandwich_attack(
    initial_pool: Pool,
    front: SwapTransaction,
    victim: SwapTransaction,
    back: SwapTransaction,
    block_transactions: Sequence[SwapTransaction],
    tolerance_pct: float = config.SIMULATION_TOLERANCE_PCT,
) -> SandwichAttackBySimulation:
    """Measure the victim loss caused by the front-run alone.

    Every other swap on the victim's pool is kept, so the loss is the gap
    between the recorded output and the output without the front-run.
    """
    pool_transactions = [
        tx for tx in block_transactions if tx.pool_address == victim.pool_address
    ]
    if not pool_transactions:
        raise NoPoolTransactionsError(
            f"No transactions found in victim pool {victim.pool_address}",
            block_number=victim.block_number,
        )

    simulated = check_simulation_is_like_reality(
        initial_pool, pool_transactions, victim, tolerance_pct
    )

    counterfactual = simulate_victim_output(
        initial_pool,
        pool_transactions,
        victim,
        exclude_position=front.tx_position_in_block,
    )

    return SandwichAttackBySimulation(
        front_run_tx=front,
        victim_tx=victim,
        back_run_tx=back,
        victim_loss_percentage=relative_difference_pct(victim.amount_out, counterfactual),
        simulated_amount_out=simulated,
        counterfactual_amount_out=counterfactual,
    )


def _simulate_block(
    block_number: int,
    block_transactions: List[SwapTransaction],
    pools: Mapping[str, Pool],
    policy: DetectionPolicy,
    equivalence: TokenEquivalence,
    tolerance_pct: float,
    max_loss_pct: float,
) -> DetectionResult:
    result = DetectionResult()

    for front, victim, back in find_sandwich_candidates(
        block_transactions, equivalence, policy.strict_pool_alignment
    ):
        tx_hashes = (front.tx_hash, victim.tx_hash, back.tx_hash)

        try:
            pool = pools.get(victim.pool_address)
            if pool is None:
                raise PoolNotFoundError(
                    f"No initial state supplied for pool {victim.pool_address}",
                    block_number=block_number,
                )
            attack = simulate_sandwich_attack(
                pool, front, victim, back, block_transactions, tolerance_pct
            )
        except SandwichScanError as exc:
            logger.warning(f"Sandwich simulation skipped {tx_hashes}: {exc.message}")
            result.skipped.append(exc.to_skip(block_number, tx_hashes))
            continue

        if attack.victim_loss_percentage > max_loss_pct:
            logger.warning(
                f"Victim {victim.tx_hash} loss {attack.victim_loss_percentage:.2f}% "
                f"is above the {max_loss_pct}% sanity ceiling"
            )

        result.attacks.append(attack)

    return result


def detect_by_simulation(
    pools: Mapping[str, Pool],
    transactions: Iterable[SwapTransaction],
    policy: DetectionPolicy = EQUIVALENCE_POLICY,
    equivalence: Optional[TokenEquivalence] = None,
    tolerance_pct: Optional[float] = None,
    workers: Optional[int] = None,
) -> DetectionResult:
    """Confirm sandwich candidates by replaying their pools.

    `pools` maps pool address to its state at the start of the block.
    """
    equivalence = resolve_equivalence(policy, equivalence)
    tolerance_pct = config.SIMULATION_TOLERANCE_PCT if tolerance_pct is None else tolerance_pct
    workers = config.DETECTION_WORKERS if workers is None else workers

    result = analyze_blocks(
        transactions,
        partial(
            _simulate_block,
            pools=pools,
            policy=policy,
            equivalence=equivalence,
            tolerance_pct=tolerance_pct,
            max_loss_pct=config.MAX_VICTIM_LOSS_PCT,
        ),
        workers=workers,
    )

    logger.info(
        f"Simulation confirmed {len(result.attacks)} sandwich attacks, "
        f"skipped {len(result.skipped)}"
    )
    return result
