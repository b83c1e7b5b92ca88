from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from functools import partial
from typing import (
    TYPE_CHECKING,
    Callable,
    Iterable,
    List,
    Optional,
    Sequence,
    Tuple,
    Union,
)

import config
from confidence import (
    DEFAULT_WEIGHTS,
    PRICE_IMPACT_WEIGHTS,
    SandwichFlags,
    ScoringWeights,
    calculate_confidence,
)
from errors import InsufficientTransactionsError, SandwichScanError, SkipReason
from loggers import logger
from tokens import TokenEquivalence
from transactions import (
    SwapTransaction,
    check_unique_positions,
    group_transactions_by_block,
)

if TYPE_CHECKING:
    from sandwich_simulate import SandwichAttackBySimulation

Candidate = Tuple[SwapTransaction, SwapTransaction, SwapTransaction]


@dataclass(frozen=True)
class DetectionPolicy:
    use_token_equivalence: bool = True
    # front, victim and back on one pool; otherwise only front and victim
    strict_pool_alignment: bool = False
    weights: ScoringWeights = DEFAULT_WEIGHTS


STRICT_POLICY = DetectionPolicy(use_token_equivalence=False, strict_pool_alignment=True)
EQUIVALENCE_POLICY = DetectionPolicy()
PRICE_IMPACT_POLICY = DetectionPolicy(weights=PRICE_IMPACT_WEIGHTS)


@dataclass(frozen=True)
class SandwichAttack:
    front_run_tx: SwapTransaction
    victim_tx: SwapTransaction
    back_run_tx: SwapTransaction
    confidence_score: float
    flags: SandwichFlags

    @property
    def block_number(self) -> int:
        return self.victim_tx.block_number

    @property
    def attacker(self) -> str:
        return self.front_run_tx.from_address


@dataclass
class DetectionResult:
    attacks: List[Union[SandwichAttack, "SandwichAttackBySimulation"]] = field(
        default_factory=list
    )
    skipped: List[SkipReason] = field(default_factory=list)

    def merge(self, other: "DetectionResult") -> None:
        self.attacks.extend(other.attacks)
        self.skipped.extend(other.skipped)


def resolve_equivalence(
    policy: DetectionPolicy, equivalence: Optional[TokenEquivalence] = None
) -> TokenEquivalence:
    if not policy.use_token_equivalence:
        return TokenEquivalence.identity()
    return equivalence if equivalence is not None else TokenEquivalence()


def are_tokens_reversed(
    a: SwapTransaction, b: SwapTransaction, equivalence: TokenEquivalence
) -> bool:
    """True when b trades back out of what a bought, up to equivalent tokens."""
    return equivalence.are_equivalent(
        a.token_in, b.token_out
    ) and equivalence.are_equivalent(a.token_out, b.token_in)


def is_same_direction(
    a: SwapTransaction, b: SwapTransaction, equivalence: TokenEquivalence
) -> bool:
    return equivalence.are_equivalent(
        a.token_in, b.token_in
    ) and equivalence.are_equivalent(a.token_out, b.token_out)


def is_sandwich_pattern(
    front: SwapTransaction,
    victim: SwapTransaction,
    back: SwapTransaction,
    equivalence: TokenEquivalence,
    strict_pool_alignment: bool = False,
) -> bool:
    """Check the front/victim/back shape, assuming they are in block order.

    A match means the swap directions line up, not that the attack paid off.
    """
    if front.from_address != back.from_address:
        return False

    if front.from_address == victim.from_address:
        return False

    if not are_tokens_reversed(front, back, equivalence):
        return False

    # attacker buys ahead of the victim, in the same direction
    if not is_same_direction(front, victim, equivalence):
        return False

    # and sells back afterwards
    if is_same_direction(victim, back, equivalence):
        return False

    if front.pool_address != victim.pool_address:
        return False

    if strict_pool_alignment and back.pool_address != victim.pool_address:
        return False

    return True


def find_sandwich_candidates(
    block_transactions: Sequence[SwapTransaction],
    equivalence: TokenEquivalence,
    strict_pool_alignment: bool = False,
) -> List[Candidate]:
    """Return every (front, victim, back) triple in one block's ordered swaps.

    Victims need not be adjacent to either attacker leg.
    """
    n = len(block_transactions)
    if n < 3:
        block_number = block_transactions[0].block_number if n else None
        raise InsufficientTransactionsError(
            f"not enough transactions to have a sandwich ({n})",
            block_number=block_number,
        )

    candidates: List[Candidate] = []

    for front_pos in range(n - 2):
        front = block_transactions[front_pos]

        for back_pos in range(front_pos + 2, n):
            back = block_transactions[back_pos]

            if front.from_address != back.from_address:
                continue

            if not are_tokens_reversed(front, back, equivalence):
                continue

            for victim_pos in range(front_pos + 1, back_pos):
                victim = block_transactions[victim_pos]

                if is_sandwich_pattern(
                    front, victim, back, equivalence, strict_pool_alignment
                ):
                    candidates.append((front, victim, back))

    return candidates


def _analyze_block(
    block_number: int,
    block_transactions: List[SwapTransaction],
    analyze: Callable[[int, List[SwapTransaction]], DetectionResult],
) -> DetectionResult:
    try:
        check_unique_positions(block_number, block_transactions)
        return analyze(block_number, block_transactions)
    except SandwichScanError as exc:
        logger.warning(f"Skipping block {block_number}: {exc.message}")
        return DetectionResult(skipped=[exc.to_skip(block_number)])


def analyze_blocks(
    transactions: Iterable[SwapTransaction],
    analyze: Callable[[int, List[SwapTransaction]], DetectionResult],
    workers: int = 1,
) -> DetectionResult:
    """Group transactions by block and run `analyze` on each block.

    Blocks are independent; with more than one worker they run in a thread
    pool and results are gathered as they complete.
    """
    blocks = group_transactions_by_block(transactions)
    result = DetectionResult()

    if workers <= 1 or len(blocks) <= 1:
        for block_number in sorted(blocks):
            result.merge(_analyze_block(block_number, blocks[block_number], analyze))
        return result

    with ThreadPoolExecutor(max_workers=workers) as executor:
        future_to_block = {
            executor.submit(_analyze_block, block_number, block_txs, analyze): block_number
            for block_number, block_txs in blocks.items()
        }
        for future in as_completed(future_to_block):
            result.merge(future.result())

    return result


def _score_block(
    block_number: int,
    block_transactions: List[SwapTransaction],
    policy: DetectionPolicy,
    equivalence: TokenEquivalence,
) -> DetectionResult:
    attacks = []

    for front, victim, back in find_sandwich_candidates(
        block_transactions, equivalence, policy.strict_pool_alignment
    ):
        confidence, flags = calculate_confidence(
            front, victim, back, equivalence, policy.weights
        )
        logger.debug(
            f"Block {block_number}: {front.tx_hash} -> {victim.tx_hash} -> "
            f"{back.tx_hash} (confidence {confidence:.2f})"
        )
        attacks.append(
            SandwichAttack(
                front_run_tx=front,
                victim_tx=victim,
                back_run_tx=back,
                confidence_score=confidence,
                flags=flags,
            )
        )

    return DetectionResult(attacks=attacks)


def detect_by_heuristics(
    transactions: Iterable[SwapTransaction],
    policy: DetectionPolicy = EQUIVALENCE_POLICY,
    equivalence: Optional[TokenEquivalence] = None,
    workers: Optional[int] = None,
) -> DetectionResult:
    """Find same-block sandwich attacks and score each one."""
    equivalence = resolve_equivalence(policy, equivalence)
    workers = config.DETECTION_WORKERS if workers is None else workers

    result = analyze_blocks(
        transactions,
        partial(_score_block, policy=policy, equivalence=equivalence),
        workers=workers,
    )

    logger.info(
        f"Heuristic detection found {len(result.attacks)} sandwich attacks, "
        f"skipped {len(result.skipped)}"
    )
    return result
