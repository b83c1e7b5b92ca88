from dataclasses import dataclass
from typing import Optional, Tuple

from tokens import TokenEquivalence
from transactions import SwapTransaction

MIN_FRONT_RATIO = 0.05
MAX_FRONT_RATIO = 0.5
BACK_RATIO_SPREAD = 2.0
MAX_CONFIDENCE = 1.0


@dataclass(frozen=True)
class ScoringWeights:
    base: float = 0.5
    front_gas_above_victim: float = 0.2
    back_gas_below_victim: float = 0.1
    front_contract_caller: float = 0.1
    back_contract_caller: float = 0.1
    profitable: float = 0.25
    proportional: float = 0.15
    # None leaves the price-impact term out of the score
    price_impact_cap: Optional[float] = None


DEFAULT_WEIGHTS = ScoringWeights()
PRICE_IMPACT_WEIGHTS = ScoringWeights(base=0.3, price_impact_cap=0.25)


@dataclass(frozen=True)
class SandwichFlags:
    front_gas_above_victim: bool
    back_gas_below_victim: bool
    front_contract_caller: bool
    back_contract_caller: bool
    is_profitable: bool
    is_proportional: bool
    price_impact: float
    total_profit_usd: float


def compute_profit_usd(front: SwapTransaction, back: SwapTransaction) -> float:
    return (
        back.usd_value_out
        - front.usd_value_in
        - front.gas_cost_usd
        - back.gas_cost_usd
    )


def is_proportional_sandwich(
    front: SwapTransaction, victim: SwapTransaction, back: SwapTransaction
) -> bool:
    """Check the attacker legs are sized as a fraction of the victim trade.

    The front-run should be 5-50% of the victim trade, and the back-run
    within a factor of two of the front-run.
    """
    if victim.usd_value_in <= 0:
        return False

    front_ratio = front.usd_value_in / victim.usd_value_in
    back_ratio = back.usd_value_in / victim.usd_value_in

    front_proportional = MIN_FRONT_RATIO <= front_ratio <= MAX_FRONT_RATIO
    back_proportional = (
        front_ratio / BACK_RATIO_SPREAD <= back_ratio <= front_ratio * BACK_RATIO_SPREAD
    )

    return front_proportional and back_proportional


def victim_price_impact(
    front: SwapTransaction,
    victim: SwapTransaction,
    equivalence: TokenEquivalence,
) -> float:
    """Relative execution-rate shortfall of the victim against the front-run."""
    same_direction = equivalence.are_equivalent(
        front.token_in, victim.token_in
    ) and equivalence.are_equivalent(front.token_out, victim.token_out)
    if not same_direction:
        return 0.0

    front_rate = front.execution_rate()
    victim_rate = victim.execution_rate()

    if front_rate <= 0 or victim_rate >= front_rate:
        return 0.0

    return (front_rate - victim_rate) / front_rate


def calculate_confidence(
    front: SwapTransaction,
    victim: SwapTransaction,
    back: SwapTransaction,
    equivalence: TokenEquivalence,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> Tuple[float, SandwichFlags]:
    """Score how likely a matched triple is a deliberate sandwich.

    Every signal adds a fixed weight on top of the base; the sum is capped
    at 1.0. The returned flags record which signals fired.
    """
    total_profit_usd = compute_profit_usd(front, back)

    if weights.price_impact_cap is not None:
        price_impact = victim_price_impact(front, victim, equivalence)
    else:
        price_impact = 0.0

    flags = SandwichFlags(
        front_gas_above_victim=front.gas_price > victim.gas_price,
        back_gas_below_victim=back.gas_price < victim.gas_price,
        front_contract_caller=front.is_contract_caller,
        back_contract_caller=back.is_contract_caller,
        is_profitable=total_profit_usd > 0.0,
        is_proportional=is_proportional_sandwich(front, victim, back),
        price_impact=price_impact,
        total_profit_usd=total_profit_usd,
    )

    confidence = weights.base

    if flags.front_gas_above_victim:
        confidence += weights.front_gas_above_victim
    if flags.back_gas_below_victim:
        confidence += weights.back_gas_below_victim
    if flags.front_contract_caller:
        confidence += weights.front_contract_caller
    if flags.back_contract_caller:
        confidence += weights.back_contract_caller
    if flags.is_profitable:
        confidence += weights.profitable
    if flags.is_proportional:
        confidence += weights.proportional
    if weights.price_impact_cap is not None:
        confidence += min(price_impact, weights.price_impact_cap)

    return min(confidence, MAX_CONFIDENCE), flags
