import json
from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, Iterable, List

import config
from errors import PoolSimulationError
from transactions import SwapTransaction


@dataclass(frozen=True)
class Pool:
    """Constant-product pool state for one token pair.

    Swaps never mutate a pool; `simulate_swap` returns the next state so a
    block's trajectory is a fold over its ordered swaps.
    """

    token_a_reserve: float
    token_b_reserve: float
    token_a: str
    token_b: str

    def token_a_price(self) -> float:
        return self.token_b_reserve / self.token_a_reserve

    def token_b_price(self) -> float:
        return self.token_a_reserve / self.token_b_reserve

    def cp(self) -> float:
        return self.token_a_reserve * self.token_b_reserve

    def is_buying_token_a(self, swap: SwapTransaction) -> bool:
        if swap.token_out == self.token_a:
            return True
        if swap.token_out == self.token_b:
            return False
        # equivalent-token legs (e.g. WETH into an ETH pool) only match on input
        if swap.token_in == self.token_b:
            return True
        if swap.token_in == self.token_a:
            return False
        raise PoolSimulationError(
            f"Swap {swap.tx_hash} ({swap.token_in} -> {swap.token_out}) does not "
            f"trade pool pair {self.token_a}/{self.token_b}",
            block_number=swap.block_number,
        )

    def simulate_swap(self, swap: SwapTransaction) -> "SwapSimulationResult":
        if self.token_a_reserve <= 0 or self.token_b_reserve <= 0:
            raise PoolSimulationError(
                f"Pool {self.token_a}/{self.token_b} has non-positive reserves "
                f"({self.token_a_reserve}, {self.token_b_reserve})",
                block_number=swap.block_number,
            )

        if swap.amount_in <= 0:
            raise PoolSimulationError(
                f"Swap {swap.tx_hash} has non-positive amount_in {swap.amount_in}",
                block_number=swap.block_number,
            )

        buying_a = self.is_buying_token_a(swap)

        if buying_a:
            initial_price = self.token_a_price()
            input_reserve, output_reserve = self.token_b_reserve, self.token_a_reserve
        else:
            initial_price = self.token_b_price()
            input_reserve, output_reserve = self.token_a_reserve, self.token_b_reserve

        tokens_received = constant_product_out(input_reserve, output_reserve, swap.amount_in)
        execution_price = swap.amount_in / tokens_received
        slippage = calculate_slippage(initial_price, execution_price)

        if buying_a:
            new_pool = replace(
                self,
                token_a_reserve=self.token_a_reserve - tokens_received,
                token_b_reserve=self.token_b_reserve + swap.amount_in,
            )
        else:
            new_pool = replace(
                self,
                token_a_reserve=self.token_a_reserve + swap.amount_in,
                token_b_reserve=self.token_b_reserve - tokens_received,
            )

        return SwapSimulationResult(
            tokens_received=tokens_received,
            execution_price=execution_price,
            slippage=slippage,
            new_pool=new_pool,
        )


@dataclass(frozen=True)
class SwapSimulationResult:
    tokens_received: float
    execution_price: float
    slippage: float
    new_pool: Pool


def constant_product_out(input_reserve: float, output_reserve: float, amount_in: float) -> float:
    # no explicit fee; observed outputs absorb it as slippage
    return (output_reserve * amount_in) / (input_reserve + amount_in)


def calculate_slippage(initial_price: float, execution_price: float) -> float:
    """Percent deviation of the execution price from the pre-trade price."""
    return abs(execution_price - initial_price) / initial_price * 100.0


def replay_swaps(pool: Pool, swaps: Iterable[SwapTransaction]) -> Pool:
    for swap in swaps:
        pool = pool.simulate_swap(swap).new_pool
    return pool


def create_tx(
    tx_hash: str,
    position: int,
    from_address: str,
    token_in: str,
    token_out: str,
    amount_in: float,
    amount_out: float,
    pool_address: str = "SIMULATED_POOL",
    block_number: int = 10_000,
    gas_price: int = 0,
    is_contract_caller: bool = False,
    usd_value_in: float = 0.0,
    usd_value_out: float = 0.0,
) -> SwapTransaction:
    return SwapTransaction(
        tx_hash=tx_hash,
        block_number=block_number,
        timestamp=0,
        tx_position_in_block=position,
        from_address=from_address,
        token_in=token_in,
        token_out=token_out,
        amount_in=amount_in,
        amount_out=amount_out,
        gas_price=gas_price,
        pool_address=pool_address,
        token_launch_block=0,
        is_contract_caller=is_contract_caller,
        usd_value_in=usd_value_in,
        usd_value_out=usd_value_out,
        gas_cost_usd=0.0,
    )


def run_simulation(
    pool: Pool,
    attacker_amount_in: float,
    victim_amount_in: float,
    pool_address: str = "SIMULATED_POOL",
    block_number: int = 10_000,
) -> Dict[str, Any]:
    """Play a textbook sandwich against `pool`, attacker and victim both
    spending token_a to buy token_b, and return the resulting swaps."""
    initial_price = pool.token_b_price()

    frontrun = create_tx(
        "SIM_FRONT", 0, "BOT_WALLET_ABC", pool.token_a, pool.token_b,
        attacker_amount_in, 0.0, pool_address, block_number,
    )
    front_sim = pool.simulate_swap(frontrun)
    frontrun = replace(frontrun, amount_out=front_sim.tokens_received)

    victim = create_tx(
        "SIM_VICTIM", 1, "VICTIM_WALLET_XYZ", pool.token_a, pool.token_b,
        victim_amount_in, 0.0, pool_address, block_number,
    )
    victim_sim = front_sim.new_pool.simulate_swap(victim)
    victim = replace(victim, amount_out=victim_sim.tokens_received)

    backrun = create_tx(
        "SIM_BACK", 2, "BOT_WALLET_ABC", pool.token_b, pool.token_a,
        front_sim.tokens_received, 0.0, pool_address, block_number,
    )
    back_sim = victim_sim.new_pool.simulate_swap(backrun)
    backrun = replace(backrun, amount_out=back_sim.tokens_received)

    unattacked = pool.simulate_swap(victim)

    return {
        "initial_price": initial_price,
        "transactions": [frontrun, victim, backrun],
        "bot_profit": back_sim.tokens_received - attacker_amount_in,
        "victim_loss_tokens": unattacked.tokens_received - victim_sim.tokens_received,
        "final_pool": back_sim.new_pool,
    }


def save_simulation() -> None:
    pool = Pool(
        token_a_reserve=500.0,
        token_b_reserve=1_000_000.0,
        token_a="ETH",
        token_b="TOKEN",
    )
    print(
        f"\nInitializing pool: {pool.token_a_reserve:,.2f} {pool.token_a} / "
        f"{pool.token_b_reserve:,.0f} {pool.token_b}"
    )

    result = run_simulation(pool, attacker_amount_in=20, victim_amount_in=30)
    transactions: List[SwapTransaction] = result["transactions"]

    print(f"  Attacker profit:  {result['bot_profit']:.6f} {pool.token_a}")
    print(f"  Victim shortfall: {result['victim_loss_tokens']:.6f} {pool.token_b}")

    config.RESULTS_DIR.mkdir(parents=True, exist_ok=True)
    output_path = config.RESULTS_DIR / "simulation.json"
    with output_path.open("w", encoding="utf-8") as f:
        json.dump(
            {
                "pools": {"SIMULATED_POOL": asdict(pool)},
                "transactions": [asdict(tx) for tx in transactions],
            },
            f,
            indent=2,
        )

    print(f"simulation.json saved to {output_path}\n")


if __name__ == "__main__":
    save_simulation()
