from pathlib import Path

import pytest

from ingest import load_pools, load_transactions
from transactions import SwapTransaction

DATA_DIR = Path(__file__).parent / "data"
SAMPLE_SWAPS = DATA_DIR / "sample_swaps.csv"
SAMPLE_POOLS = DATA_DIR / "pools.json"


def build_tx(**overrides) -> SwapTransaction:
    fields = {
        "tx_hash": "0xtx",
        "block_number": 100,
        "timestamp": 1_700_000_000,
        "tx_position_in_block": 0,
        "from_address": "0xattacker",
        "token_in": "USDC",
        "token_out": "SHIB",
        "amount_in": 1_000.0,
        "amount_out": 50_000_000.0,
        "gas_price": 50_000_000_000,
        "pool_address": "0xpool",
        "token_launch_block": 90,
        "is_contract_caller": False,
        "usd_value_in": 1_000.0,
        "usd_value_out": 1_000.0,
        "gas_cost_usd": 5.0,
    }
    fields.update(overrides)
    return SwapTransaction(**fields)


@pytest.fixture
def make_tx():
    return build_tx


@pytest.fixture
def basic_sandwich(make_tx):
    """front(A, USDC->SHIB), victim(V, USDC->SHIB), back(A, SHIB->USDC)."""
    front = make_tx(
        tx_hash="0xfront",
        tx_position_in_block=0,
        from_address="0xA",
        usd_value_in=200.0,
        usd_value_out=198.0,
        gas_price=120_000_000_000,
    )
    victim = make_tx(
        tx_hash="0xvictim",
        tx_position_in_block=1,
        from_address="0xV",
        usd_value_in=1_000.0,
        usd_value_out=960.0,
    )
    back = make_tx(
        tx_hash="0xback",
        tx_position_in_block=2,
        from_address="0xA",
        token_in="SHIB",
        token_out="USDC",
        usd_value_in=198.0,
        usd_value_out=230.0,
        gas_price=40_000_000_000,
    )
    return front, victim, back


@pytest.fixture(scope="session")
def sample_transactions():
    return load_transactions(SAMPLE_SWAPS)


@pytest.fixture(scope="session")
def sample_pools():
    return load_pools(SAMPLE_POOLS)
