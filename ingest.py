import csv
import json
from pathlib import Path
from typing import Any, Dict, List, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from simulation import Pool
from transactions import SwapTransaction

PathLike = Union[str, Path]


class IngestionError(ValueError):
    pass


class SwapRecord(BaseModel):
    """One swap row as read from disk, before it reaches the detectors."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    tx_hash: str = Field(..., min_length=1)
    block_number: int = Field(..., ge=0)
    timestamp: int = Field(..., ge=0)
    tx_position_in_block: int = Field(..., ge=0)
    from_address: str = Field(..., min_length=1)
    token_in: str = Field(..., min_length=1)
    token_out: str = Field(..., min_length=1)
    amount_in: float = Field(..., gt=0)
    amount_out: float = Field(..., ge=0)
    gas_price: int = Field(..., ge=0)
    pool_address: str = Field(..., min_length=1)
    token_launch_block: int = Field(0, ge=0)
    is_contract_caller: bool = False
    usd_value_in: float = Field(..., ge=0)
    usd_value_out: float = Field(..., ge=0)
    gas_cost_usd: float = Field(0.0, ge=0)

    def to_transaction(self) -> SwapTransaction:
        return SwapTransaction(**self.model_dump())


class PoolRecord(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    token_a: str = Field(..., min_length=1)
    token_b: str = Field(..., min_length=1)
    token_a_reserve: float = Field(..., gt=0)
    token_b_reserve: float = Field(..., gt=0)

    def to_pool(self) -> Pool:
        return Pool(
            token_a_reserve=self.token_a_reserve,
            token_b_reserve=self.token_b_reserve,
            token_a=self.token_a,
            token_b=self.token_b,
        )


def _read_rows(path: Path) -> List[Dict[str, Any]]:
    if path.suffix.lower() == ".csv":
        with path.open("r", encoding="utf-8", newline="") as f:
            return list(csv.DictReader(f))

    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)

    rows = data.get("transactions", []) if isinstance(data, dict) else data
    if not isinstance(rows, list):
        raise IngestionError("Input file must contain a list or {transactions: [...]}")
    return rows


def parse_transactions(rows: List[Dict[str, Any]]) -> List[SwapTransaction]:
    transactions = []

    for row_number, row in enumerate(rows, start=1):
        try:
            record = SwapRecord.model_validate(row)
        except ValidationError as exc:
            raise IngestionError(f"Invalid swap record #{row_number}: {exc}") from exc
        transactions.append(record.to_transaction())

    return transactions


def load_transactions(filepath: PathLike) -> List[SwapTransaction]:
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Transactions file not found: {filepath}")

    return parse_transactions(_read_rows(path))


def load_pools(filepath: PathLike) -> Dict[str, Pool]:
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Pools file not found: {filepath}")

    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)

    if not isinstance(data, dict):
        raise IngestionError("Pools file must map pool addresses to pool states")

    pools = {}
    for pool_address, state in data.items():
        try:
            pools[pool_address] = PoolRecord.model_validate(state).to_pool()
        except ValidationError as exc:
            raise IngestionError(f"Invalid pool {pool_address}: {exc}") from exc

    return pools
