import csv
import json
from pathlib import Path

import pytest

from ingest import IngestionError, load_pools, load_transactions, parse_transactions

DATA_DIR = Path(__file__).parent / "data"
SAMPLE_SWAPS = DATA_DIR / "sample_swaps.csv"
SAMPLE_POOLS = DATA_DIR / "pools.json"


def read_sample_rows():
    with SAMPLE_SWAPS.open(encoding="utf-8", newline="") as f:
        return list(csv.DictReader(f))


def test_load_sample_csv(sample_transactions):
    assert len(sample_transactions) == 16
    assert len({tx.block_number for tx in sample_transactions}) == 7

    front = sample_transactions[0]
    assert front.tx_hash == "0xsandwich1"
    assert front.gas_price == 150_000_000_000
    assert isinstance(front.gas_price, int)
    assert front.is_contract_caller is True
    assert front.amount_in == pytest.approx(150_000.0)
    assert front.gas_cost_usd == pytest.approx(14.2)


def test_load_json_list_and_wrapped(tmp_path):
    rows = read_sample_rows()[:5]

    bare = tmp_path / "swaps.json"
    bare.write_text(json.dumps(rows), encoding="utf-8")
    wrapped = tmp_path / "wrapped.json"
    wrapped.write_text(json.dumps({"transactions": rows}), encoding="utf-8")

    assert load_transactions(bare) == load_transactions(wrapped)
    assert [tx.tx_hash for tx in load_transactions(bare)] == [r["tx_hash"] for r in rows]


def test_optional_fields_default():
    row = dict(read_sample_rows()[0])
    for optional in ("token_launch_block", "is_contract_caller", "gas_cost_usd"):
        del row[optional]

    tx = parse_transactions([row])[0]

    assert tx.token_launch_block == 0
    assert tx.is_contract_caller is False
    assert tx.gas_cost_usd == 0.0


def test_whitespace_is_stripped():
    row = dict(read_sample_rows()[0], from_address="  0xattacker1 ")
    assert parse_transactions([row])[0].from_address == "0xattacker1"


@pytest.mark.parametrize(
    "field, value",
    [
        ("amount_in", "not-a-number"),
        ("amount_in", "0"),
        ("gas_price", "-1"),
        ("tx_hash", ""),
        ("block_number", "abc"),
    ],
)
def test_invalid_records_are_rejected(field, value):
    rows = read_sample_rows()[:3]
    rows[2] = dict(rows[2], **{field: value})

    with pytest.raises(IngestionError, match="#3"):
        parse_transactions(rows)


def test_missing_field_is_rejected():
    row = dict(read_sample_rows()[0])
    del row["pool_address"]

    with pytest.raises(IngestionError):
        parse_transactions([row])


def test_missing_files(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_transactions(tmp_path / "nope.csv")
    with pytest.raises(FileNotFoundError):
        load_pools(tmp_path / "nope.json")


def test_json_must_hold_a_list(tmp_path):
    path = tmp_path / "swaps.json"
    path.write_text(json.dumps({"transactions": {"tx_hash": "0x1"}}), encoding="utf-8")

    with pytest.raises(IngestionError):
        load_transactions(path)


def test_load_pools(sample_pools):
    assert set(sample_pools) == {
        "0xpool_usdc_eth",
        "0xpool_sushi_usdc_eth",
        "0xpool_uniswap",
        "0xpool1",
        "0xpool_usdt",
    }
    pool = sample_pools["0xpool_uniswap"]
    assert (pool.token_a, pool.token_b) == ("ETH", "NEWTOKEN")
    assert pool.token_a_reserve == 800.0
    assert pool.token_b_reserve == 800_000.0


def test_load_pools_rejects_empty_reserves(tmp_path):
    data = json.loads(SAMPLE_POOLS.read_text(encoding="utf-8"))
    data["0xpool1"]["token_a_reserve"] = 0
    path = tmp_path / "pools.json"
    path.write_text(json.dumps(data), encoding="utf-8")

    with pytest.raises(IngestionError, match="0xpool1"):
        load_pools(path)
