import pytest

from errors import DuplicatePositionError, SkipKind
from transactions import check_unique_positions, group_transactions_by_block


def test_group_transactions_by_block_sorts_by_position(make_tx):
    txs = [
        make_tx(tx_hash="b2", block_number=2, tx_position_in_block=5),
        make_tx(tx_hash="a3", block_number=1, tx_position_in_block=9),
        make_tx(tx_hash="a1", block_number=1, tx_position_in_block=0),
        make_tx(tx_hash="b1", block_number=2, tx_position_in_block=1),
        make_tx(tx_hash="a2", block_number=1, tx_position_in_block=4),
    ]

    grouped = group_transactions_by_block(txs)

    assert sorted(grouped) == [1, 2]
    assert [tx.tx_hash for tx in grouped[1]] == ["a1", "a2", "a3"]
    assert [tx.tx_hash for tx in grouped[2]] == ["b1", "b2"]


def test_group_transactions_by_block_empty():
    assert group_transactions_by_block([]) == {}


def test_check_unique_positions_flags_duplicates(make_tx):
    txs = [
        make_tx(tx_hash="x", tx_position_in_block=3),
        make_tx(tx_hash="y", tx_position_in_block=3),
        make_tx(tx_hash="z", tx_position_in_block=4),
    ]

    with pytest.raises(DuplicatePositionError) as exc_info:
        check_unique_positions(100, txs)

    assert exc_info.value.kind == SkipKind.DUPLICATE_POSITION
    assert "3" in exc_info.value.message


def test_check_unique_positions_accepts_distinct(make_tx):
    txs = [make_tx(tx_position_in_block=pos) for pos in range(4)]
    check_unique_positions(100, txs)


def test_execution_rate(make_tx):
    assert make_tx(usd_value_in=100.0, usd_value_out=90.0).execution_rate() == pytest.approx(0.9)
    assert make_tx(usd_value_in=0.0, usd_value_out=90.0).execution_rate() == 0.0
