import pytest

from profit_analysis import attack_profit_usd, profit_rows, summarize_attacks
from sandwich_detect import detect_by_heuristics


@pytest.fixture(scope="module")
def sample_attacks(sample_transactions):
    return detect_by_heuristics(sample_transactions).attacks


def test_summary_counts_shared_legs_once(sample_attacks):
    summary = summarize_attacks(sample_attacks)

    assert summary["total_attacks"] == 6
    assert summary["distinct_sandwiches"] == 3
    assert summary["profitable_count"] == 3
    assert summary["loss_count"] == 0
    assert summary["total_profit_usd"] == pytest.approx(69_069.08 + 5_019.06 + 1_852.65)
    assert summary["max_profit_usd"] == pytest.approx(69_069.08)
    assert summary["mean_confidence"] == pytest.approx(1.0)


def test_top_attackers(sample_attacks):
    top = summarize_attacks(sample_attacks)["top_attackers"]

    assert [row["attacker"] for row in top] == ["0xattacker1", "0xcross_bot", "0xweth_mev"]
    assert top[0]["attack_count"] == 3
    assert top[0]["victim_count"] == 3
    assert top[0]["profit_usd"] == pytest.approx(69_069.08)
    assert top[1]["attack_count"] == 2
    assert top[1]["profit_usd"] == pytest.approx(5_019.06)

    assert len(summarize_attacks(sample_attacks, top_n=1)["top_attackers"]) == 1


def test_empty_summary():
    summary = summarize_attacks([])

    assert summary["total_attacks"] == 0
    assert summary["total_profit_usd"] == 0
    assert summary["max_profit_usd"] == 0.0
    assert summary["mean_confidence"] == 0.0
    assert summary["top_attackers"] == []


def test_profit_rows_sorted(sample_attacks):
    rows = profit_rows(sample_attacks)

    assert len(rows) == 6
    assert [r["profit_usd"] for r in rows] == sorted(
        (r["profit_usd"] for r in rows), reverse=True
    )
    assert rows[0]["attacker"] == "0xattacker1"
    assert rows[-1]["victim_tx"] == "0xweth_victim"


def test_attack_profit_matches_flags(sample_attacks):
    for attack in sample_attacks:
        assert attack_profit_usd(attack) == pytest.approx(attack.flags.total_profit_usd)
