from collections import defaultdict
from typing import Any, Dict, List, Sequence

from confidence import compute_profit_usd
from sandwich_detect import SandwichAttack

DEFAULT_TOP_N = 5


def attack_profit_usd(attack: SandwichAttack) -> float:
    return compute_profit_usd(attack.front_run_tx, attack.back_run_tx)


def summarize_attacks(
    attacks: Sequence[SandwichAttack], top_n: int = DEFAULT_TOP_N
) -> Dict[str, Any]:
    """Totals over the detected attacks plus the most profitable attackers.

    Several victims can share one front/back pair; that pair's profit is
    only counted once.
    """
    legs: Dict[tuple, SandwichAttack] = {}
    for attack in attacks:
        legs.setdefault((attack.front_run_tx.tx_hash, attack.back_run_tx.tx_hash), attack)

    profits = [attack_profit_usd(a) for a in legs.values()]

    summary: Dict[str, Any] = {
        "total_attacks": len(attacks),
        "distinct_sandwiches": len(legs),
        "profitable_count": len([p for p in profits if p > 0]),
        "loss_count": len([p for p in profits if p <= 0]),
        "total_profit_usd": sum(profits),
        "max_profit_usd": max(profits, default=0.0),
        "mean_confidence": (
            sum(a.confidence_score for a in attacks) / len(attacks) if attacks else 0.0
        ),
    }

    per_attacker = defaultdict(lambda: {"count": 0, "victims": set(), "profit_usd": 0.0})
    for attack in attacks:
        per_attacker[attack.attacker]["count"] += 1
        per_attacker[attack.attacker]["victims"].add(attack.victim_tx.from_address)
    for attack in legs.values():
        per_attacker[attack.attacker]["profit_usd"] += attack_profit_usd(attack)

    summary["top_attackers"] = sorted(
        (
            {
                "attacker": attacker,
                "attack_count": data["count"],
                "victim_count": len(data["victims"]),
                "profit_usd": data["profit_usd"],
            }
            for attacker, data in per_attacker.items()
        ),
        key=lambda row: row["profit_usd"],
        reverse=True,
    )[:top_n]

    return summary


def print_summary(summary: Dict[str, Any]) -> None:
    print(f"Sandwiches analyzed: {summary['total_attacks']}")
    print(
        f"Profitable: {summary['profitable_count']} | Losing: {summary['loss_count']}"
    )
    print(f"Total profit: {summary['total_profit_usd']:.2f} USD")
    print(f"Best sandwich: {summary['max_profit_usd']:.2f} USD")
    print(f"Mean confidence: {summary['mean_confidence']:.2f}")

    if summary["top_attackers"]:
        print("Top attackers by USD profit:")
        for row in summary["top_attackers"]:
            print(
                f"  {row['attacker'][:16]} | {row['profit_usd']:.2f} USD "
                f"across {row['attack_count']} attacks on {row['victim_count']} victims"
            )


def profit_rows(attacks: List[SandwichAttack]) -> List[Dict[str, Any]]:
    rows = [
        {
            "block_number": a.block_number,
            "attacker": a.attacker,
            "victim": a.victim_tx.from_address,
            "front_run": a.front_run_tx.tx_hash,
            "victim_tx": a.victim_tx.tx_hash,
            "back_run": a.back_run_tx.tx_hash,
            "profit_usd": attack_profit_usd(a),
            "confidence_score": a.confidence_score,
        }
        for a in attacks
    ]
    rows.sort(key=lambda r: r["profit_usd"], reverse=True)
    return rows
