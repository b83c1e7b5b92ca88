"""
Same-Block Sandwich Scanner

Loads swap records, flags same-block sandwich attacks by pattern and
confidence scoring, and (when pool snapshots are supplied) confirms them
by replaying each victim's pool.
"""

import json
import sys
from collections import Counter
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import config
import ingest
import profit_analysis
from loggers import setup_logging
from sandwich_detect import DetectionResult, SandwichAttack, detect_by_heuristics
from sandwich_simulate import detect_by_simulation
from tokens import load_equivalence_table

OUTPUT_FILENAME = "sandwich_attacks.json"


def print_attacks(result: DetectionResult) -> None:
    ordered = sorted(
        result.attacks, key=lambda a: (a.block_number, a.victim_tx.tx_position_in_block)
    )
    for attack in ordered:
        if isinstance(attack, SandwichAttack):
            detail = f"confidence {attack.confidence_score:.2f}"
        else:
            detail = f"victim loss {attack.victim_loss_percentage:.3f}%"
        print(
            f"  Block {attack.block_number}: {attack.front_run_tx.tx_hash} -> "
            f"{attack.victim_tx.tx_hash} -> {attack.back_run_tx.tx_hash} ({detail})"
        )


def print_skips(result: DetectionResult) -> None:
    if not result.skipped:
        return
    counts = Counter(skip.kind.value for skip in result.skipped)
    print("  Skipped:")
    for kind, count in sorted(counts.items()):
        print(f"    - {kind}: {count}")


def save_results(
    heuristic: DetectionResult,
    simulated: Optional[DetectionResult],
    output_filepath: Path,
) -> None:
    output_data: Dict[str, Any] = {
        "detection_timestamp": datetime.now().isoformat(),
        "heuristic": {
            "total_attacks": len(heuristic.attacks),
            "summary": profit_analysis.summarize_attacks(heuristic.attacks),
            "profit": profit_analysis.profit_rows(heuristic.attacks),
            "attacks": [asdict(a) for a in heuristic.attacks],
            "skipped": [asdict(s) for s in heuristic.skipped],
        },
    }
    if simulated is not None:
        output_data["simulation"] = {
            "total_attacks": len(simulated.attacks),
            "attacks": [asdict(a) for a in simulated.attacks],
            "skipped": [asdict(s) for s in simulated.skipped],
        }

    output_filepath.parent.mkdir(parents=True, exist_ok=True)
    with output_filepath.open("w", encoding="utf-8") as f:
        json.dump(output_data, f, indent=2, default=str)

    print(f"\nResults saved to: {output_filepath.absolute()}")


def run_detection(
    transactions_file: str,
    pools_file: Optional[str] = None,
    output_file: Optional[Path] = None,
) -> Dict[str, Optional[DetectionResult]]:
    print("=" * 70)
    print("SAME-BLOCK SANDWICH DETECTION")
    print("=" * 70)

    print(f"\nLoading transactions from: {transactions_file}")
    transactions: List = ingest.load_transactions(transactions_file)
    print(f"Loaded {len(transactions)} transactions")

    equivalence = load_equivalence_table(config.TOKEN_EQUIVALENCE_FILE)

    heuristic = detect_by_heuristics(transactions, equivalence=equivalence)
    print(f"\nHeuristic detection: {len(heuristic.attacks)} sandwich attacks")
    print_attacks(heuristic)
    print_skips(heuristic)

    simulated = None
    if pools_file:
        pools = ingest.load_pools(pools_file)
        print(f"\nLoaded {len(pools)} pool snapshots from: {pools_file}")
        simulated = detect_by_simulation(pools, transactions, equivalence=equivalence)
        print(f"Simulation detection: {len(simulated.attacks)} sandwich attacks")
        print_attacks(simulated)
        print_skips(simulated)

    print("\n" + "=" * 70)
    print("PROFIT ANALYSIS")
    print("=" * 70)
    profit_analysis.print_summary(profit_analysis.summarize_attacks(heuristic.attacks))

    save_results(heuristic, simulated, output_file or config.RESULTS_DIR / OUTPUT_FILENAME)

    print("\n" + "=" * 70)
    print("Detection complete")
    print("=" * 70 + "\n")

    return {"heuristic": heuristic, "simulation": simulated}


def main(argv: List[str]) -> int:
    if len(argv) < 2:
        print("usage: python main.py <transactions.csv|json> [pools.json]")
        return 2

    setup_logging(config.LOG_LEVEL, config.LOG_FILE)

    transactions_file = argv[1]
    pools_file = argv[2] if len(argv) > 2 else None

    try:
        run_detection(transactions_file, pools_file)
    except (FileNotFoundError, ingest.IngestionError) as error:
        print(f"\nERROR: {error}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
