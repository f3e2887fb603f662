from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Allow running as a script (sys.path[0] becomes ./scripts). Add repo root.
_REPO_ROOT = Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from councildocs.gold import evaluate_gold_suite, load_gold_file


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="councildocs gold-set regression checker")
    p.add_argument("--gold", type=str, default="gold/gold.yaml", help="Path to gold suite YAML (default: gold/gold.yaml)")
    p.add_argument(
        "--case",
        dest="cases",
        action="append",
        default=None,
        help="Run only this case id (repeatable)",
    )
    p.add_argument(
        "--config",
        type=str,
        default=None,
        help="Engine config YAML to run the cases with, instead of the suite's own config:",
    )
    p.add_argument("--list", action="store_true", help="List case ids and exit")
    args = p.parse_args(argv)

    gold_path = Path(args.gold).resolve()

    if args.list:
        for case in load_gold_file(gold_path).get("cases") or []:
            if isinstance(case, dict):
                print(case.get("id"))
        return 0

    config_path = Path(args.config).resolve() if args.config else None
    try:
        failures = evaluate_gold_suite(gold_path, case_ids=args.cases, config_path=config_path)
    except ValueError as e:
        print(f"Gold check could not run: {e}", file=sys.stderr)
        return 2

    if failures:
        print(f"Gold check failed: {len(failures)} failure(s)")
        for f in failures:
            print(f"- {f.case_id}: {f.message}")
        return 1

    selected = f" ({', '.join(args.cases)})" if args.cases else ""
    print(f"Gold check passed{selected}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
