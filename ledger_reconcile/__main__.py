import argparse
import logging

from .runner import run_reconciliation


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="ledger-reconcile",
        description="Reconcile party invoices and payments from a workbook into a JSON report.",
    )
    parser.add_argument("workbook", help="workbook with Sales, Purchases and Payments sheets")
    parser.add_argument("-o", "--output", help="JSON report path")
    parser.add_argument("--party", help="only report on this party id")
    parser.add_argument("--start", help="first ledger date (inclusive)")
    parser.add_argument("--end", help="last ledger date (inclusive)")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    report = run_reconciliation(
        args.workbook,
        output_path=args.output,
        party_id=args.party,
        start=args.start,
        end=args.end,
    )
    print(report)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
