"""Run the inventory import from the command line.

    python run_import.py                  # every registered connector
    python run_import.py --connector NAME # a single connector

Exits with status 1 when any connector run ended in a failed job.
"""
import argparse
from dotenv import load_dotenv

load_dotenv()


def main(argv=None):
    parser = argparse.ArgumentParser(description="Import vehicles from external inventory sources.")
    parser.add_argument("--connector", help="run only this connector")
    parser.add_argument("--list", action="store_true", help="list registered connectors and exit")
    args = parser.parse_args(argv)

    from dealership.connectors.registry import get_registry
    from dealership.db import Base, engine
    from dealership.importer import run_import

    if args.list:
        for connector in get_registry().list():
            print(connector.name)
        return 0

    Base.metadata.create_all(bind=engine)
    results = run_import(args.connector)
    if not results:
        print(f"No connector named {args.connector!r}.")
        return 1

    failed = False
    for r in results:
        print(f"{r.connector}: +{r.new_count} new, ~{r.updated_count} updated, {r.error_count} errors (job {r.job_id})")
        for err in r.errors:
            print(f"  - {err}")
        failed = failed or r.job_id is None or any(e.startswith("Fatal:") for e in r.errors)
    return 1 if failed else 0


if __name__ == "__main__":
    raise SystemExit(main())
