"""Fulfillment management CLI.

Usage:
    python src/manage.py setup-db         # Create all tables
    python src/manage.py drop-db          # Drop all tables
    python src/manage.py sweep-waybills   # Retry waybills for synced orders without one
"""

import argparse
import sys


def _domain():
    from fulfillment.domain import fulfillment

    fulfillment.init()
    return fulfillment


def setup_database():
    from fulfillment.utils.db import setup_db

    print("Creating fulfillment database schema...")
    setup_db(_domain())
    print("Done.")


def drop_database():
    from fulfillment.utils.db import drop_db

    print("Dropping fulfillment database schema...")
    drop_db(_domain())
    print("Done.")


def sweep_waybills(limit: int):
    from fulfillment.sync.orchestrator import FulfillmentOrchestrator

    domain = _domain()
    with domain.domain_context():
        result = FulfillmentOrchestrator().retry_missing_waybills(limit=limit)
    print(f"Waybill sweep: {result['assigned']} of {result['attempted']} order(s) assigned.")


def main():
    parser = argparse.ArgumentParser(description="Storefront fulfillment management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    sweep_parser = subparsers.add_parser("sweep-waybills", help="Retry waybill assignment for pending orders")
    sweep_parser.add_argument("--limit", type=int, default=50, help="Maximum orders to retry (default: 50)")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    elif args.command == "sweep-waybills":
        sweep_waybills(args.limit)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
