"""
Seed one organization with a generated demo dataset from CLI.
"""

from __future__ import annotations

import argparse
import json
import logging
import uuid
from dataclasses import asdict

from app.services.demo_seed_service import seed_demo_data
from db.session import SessionLocal


def main() -> int:
    parser = argparse.ArgumentParser(description="Replace an organization's data with demo data.")
    parser.add_argument(
        "--organization-id",
        dest="organization_id",
        type=uuid.UUID,
        default=None,
        help="Target organization UUID. A new one is generated when omitted.",
    )
    parser.add_argument(
        "--months",
        dest="months",
        type=int,
        default=12,
        help="How far back customer signups may reach.",
    )
    parser.add_argument(
        "--seed",
        dest="seed",
        type=int,
        default=None,
        help="Random seed for a reproducible dataset.",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    organization_id = args.organization_id or uuid.uuid4()
    with SessionLocal() as db:
        summary = seed_demo_data(db, organization_id, months=args.months, seed=args.seed)

    print(json.dumps({"organization_id": str(organization_id), **asdict(summary)}, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
