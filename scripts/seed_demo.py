#!/usr/bin/env python3
"""
PilotGB Control Tower — Demo Seed.

Loads five team members and three initiatives parked mid-lifecycle
(ENRICHMENT, VALIDATION, VISUALIZATION) with consistent checklists,
approvals, stage history, scopes of work, assets and RAID entries.

Usage:
    python scripts/seed_demo.py              # wipe lifecycle tables + seed
    python scripts/seed_demo.py --append     # keep existing rows
    flask seed-demo                          # same as the default run
"""

import argparse
import sys

sys.path.insert(0, ".")

from app import create_app
from app.models import db
from app.services.seed_service import seed_demo_data


def main():
    parser = argparse.ArgumentParser(description="Seed PilotGB demo data")
    parser.add_argument("--append", action="store_true",
                        help="Don't clear existing data")
    args = parser.parse_args()

    app = create_app()
    print(f"  🎯 DB: {app.config['SQLALCHEMY_DATABASE_URI']}\n")

    with app.app_context():
        db.create_all()
        counts = seed_demo_data(clear=not args.append)
        db.session.commit()

    print(f"  ✅ Seeded {counts['team_members']} team members, "
          f"{counts['initiatives']} initiatives")


if __name__ == "__main__":
    main()
