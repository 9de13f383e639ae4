import argparse
from collections import Counter

from accu_lifecycle.db.session import get_session_maker
from accu_lifecycle.models.entities import Methodology
from scripts.methodology_catalog import METHODOLOGY_CATALOG

SYNCED_FIELDS = ("name", "version", "max_units", "required_documents_count", "review_period_days", "active")


def upsert_methodologies(dry_run: bool = False, deactivate_unmanaged: bool = False) -> dict[str, int]:
    db = get_session_maker()()
    stats: Counter[str] = Counter()
    catalog_ids = {item["id"] for item in METHODOLOGY_CATALOG}

    try:
        for item in METHODOLOGY_CATALOG:
            existing = db.get(Methodology, item["id"])
            if existing:
                for field in SYNCED_FIELDS:
                    setattr(existing, field, item[field])
                stats["updated"] += 1
            else:
                db.add(Methodology(**item))
                stats["created"] += 1

        if deactivate_unmanaged:
            unmanaged = (
                db.query(Methodology)
                .filter(Methodology.id.notin_(catalog_ids), Methodology.active.is_(True))
                .all()
            )
            for methodology in unmanaged:
                methodology.active = False
                stats["deactivated_unmanaged"] += 1

        if dry_run:
            db.rollback()
            stats["dry_run"] = 1
        else:
            db.commit()

        return dict(stats)
    finally:
        db.close()


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed the ACCU methodology catalog")
    parser.add_argument("--dry-run", action="store_true", help="Validate and print changes without committing")
    parser.add_argument(
        "--deactivate-unmanaged",
        action="store_true",
        help="Deactivate methodologies that are not present in scripts/methodology_catalog.py",
    )
    args = parser.parse_args()

    stats = upsert_methodologies(dry_run=args.dry_run, deactivate_unmanaged=args.deactivate_unmanaged)
    print(f"Seed completed: {stats}")


if __name__ == "__main__":
    main()
