"""Reset the sweets table with sample data.

Usage: python -m api.app.seed [sweets.csv]
"""
import logging
import sys
from typing import Optional

from sqlalchemy import delete
from sqlalchemy.orm import Session

from . import database, models
from .importer import read_sweets_csv
from .logging_config import setup_logging

logger = logging.getLogger(__name__)

SAMPLE_SWEETS = [
    {"name": "Chocolate Fudge", "category": "Chocolate", "price": 2.5, "quantity": 50},
    {"name": "Vanilla Caramel", "category": "Caramel", "price": 2.25, "quantity": 40},
    {"name": "Strawberry Delight", "category": "Fruit", "price": 1.95, "quantity": 35},
    {"name": "Mint Chocolate", "category": "Chocolate", "price": 2.75, "quantity": 30},
    {"name": "Honey Almond", "category": "Nuts", "price": 3.2, "quantity": 25},
]


def seed(db: Session, csv_path: Optional[str] = None) -> int:
    """Delete every sweet and insert the sample set (or the CSV rows)."""
    if csv_path:
        rows, rejected = read_sweets_csv(csv_path)
        sweets = [row.model_dump() for row in rows]
        if rejected:
            logger.warning("Skipped %s invalid rows from %s", rejected, csv_path)
    else:
        sweets = SAMPLE_SWEETS

    db.execute(delete(models.Sweet))
    db.add_all([models.Sweet(**data) for data in sweets])
    db.commit()
    logger.info("Seeded %s sweets", len(sweets))
    return len(sweets)


def main(argv: Optional[list[str]] = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    setup_logging()
    engine = database.make_engine()
    database.init_db(engine)
    db = database.make_session_factory(engine)()
    try:
        seed(db, args[0] if args else None)
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
