"""
Exports the built-in seed catalog to JSON files consumed by seed_mongo.py.

Writes books.json (with rating/reviewCount derived from the reviews),
reviews.json and an empty cart.json.

Usage:
    python scripts/export_data.py --out data
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

from amana_bookstore.db.seed_data import default_books, default_reviews

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


def write_json(path: Path, documents: List[Any]) -> None:
    path.write_text(json.dumps(documents, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    logger.info(f"Wrote {len(documents)} documents to {path}")


def export_data(out_dir: Path) -> None:
    out_dir.mkdir(parents=True, exist_ok=True)
    write_json(out_dir / "books.json", [book.model_dump(by_alias=True) for book in default_books()])
    write_json(out_dir / "reviews.json", [review.model_dump(by_alias=True) for review in default_reviews()])
    write_json(out_dir / "cart.json", [])


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Export seed data to JSON.")
    parser.add_argument("--out", type=Path, default=Path("data"))
    args = parser.parse_args(argv)
    export_data(args.out)
    return 0


if __name__ == "__main__":
    sys.exit(main())
