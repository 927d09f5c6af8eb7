# import_products.py
import argparse
import csv
from pathlib import Path

from config import Config
from formatting import to_number
from models import Base, make_engine, make_session_factory, Product

CSV_FILE = "products.csv"

HEADERS = ["Reference", "Name", "Price", "Stock", "Description", "Category"]


def import_products(session_factory, csv_path: Path) -> tuple[int, int]:
    """
    Load catalog rows from a CSV laid out like HEADERS.
    Rows without a name, or whose reference already exists, are skipped.
    Returns (created, skipped).
    """
    created = 0
    skipped = 0

    with open(csv_path, "r", newline="", encoding="utf-8") as f:
        reader = csv.reader(f)
        next(reader, None)  # header

        with session_factory() as s:
            seen = {r for (r,) in s.query(Product.reference).filter(Product.reference.isnot(None))}
            for row in reader:
                row = (row + [""] * len(HEADERS))[:len(HEADERS)]
                reference = row[0].strip()
                name = row[1].strip()
                if not name or (reference and reference in seen):
                    skipped += 1
                    continue

                s.add(
                    Product(
                        reference=reference or None,
                        name=name,
                        price=to_number(row[2]),
                        stock=int(to_number(row[3])),
                        description=row[4].strip(),
                        category=row[5].strip(),
                    )
                )
                if reference:
                    seen.add(reference)
                created += 1
            s.commit()

    return created, skipped


def main(argv=None):
    parser = argparse.ArgumentParser(description="Import products into the catalog.")
    parser.add_argument("csv", nargs="?", default=CSV_FILE)
    args = parser.parse_args(argv)

    # Ensure instance/ exists for SQLite local dev
    if Config.SQLALCHEMY_DATABASE_URI.startswith("sqlite"):
        Path("instance").mkdir(parents=True, exist_ok=True)

    engine = make_engine(Config.SQLALCHEMY_DATABASE_URI, echo=Config.SQLALCHEMY_ECHO)
    Base.metadata.create_all(engine)
    SessionLocal = make_session_factory(engine)

    csv_path = Path(args.csv)
    if not csv_path.exists():
        raise FileNotFoundError(f"Could not find {csv_path} in: {Path.cwd()}")

    created, skipped = import_products(SessionLocal, csv_path)
    print("Import complete.")
    print(f"Created: {created}")
    print(f"Skipped: {skipped} (missing name or duplicate reference)")


if __name__ == "__main__":
    main()
