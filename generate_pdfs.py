# generate_pdfs.py
import argparse
import logging
from pathlib import Path

from sqlalchemy.orm import selectinload

from company_profile import SqlSettingsStorage
from config import Config
from documents import InvoiceSource, OrderSource
from models import Base, make_engine, make_session_factory, Invoice, Order
from pdf_service import generate_invoice_pdf
from references import SqlCatalog


def main(argv=None):
    parser = argparse.ArgumentParser(description="Generate invoice PDFs into EXPORTS_DIR.")
    parser.add_argument("--year", type=str, default="", help="Only invoices numbered for a given year (YYYY).")
    parser.add_argument("--invoice", type=int, action="append", default=[], help="Invoice id (repeatable).")
    parser.add_argument("--order", type=int, action="append", default=[], help="Render an order directly (repeatable).")
    parser.add_argument("--out", type=str, default="", help="Output folder (defaults to EXPORTS_DIR).")
    args = parser.parse_args(argv)

    logging.basicConfig(level=Config.LOG_LEVEL)

    out_dir = Path(args.out or Config.EXPORTS_DIR)
    out_dir.mkdir(parents=True, exist_ok=True)

    engine = make_engine(Config.SQLALCHEMY_DATABASE_URI, echo=Config.SQLALCHEMY_ECHO)
    Base.metadata.create_all(engine)
    SessionLocal = make_session_factory(engine)
    catalog = SqlCatalog(SessionLocal)
    storage = SqlSettingsStorage(SessionLocal)

    target_year = (args.year or "").strip()
    if target_year and not (target_year.isdigit() and len(target_year) == 4):
        raise SystemExit("Year must be 4 digits, e.g. --year 2025")

    with SessionLocal() as s:
        jobs = []
        if args.order:
            orders = (
                s.query(Order)
                .options(selectinload(Order.items), selectinload(Order.client))
                .filter(Order.id.in_(args.order))
                .order_by(Order.id.asc())
                .all()
            )
            jobs.extend((o.order_number, OrderSource(o.client, o)) for o in orders)

        if args.invoice or not args.order:
            q = s.query(Invoice).options(selectinload(Invoice.items)).order_by(Invoice.created_at.asc())
            if args.invoice:
                q = q.filter(Invoice.id.in_(args.invoice))
            if target_year:
                q = q.filter(Invoice.invoice_number.startswith(f"INV-{target_year}"))
            jobs.extend((inv.invoice_number, InvoiceSource(inv)) for inv in q.all())

        if not jobs:
            print("No invoices found for the given filter.")
            return 0

        total = len(jobs)
        generated = 0
        failed = 0

        for i, (label, source) in enumerate(jobs, start=1):
            try:
                path = generate_invoice_pdf(source, out_dir, catalog=catalog, storage=storage)
                generated += 1
                print(f"[{i}/{total}] DONE  {label} -> {path}")
            except Exception as e:
                failed += 1
                print(f"[{i}/{total}] FAIL  {label}  ({e})")

        print("\nPDF generation complete.")
        print(f"Generated: {generated}")
        print(f"Failed:    {failed}")
        print(f"Exports:   {out_dir}")
    return 1 if failed else 0


if __name__ == "__main__":
    raise SystemExit(main())
