import csv
import os
import sys

from .database import SessionLocal, create_tables
from .models import Book
from ..utils.logger import get_logger

logger = get_logger()

BOOKS_CSV_PATH = os.path.join(os.path.dirname(__file__), "raw", "books.csv")


def _clean(value):
    value = (value or "").strip()
    return value or None


def populate_books(csv_path: str = BOOKS_CSV_PATH, session_factory=None, bind=None) -> int:
    """Read books.csv and populate the books table. Returns the number of rows inserted."""
    # Ensure tables are created
    create_tables(bind=bind)

    db = (session_factory or SessionLocal)()
    try:
        if db.query(Book).count() > 0:
            logger.info("Books table is not empty. Skipping population.")
            return 0

        inserted = 0
        with open(csv_path, mode='r', encoding='utf-8') as csvfile:
            reader = csv.DictReader(csvfile)
            for row in reader:
                title = _clean(row.get('judul') or row.get('title'))
                if not title:
                    continue
                db.add(Book(
                    title=title,
                    author=_clean(row.get('pengarang') or row.get('author')),
                    publisher=_clean(row.get('penerbit') or row.get('publisher')),
                    publication_year=_clean(row.get('tahun_terbit') or row.get('publication_year')),
                    physical_description=_clean(row.get('deskripsi_fisik') or row.get('physical_description')),
                    call_number=_clean(row.get('nomor_panggil') or row.get('call_number')),
                ))
                inserted += 1

        db.commit()
        logger.info(f"Successfully populated the books table with {inserted} rows.")
        return inserted
    except Exception:
        db.rollback()
        logger.error("Error populating books table", exc_info=True)
        raise
    finally:
        db.close()

if __name__ == "__main__":
    populate_books(sys.argv[1] if len(sys.argv) > 1 else BOOKS_CSV_PATH)
