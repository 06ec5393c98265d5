import logging
import os
import sqlite3
import tempfile
from contextlib import contextmanager
from typing import Iterator

from dotenv import load_dotenv

from config import settings
from utils.validators import TextValidator

# .env'den ortam değişkenlerinin okunmadan önce yüklendiğinden emin olun.
load_dotenv()

logger = logging.getLogger(__name__)

# Varsayılan veritabanı dosyası.
# Öncelik:
# 1) LIBRARY_DB_FILE (açık geçersiz kılma)
# 2) LIBRARY_DATA_FILE (eski ortam adı)
# 3) İşlem başına geçici dosya
DATABASE_FILE = (
    os.environ.get("LIBRARY_DB_FILE")
    or os.environ.get("LIBRARY_DATA_FILE")
    or os.path.join(tempfile.gettempdir(), f"library_{os.getpid()}.db")
)


def get_db_connection() -> sqlite3.Connection:
    """SQLite veritabanına yeni bir bağlantı kurar."""
    conn = sqlite3.connect(DATABASE_FILE, timeout=settings.database_timeout, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    # Türkçe duyarlı arama için: tr_lower(sütun)
    conn.create_function("tr_lower", 1, TextValidator.tr_lower, deterministic=True)
    # SQLite yabancı anahtarları bağlantı başına etkinleştirir
    conn.execute("PRAGMA foreign_keys = ON;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    return conn


@contextmanager
def transaction() -> Iterator[sqlite3.Connection]:
    """Yazma kilidi alınmış tek bir işlem içinde bağlantı verir.

    BEGIN IMMEDIATE, kontrol-ve-güncelle dizilerinin (ör. kopya sayısı kontrolü
    ve azaltma) eşzamanlı isteklerle iç içe geçmesini engeller.
    Hata durumunda işlem geri alınır ve istisna yeniden fırlatılır.
    """
    conn = get_db_connection()
    try:
        conn.execute("BEGIN IMMEDIATE")
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def create_tables() -> None:
    """Veritabanında mevcut değilse gerekli tabloları oluşturur."""
    conn = get_db_connection()
    try:
        # Eşzamanlı okuyucular için WAL modunu etkinleştir
        conn.execute("PRAGMA journal_mode=WAL;")
        cursor = conn.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS books (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                title TEXT NOT NULL,
                author TEXT NOT NULL,
                isbn TEXT UNIQUE,
                genre TEXT NOT NULL,
                publish_year INTEGER NOT NULL,
                shelf_number TEXT,
                available_copies INTEGER NOT NULL DEFAULT 1,
                total_copies INTEGER NOT NULL DEFAULT 1,
                page_count INTEGER,
                created_at TIMESTAMP NOT NULL,
                CHECK (available_copies >= 0 AND available_copies <= total_copies)
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS users (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                username TEXT NOT NULL UNIQUE,
                email TEXT UNIQUE,
                password TEXT,
                is_admin BOOLEAN NOT NULL DEFAULT 0,
                membership_date TIMESTAMP NOT NULL,
                admin_rating INTEGER CHECK (admin_rating IS NULL OR (admin_rating >= 1 AND admin_rating <= 5)),
                admin_notes TEXT
            )
        """)

        # Ödünç kayıtları; kitap ve üyeye basamaklı silme olmadan bağlıdır
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS borrowings (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                book_id INTEGER NOT NULL REFERENCES books(id),
                user_id INTEGER NOT NULL REFERENCES users(id),
                borrow_date TIMESTAMP NOT NULL,
                due_date DATE NOT NULL,
                return_date TIMESTAMP,
                status TEXT NOT NULL DEFAULT 'borrowed' CHECK (status IN ('borrowed', 'returned', 'overdue')),
                extension_requested BOOLEAN DEFAULT 0,
                notes TEXT
            )
        """)

        # Sütunların var olup olmadığını kontrol edin, yoksa ekleyin (geçiş için)
        cursor.execute("PRAGMA table_info(users)")
        columns = [column[1] for column in cursor.fetchall()]
        if 'email_verified' not in columns:
            cursor.execute("ALTER TABLE users ADD COLUMN email_verified BOOLEAN NOT NULL DEFAULT 0")
        if 'email_verification_token' not in columns:
            cursor.execute("ALTER TABLE users ADD COLUMN email_verification_token TEXT")
        if 'email_verification_expires' not in columns:
            cursor.execute("ALTER TABLE users ADD COLUMN email_verification_expires TIMESTAMP")

        cursor.execute("PRAGMA table_info(books)")
        book_columns = [column[1] for column in cursor.fetchall()]
        if 'page_count' not in book_columns:
            cursor.execute("ALTER TABLE books ADD COLUMN page_count INTEGER")

        # Arama ve istatistik sorguları için dizinler
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_books_title ON books(title)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_books_author ON books(author)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_books_created_at ON books(created_at)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_users_name ON users(name)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_users_membership_date ON users(membership_date)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_users_verification_token ON users(email_verification_token)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_borrowings_book_id ON borrowings(book_id)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_borrowings_user_id ON borrowings(user_id)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_borrowings_status_due ON borrowings(status, due_date)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_borrowings_borrow_date ON borrowings(borrow_date)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_borrowings_return_date ON borrowings(return_date)")

        conn.commit()
    finally:
        conn.close()


def initialize_database() -> None:
    """Veritabanını başlatır ve gerekirse tabloları oluşturur."""
    create_tables()
    logger.debug("Veritabanı hazır: %s", DATABASE_FILE)
