import logging
import os
import sqlite3
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple

import database
from book import Book
from borrowing import (
    ACTIVE_STATUSES,
    STATUS_BORROWED,
    STATUS_OVERDUE,
    STATUS_RETURNED,
    Borrowing,
    to_date,
    to_datetime,
)
from database import get_db_connection, initialize_database, transaction
from member import Member
from pagination import PageParams
from utils.validators import IdentityValidator, ISBNValidator, TextValidator

logger = logging.getLogger(__name__)


class LibraryError(Exception):
    """Kullanıcıya gösterilebilir alan hatalarının temel sınıfı."""

    reason = "library_error"
    status_code = 400

    def __init__(self, message: str, reason: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        if reason:
            self.reason = reason


class BookNotFoundError(LibraryError):
    reason = "book_not_found"


class MemberNotFoundError(LibraryError):
    reason = "user_not_found"


class NoAvailableCopiesError(LibraryError):
    reason = "no_available_copies"


class InvalidBorrowingError(LibraryError):
    reason = "invalid_borrowing"


class InvalidStatusTransitionError(LibraryError):
    reason = "invalid_status_transition"


class DuplicateRecordError(LibraryError):
    reason = "duplicate_record"


class RecordInUseError(LibraryError):
    reason = "record_in_use"


class InvalidRecordError(LibraryError):
    reason = "invalid_record"


BOOK_COLUMNS = """
    id, title, author, isbn, genre, publish_year, shelf_number,
    available_copies, total_copies, page_count, created_at
"""

MEMBER_COLUMNS = """
    id, name, username, email, password, is_admin, membership_date,
    admin_rating, admin_notes, email_verified, email_verification_token,
    email_verification_expires
"""

# Ödünç kayıtları her zaman kitap ve üye ayrıntılarıyla birlikte okunur
BORROWING_SELECT = """
    SELECT br.id, br.book_id, br.user_id, br.borrow_date, br.due_date, br.return_date,
           br.status, br.extension_requested, br.notes,
           b.title AS b_title, b.author AS b_author, b.isbn AS b_isbn, b.genre AS b_genre,
           b.publish_year AS b_publish_year, b.shelf_number AS b_shelf_number,
           b.available_copies AS b_available_copies, b.total_copies AS b_total_copies,
           b.page_count AS b_page_count, b.created_at AS b_created_at,
           u.name AS u_name, u.email AS u_email
    FROM borrowings br
    JOIN books b ON b.id = br.book_id
    JOIN users u ON u.id = br.user_id
"""

BOOK_UPDATABLE = ("title", "author", "isbn", "genre", "publish_year", "shelf_number",
                  "available_copies", "total_copies", "page_count")
MEMBER_UPDATABLE = ("name", "username", "email", "password", "is_admin", "membership_date",
                    "admin_rating", "admin_notes", "email_verified")
BOOK_NULLABLE = ("isbn", "shelf_number", "page_count")
MEMBER_NULLABLE = ("email", "password", "admin_rating", "admin_notes")


def _now_iso() -> str:
    return datetime.now().isoformat(timespec="seconds")


def _as_timestamp(value: Any) -> str:
    dt = to_datetime(value)
    # Saat dilimli girdiler yerel saate çevrilir; tabloda yalnızca yerel zaman tutulur
    if dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return dt.isoformat(timespec="seconds")


def _row_to_borrowing(row: sqlite3.Row) -> Borrowing:
    book = Book(
        id=row["book_id"],
        title=row["b_title"],
        author=row["b_author"],
        isbn=row["b_isbn"],
        genre=row["b_genre"],
        publish_year=row["b_publish_year"],
        shelf_number=row["b_shelf_number"],
        available_copies=row["b_available_copies"],
        total_copies=row["b_total_copies"],
        page_count=row["b_page_count"],
        created_at=row["b_created_at"],
    )
    return Borrowing(
        id=row["id"],
        book_id=row["book_id"],
        user_id=row["user_id"],
        borrow_date=row["borrow_date"],
        due_date=row["due_date"],
        return_date=row["return_date"],
        status=row["status"],
        extension_requested=bool(row["extension_requested"]),
        notes=row["notes"],
        book=book.to_dict(),
        user={"id": row["user_id"], "name": row["u_name"], "email": row["u_email"]},
    )


class Library:
    """Kitap, üye ve ödünç kayıtlarını ve ödünç yaşam döngüsünü yönetir."""

    def __init__(self, db_file: Optional[str] = None) -> None:
        # Testlerin veritabanı dosyasını başlatmadan önce geçersiz kılmasına izin ver
        db_file = db_file or os.environ.get("LIBRARY_DB_FILE")
        if db_file:
            database.DATABASE_FILE = db_file
        # Şemanın güncel olduğundan emin olmak için her başlangıçta geçişleri çalıştır
        initialize_database()

    # ------------------------- Kitaplar ------------------------- #
    def add_book(self, book: Book) -> Book:
        """Yeni bir kitap ekler. ISBN benzersizliği aynı işlem içinde denetlenir."""
        book.isbn = ISBNValidator.normalize_isbn(book.isbn)
        self._validate_copies(book.available_copies, book.total_copies)
        book.created_at = book.created_at or _now_iso()

        try:
            with transaction() as conn:
                if book.isbn and self._isbn_taken(conn, book.isbn):
                    raise DuplicateRecordError(
                        "Bu ISBN ile zaten bir kitap mevcut. Lütfen farklı bir ISBN girin veya ISBN alanını boş bırakın.",
                        reason="duplicate_isbn",
                    )
                cursor = conn.execute("""
                    INSERT INTO books (
                        title, author, isbn, genre, publish_year, shelf_number,
                        available_copies, total_copies, page_count, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """, (
                    book.title, book.author, book.isbn, book.genre, book.publish_year,
                    book.shelf_number, book.available_copies, book.total_copies,
                    book.page_count, book.created_at,
                ))
                book.id = cursor.lastrowid
        except sqlite3.IntegrityError as e:
            raise DuplicateRecordError("Kitap kaydı benzersizlik kısıtını ihlal ediyor.") from e
        logger.info("Kitap eklendi: #%s %s", book.id, book.title)
        return book

    def get_book(self, book_id: int) -> Optional[Book]:
        conn = get_db_connection()
        try:
            row = conn.execute(f"SELECT {BOOK_COLUMNS} FROM books WHERE id = ?", (book_id,)).fetchone()
            return Book.from_dict(dict(row)) if row else None
        finally:
            conn.close()

    def find_book_by_isbn(self, isbn: str) -> Optional[Book]:
        norm = ISBNValidator.normalize_isbn(isbn)
        if not norm:
            return None
        conn = get_db_connection()
        try:
            row = conn.execute(f"SELECT {BOOK_COLUMNS} FROM books WHERE isbn = ?", (norm,)).fetchone()
            return Book.from_dict(dict(row)) if row else None
        finally:
            conn.close()

    def list_books(self, params: Optional[PageParams] = None) -> Tuple[List[Book], int]:
        """Kitapları başlığa göre listele; params verilirse veritabanında sayfalar."""
        return self._query_books("", (), params)

    def search_books(self, query: str, params: Optional[PageParams] = None) -> Tuple[List[Book], int]:
        """Başlık, yazar, ISBN veya türe göre kitap arayın."""
        q = TextValidator.tr_lower(query)
        where = ("WHERE instr(tr_lower(title), ?) > 0 OR instr(tr_lower(author), ?) > 0 "
                 "OR instr(tr_lower(isbn), ?) > 0 OR instr(tr_lower(genre), ?) > 0")
        return self._query_books(where, (q, q, q, q), params)

    def _query_books(self, where: str, args: tuple, params: Optional[PageParams]) -> Tuple[List[Book], int]:
        conn = get_db_connection()
        try:
            total = conn.execute(f"SELECT COUNT(*) FROM books {where}", args).fetchone()[0]
            sql = f"SELECT {BOOK_COLUMNS} FROM books {where} ORDER BY title COLLATE NOCASE, id"
            if params:
                sql += " LIMIT ? OFFSET ?"
                args = args + (params.limit, params.offset)
            rows = conn.execute(sql, args).fetchall()
            return [Book.from_dict(dict(row)) for row in rows], total
        finally:
            conn.close()

    def get_book_with_borrowings(self, book_id: int) -> Optional[Tuple[Book, List[Borrowing]]]:
        book = self.get_book(book_id)
        if not book:
            return None
        borrowings, _ = self.list_book_borrowings(book_id)
        return book, borrowings

    def update_book(self, book_id: int, changes: Dict[str, Any]) -> Optional[Book]:
        """Bir kitabı kısmen güncelleyin. Bulunamazsa None döndürür.

        Mevcut kopya, aynı işlem içinde sayılan ödünçteki kopyalardan türetilir
        (toplam eksi ödünçteki); bununla çelişen bir değer reddedilir.
        """
        update_fields = {k: v for k, v in changes.items() if k in BOOK_UPDATABLE
                         and (v is not None or k in BOOK_NULLABLE)}
        if "isbn" in update_fields:
            update_fields["isbn"] = ISBNValidator.normalize_isbn(update_fields["isbn"])

        try:
            with transaction() as conn:
                row = conn.execute(f"SELECT {BOOK_COLUMNS} FROM books WHERE id = ?", (book_id,)).fetchone()
                if not row:
                    return None
                current = Book.from_dict(dict(row))

                total = update_fields.get("total_copies", current.total_copies)
                on_loan = conn.execute(
                    "SELECT COUNT(*) FROM borrowings WHERE book_id = ? AND status IN (?, ?)",
                    (book_id,) + ACTIVE_STATUSES,
                ).fetchone()[0]
                available = update_fields.get("available_copies", total - on_loan)
                self._validate_copies(available, total, on_loan)
                if "total_copies" in update_fields:
                    update_fields["available_copies"] = available

                if update_fields.get("isbn") and self._isbn_taken(conn, update_fields["isbn"], exclude_id=book_id):
                    raise DuplicateRecordError(
                        "Bu ISBN ile zaten bir kitap mevcut. Lütfen farklı bir ISBN girin.",
                        reason="duplicate_isbn",
                    )
                if update_fields:
                    set_clause = ", ".join(f"{field} = ?" for field in update_fields)
                    conn.execute(f"UPDATE books SET {set_clause} WHERE id = ?",
                                 list(update_fields.values()) + [book_id])
        except sqlite3.IntegrityError as e:
            raise DuplicateRecordError("Kitap kaydı benzersizlik kısıtını ihlal ediyor.") from e

        return self.get_book(book_id)

    def remove_book(self, book_id: int) -> bool:
        """Ödünç kaydı olmayan bir kitabı sil. Bulunamazsa False döndürür."""
        with transaction() as conn:
            if not conn.execute("SELECT 1 FROM books WHERE id = ?", (book_id,)).fetchone():
                return False
            self._ensure_unreferenced(conn, "book_id", book_id,
                                      "Bu kitap şu anda ödünç alınmış durumda, silinemez.",
                                      "Bu kitabın ödünç geçmişi var, silinemez.")
            conn.execute("DELETE FROM books WHERE id = ?", (book_id,))
        logger.info("Kitap silindi: #%s", book_id)
        return True

    # ------------------------- Üyeler ------------------------- #
    def add_member(self, member: Member) -> Member:
        """Yeni üye ekler. Parola önceden hash'lenmiş olmalıdır."""
        self._validate_admin(member.is_admin, member.email, member.password)
        member.membership_date = _as_timestamp(member.membership_date) if member.membership_date else _now_iso()

        try:
            with transaction() as conn:
                if member.email and self._email_taken(conn, member.email):
                    raise DuplicateRecordError(
                        "Bu e-posta adresi zaten kullanılıyor. Lütfen farklı bir e-posta adresi girin.",
                        reason="duplicate_email",
                    )
                if member.username:
                    if self._username_taken(conn, member.username):
                        raise DuplicateRecordError("Bu kullanıcı adı zaten alınmış.", reason="duplicate_username")
                else:
                    member.username = self._unique_username(conn, member.name, member.email)

                cursor = conn.execute("""
                    INSERT INTO users (
                        name, username, email, password, is_admin, membership_date,
                        admin_rating, admin_notes, email_verified,
                        email_verification_token, email_verification_expires
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """, (
                    member.name, member.username, member.email, member.password,
                    int(member.is_admin), member.membership_date, member.admin_rating,
                    member.admin_notes, int(member.email_verified),
                    member.email_verification_token, member.email_verification_expires,
                ))
                member.id = cursor.lastrowid
        except sqlite3.IntegrityError as e:
            raise DuplicateRecordError("Üye kaydı benzersizlik kısıtını ihlal ediyor.") from e
        logger.info("Üye eklendi: #%s %s", member.id, member.username)
        return member

    def get_member(self, member_id: int) -> Optional[Member]:
        return self._fetch_member("id = ?", (member_id,))

    def get_member_by_email(self, email: str) -> Optional[Member]:
        norm = IdentityValidator.normalize_email(email)
        if not norm:
            return None
        return self._fetch_member("email = ?", (norm,))

    def get_member_by_username(self, username: str) -> Optional[Member]:
        if not username or not username.strip():
            return None
        return self._fetch_member("username = ? COLLATE NOCASE", (username.strip(),))

    def find_member_by_identifier(self, identifier: str) -> Optional[Member]:
        """Kullanıcı adı veya e-posta ile üye bul ("@" içeriyorsa e-posta)."""
        if IdentityValidator.is_email(identifier):
            return self.get_member_by_email(identifier)
        return self.get_member_by_username(identifier)

    def find_member_by_verification_token(self, token: str) -> Optional[Member]:
        return self._fetch_member("email_verification_token = ?", (token,))

    def _fetch_member(self, where: str, args: tuple) -> Optional[Member]:
        conn = get_db_connection()
        try:
            row = conn.execute(f"SELECT {MEMBER_COLUMNS} FROM users WHERE {where}", args).fetchone()
            return Member.from_dict(dict(row)) if row else None
        finally:
            conn.close()

    def list_members(self, params: Optional[PageParams] = None) -> Tuple[List[Member], int]:
        return self._query_members("", (), params)

    def search_members(self, query: str, params: Optional[PageParams] = None) -> Tuple[List[Member], int]:
        """İsim, kullanıcı adı veya e-postaya göre üye arayın."""
        q = TextValidator.tr_lower(query)
        where = "WHERE instr(tr_lower(name), ?) > 0 OR instr(tr_lower(username), ?) > 0 OR instr(tr_lower(email), ?) > 0"
        return self._query_members(where, (q, q, q), params)

    def _query_members(self, where: str, args: tuple, params: Optional[PageParams]) -> Tuple[List[Member], int]:
        conn = get_db_connection()
        try:
            total = conn.execute(f"SELECT COUNT(*) FROM users {where}", args).fetchone()[0]
            sql = f"SELECT {MEMBER_COLUMNS} FROM users {where} ORDER BY name COLLATE NOCASE, id"
            if params:
                sql += " LIMIT ? OFFSET ?"
                args = args + (params.limit, params.offset)
            rows = conn.execute(sql, args).fetchall()
            return [Member.from_dict(dict(row)) for row in rows], total
        finally:
            conn.close()

    def update_member(self, member_id: int, changes: Dict[str, Any]) -> Optional[Member]:
        """Bir üyeyi kısmen güncelleyin. Bulunamazsa None döndürür."""
        update_fields = {k: v for k, v in changes.items() if k in MEMBER_UPDATABLE
                         and (v is not None or k in MEMBER_NULLABLE)}
        if "email" in update_fields:
            update_fields["email"] = IdentityValidator.normalize_email(update_fields["email"])
        if update_fields.get("membership_date"):
            update_fields["membership_date"] = _as_timestamp(update_fields["membership_date"])
        for flag in ("is_admin", "email_verified"):
            if flag in update_fields:
                update_fields[flag] = int(bool(update_fields[flag]))

        try:
            with transaction() as conn:
                row = conn.execute(f"SELECT {MEMBER_COLUMNS} FROM users WHERE id = ?", (member_id,)).fetchone()
                if not row:
                    return None
                current = Member.from_dict(dict(row))

                will_be_admin = bool(update_fields.get("is_admin", current.is_admin))
                email = update_fields["email"] if "email" in update_fields else current.email
                password = update_fields["password"] if "password" in update_fields else current.password
                self._validate_admin(will_be_admin, email, password)

                if update_fields.get("email") and self._email_taken(conn, update_fields["email"], exclude_id=member_id):
                    raise DuplicateRecordError(
                        "Bu e-posta adresi zaten kullanılıyor. Lütfen farklı bir e-posta adresi girin.",
                        reason="duplicate_email",
                    )
                if update_fields.get("username") and self._username_taken(conn, update_fields["username"], exclude_id=member_id):
                    raise DuplicateRecordError("Bu kullanıcı adı zaten alınmış.", reason="duplicate_username")

                if update_fields:
                    set_clause = ", ".join(f"{field} = ?" for field in update_fields)
                    conn.execute(f"UPDATE users SET {set_clause} WHERE id = ?",
                                 list(update_fields.values()) + [member_id])
        except sqlite3.IntegrityError as e:
            raise DuplicateRecordError("Üye kaydı benzersizlik kısıtını ihlal ediyor.") from e

        return self.get_member(member_id)

    def remove_member(self, member_id: int) -> bool:
        """Ödünç kaydı olmayan bir üyeyi sil. Bulunamazsa False döndürür."""
        with transaction() as conn:
            if not conn.execute("SELECT 1 FROM users WHERE id = ?", (member_id,)).fetchone():
                return False
            self._ensure_unreferenced(conn, "user_id", member_id,
                                      "Bu üyenin iade edilmemiş kitapları var, silinemez.",
                                      "Bu üyenin ödünç geçmişi var, silinemez.")
            conn.execute("DELETE FROM users WHERE id = ?", (member_id,))
        logger.info("Üye silindi: #%s", member_id)
        return True

    def set_verification_token(self, member_id: int, token: Optional[str], expires: Optional[str]) -> None:
        conn = get_db_connection()
        try:
            conn.execute(
                "UPDATE users SET email_verification_token = ?, email_verification_expires = ? WHERE id = ?",
                (token, expires, member_id),
            )
            conn.commit()
        finally:
            conn.close()

    def mark_email_verified(self, member_id: int) -> Optional[Member]:
        conn = get_db_connection()
        try:
            conn.execute("""
                UPDATE users
                SET email_verified = 1, email_verification_token = NULL, email_verification_expires = NULL
                WHERE id = ?
            """, (member_id,))
            conn.commit()
        finally:
            conn.close()
        return self.get_member(member_id)

    # ------------------------- Ödünç yaşam döngüsü ------------------------- #
    def create_borrowing(self, book_id: int, user_id: int, due_date: Any,
                         borrow_date: Any = None, notes: Optional[str] = None) -> Borrowing:
        """Bir kopyayı ödünç ver.

        Uygunluk kontrolü, kayıt ekleme ve mevcut kopya azaltma tek bir
        yazma işleminde yapılır; son kopya için eşzamanlı iki istekten yalnızca biri başarılı olur.
        """
        borrow_ts = _as_timestamp(borrow_date) if borrow_date else _now_iso()
        due = to_date(due_date)
        if due is None:
            raise InvalidBorrowingError("Son teslim tarihi zorunludur.", reason="invalid_due_date")
        if due < to_date(borrow_ts):
            raise InvalidBorrowingError("Son teslim tarihi ödünç tarihinden önce olamaz.", reason="invalid_due_date")

        with transaction() as conn:
            book_row = conn.execute("SELECT available_copies FROM books WHERE id = ?", (book_id,)).fetchone()
            if not book_row:
                raise BookNotFoundError("Kitap bulunamadı.")
            if not conn.execute("SELECT 1 FROM users WHERE id = ?", (user_id,)).fetchone():
                raise MemberNotFoundError("Üye bulunamadı.")
            if book_row["available_copies"] <= 0:
                raise NoAvailableCopiesError("Kitabın ödünç verilebilir kopyası yok.")

            cursor = conn.execute("""
                INSERT INTO borrowings (book_id, user_id, borrow_date, due_date, status, notes)
                VALUES (?, ?, ?, ?, ?, ?)
            """, (book_id, user_id, borrow_ts, due.isoformat(), STATUS_BORROWED, notes))
            borrowing_id = cursor.lastrowid
            conn.execute("UPDATE books SET available_copies = available_copies - 1 WHERE id = ?", (book_id,))

        logger.info("Ödünç verildi: kitap #%s -> üye #%s (kayıt #%s)", book_id, user_id, borrowing_id)
        return self.get_borrowing(borrowing_id)

    def update_borrowing(self, borrowing_id: int, changes: Dict[str, Any]) -> Optional[Borrowing]:
        """Ödünç kaydını kısmen güncelle (iade, süre uzatma, not).

        İade edildiğinde iade tarihi her zaman sunucu saatiyle belirlenir; istemcinin
        gönderdiği return_date yok sayılır. İade edilmiş bir kayıt tekrar ödünce çevrilemez.
        """
        status = changes.get("status")
        if status == STATUS_OVERDUE:
            status = STATUS_BORROWED

        with transaction() as conn:
            row = conn.execute("SELECT book_id, status, borrow_date FROM borrowings WHERE id = ?",
                               (borrowing_id,)).fetchone()
            if not row:
                return None
            was_active = row["status"] in ACTIVE_STATUSES
            update_fields: Dict[str, Any] = {}

            if status == STATUS_RETURNED and was_active:
                update_fields["status"] = STATUS_RETURNED
                update_fields["return_date"] = _now_iso()
                conn.execute("UPDATE books SET available_copies = available_copies + 1 WHERE id = ?",
                             (row["book_id"],))
            elif status == STATUS_BORROWED and not was_active:
                raise InvalidStatusTransitionError("İade edilmiş bir ödünç kaydı yeniden ödünç durumuna alınamaz.")
            elif status == STATUS_BORROWED and row["status"] == STATUS_OVERDUE:
                update_fields["status"] = STATUS_BORROWED

            if changes.get("due_date") is not None:
                due = to_date(changes["due_date"])
                if due < to_date(row["borrow_date"]):
                    raise InvalidBorrowingError("Son teslim tarihi ödünç tarihinden önce olamaz.",
                                                reason="invalid_due_date")
                update_fields["due_date"] = due.isoformat()
            if "notes" in changes:
                update_fields["notes"] = changes["notes"]
            if changes.get("extension_requested") is not None:
                update_fields["extension_requested"] = int(bool(changes["extension_requested"]))

            if update_fields:
                set_clause = ", ".join(f"{field} = ?" for field in update_fields)
                conn.execute(f"UPDATE borrowings SET {set_clause} WHERE id = ?",
                             list(update_fields.values()) + [borrowing_id])

        if update_fields.get("status") == STATUS_RETURNED:
            logger.info("İade alındı: kayıt #%s", borrowing_id)
        return self.get_borrowing(borrowing_id)

    def return_borrowing(self, borrowing_id: int) -> Optional[Borrowing]:
        return self.update_borrowing(borrowing_id, {"status": STATUS_RETURNED})

    def remove_borrowing(self, borrowing_id: int) -> bool:
        """Ödünç kaydını sil; hâlâ ödünçteyse kopya rafa geri sayılır."""
        with transaction() as conn:
            row = conn.execute("SELECT book_id, status FROM borrowings WHERE id = ?", (borrowing_id,)).fetchone()
            if not row:
                return False
            if row["status"] in ACTIVE_STATUSES:
                conn.execute("UPDATE books SET available_copies = available_copies + 1 WHERE id = ?",
                             (row["book_id"],))
            conn.execute("DELETE FROM borrowings WHERE id = ?", (borrowing_id,))
        logger.info("Ödünç kaydı silindi: #%s", borrowing_id)
        return True

    def get_borrowing(self, borrowing_id: int) -> Optional[Borrowing]:
        items, _ = self._query_borrowings("WHERE br.id = ?", (borrowing_id,))
        return items[0] if items else None

    def list_borrowings(self, params: Optional[PageParams] = None) -> Tuple[List[Borrowing], int]:
        return self._query_borrowings("", (), params=params)

    def list_active_borrowings(self, params: Optional[PageParams] = None,
                               today: Optional[date] = None) -> Tuple[List[Borrowing], int]:
        """Süresi geçmemiş, iade edilmemiş kayıtlar."""
        today = today or date.today()
        where = "WHERE br.status IN (?, ?) AND br.due_date >= ?"
        return self._query_borrowings(where, ACTIVE_STATUSES + (today.isoformat(),), params=params)

    def list_overdue_borrowings(self, params: Optional[PageParams] = None,
                                today: Optional[date] = None) -> Tuple[List[Borrowing], int]:
        """dueDate < bugün ve iade edilmemiş kayıtlar, en eski teslim tarihi önce."""
        today = today or date.today()
        where = "WHERE br.status IN (?, ?) AND br.due_date < ?"
        return self._query_borrowings(where, ACTIVE_STATUSES + (today.isoformat(),),
                                      order="br.due_date ASC, br.id", params=params)

    def list_returned_borrowings(self, params: Optional[PageParams] = None) -> Tuple[List[Borrowing], int]:
        return self._query_borrowings("WHERE br.status = ?", (STATUS_RETURNED,),
                                      order="br.return_date DESC, br.id DESC", params=params)

    def list_member_borrowings(self, user_id: int, params: Optional[PageParams] = None) -> Tuple[List[Borrowing], int]:
        return self._query_borrowings("WHERE br.user_id = ?", (user_id,), params=params)

    def list_book_borrowings(self, book_id: int, params: Optional[PageParams] = None) -> Tuple[List[Borrowing], int]:
        return self._query_borrowings("WHERE br.book_id = ?", (book_id,), params=params)

    def search_borrowings(self, query: str, active_only: bool = False) -> List[Borrowing]:
        """Kitap başlığı/yazarı/ISBN ve üye adı/e-postasında Türkçe duyarlı arama."""
        if not query or not query.strip():
            return []
        if active_only:
            where, args = "WHERE br.status IN (?, ?)", ACTIVE_STATUSES
        else:
            where, args = "", ()
        items, _ = self._query_borrowings(where, args)
        return [
            b for b in items
            if TextValidator.matches(query, (b.book["title"], b.book["author"], b.book["isbn"],
                                             b.user["name"], b.user["email"]))
        ]

    def _query_borrowings(self, where: str, args: tuple, order: str = "br.borrow_date DESC, br.id DESC",
                          params: Optional[PageParams] = None) -> Tuple[List[Borrowing], int]:
        conn = get_db_connection()
        try:
            total = conn.execute(f"SELECT COUNT(*) FROM borrowings br {where}", args).fetchone()[0]
            sql = f"{BORROWING_SELECT} {where} ORDER BY {order}"
            if params:
                sql += " LIMIT ? OFFSET ?"
                args = args + (params.limit, params.offset)
            rows = conn.execute(sql, args).fetchall()
            return [_row_to_borrowing(row) for row in rows], total
        finally:
            conn.close()

    # ------------------------- Yardımcı Programlar ------------------------- #
    @staticmethod
    def _validate_copies(available: int, total: int, on_loan: int = 0) -> None:
        # Mevcut kopya her zaman toplam eksi ödünçteki kopya sayısıdır
        if total is None or total < 1:
            raise InvalidRecordError("Toplam kopya sayısı en az 1 olmalıdır.", reason="invalid_copy_count")
        if total < on_loan:
            raise InvalidRecordError(f"Toplam kopya sayısı ödünçteki kopya sayısından ({on_loan}) az olamaz.",
                                     reason="invalid_copy_count")
        if available is None or available != total - on_loan:
            raise InvalidRecordError(
                f"Mevcut kopya sayısı toplam kopya eksi ödünçteki kopya ({total - on_loan}) olmalıdır.",
                reason="invalid_copy_count",
            )

    @staticmethod
    def _validate_admin(is_admin: bool, email: Optional[str], password: Optional[str]) -> None:
        if not is_admin:
            return
        if not email or not email.strip():
            raise InvalidRecordError("Admin kullanıcılar için e-posta adresi zorunludur", reason="admin_email_required")
        if not password or not password.strip():
            raise InvalidRecordError("Admin kullanıcılar için şifre zorunludur", reason="admin_password_required")

    @staticmethod
    def _isbn_taken(conn: sqlite3.Connection, isbn: str, exclude_id: Optional[int] = None) -> bool:
        row = conn.execute("SELECT id FROM books WHERE isbn = ? AND id != ?", (isbn, exclude_id or -1)).fetchone()
        return row is not None

    @staticmethod
    def _email_taken(conn: sqlite3.Connection, email: str, exclude_id: Optional[int] = None) -> bool:
        row = conn.execute("SELECT id FROM users WHERE email = ? AND id != ?", (email, exclude_id or -1)).fetchone()
        return row is not None

    @staticmethod
    def _username_taken(conn: sqlite3.Connection, username: str, exclude_id: Optional[int] = None) -> bool:
        row = conn.execute("SELECT id FROM users WHERE username = ? COLLATE NOCASE AND id != ?",
                           (username.strip(), exclude_id or -1)).fetchone()
        return row is not None

    def _unique_username(self, conn: sqlite3.Connection, name: str, email: Optional[str]) -> str:
        base = IdentityValidator.suggest_username(name, email)
        candidate, suffix = base, 1
        while self._username_taken(conn, candidate):
            suffix += 1
            candidate = f"{base}{suffix}"
        return candidate

    @staticmethod
    def _ensure_unreferenced(conn: sqlite3.Connection, column: str, record_id: int,
                             active_message: str, history_message: str) -> None:
        active = conn.execute(
            f"SELECT COUNT(*) FROM borrowings WHERE {column} = ? AND status IN (?, ?)",
            (record_id,) + ACTIVE_STATUSES,
        ).fetchone()[0]
        if active:
            raise RecordInUseError(active_message, reason="active_borrowings")
        history = conn.execute(f"SELECT COUNT(*) FROM borrowings WHERE {column} = ?", (record_id,)).fetchone()[0]
        if history:
            raise RecordInUseError(history_message, reason="borrowing_history")

    def close(self) -> None:
        """Testler için uyumluluk yardımcısı. Bağlantılar işlem başına açılıp kapandığı için yapılacak bir şey yoktur."""
        return None
