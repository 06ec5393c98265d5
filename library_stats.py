"""
Pano ve istatistik sayfası için toplama sorguları.

Tüm fonksiyonlar test edilebilirlik için isteğe bağlı bir ``today`` parametresi alır.
"""

import logging
from collections import Counter
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Tuple

from borrowing import ACTIVE_STATUSES, STATUS_RETURNED
from config import settings
from database import get_db_connection
from member import Member
from pagination import PageParams
from utils.validators import TextValidator

logger = logging.getLogger(__name__)

DAY_KEYS = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")

DAY_TRANSLATIONS = {
    "tr": {"mon": "Pzt", "tue": "Sal", "wed": "Çar", "thu": "Per", "fri": "Cum", "sat": "Cmt", "sun": "Paz"},
    "en": {"mon": "Mon", "tue": "Tue", "wed": "Wed", "thu": "Thu", "fri": "Fri", "sat": "Sat", "sun": "Sun"},
}


def percent_change(current: int, previous: int) -> int:
    """Ay bazında yüzde değişim; önceki değer 0 ise sıfıra bölme yapılmaz."""
    if previous == 0:
        return 0 if current == 0 else 100
    return round((current - previous) / previous * 100)


def _month_bounds(today: date) -> Tuple[str, str, str]:
    """(geçen ayın başı, bu ayın başı, gelecek ayın başı) ISO tarihleri."""
    this_month = today.replace(day=1)
    last_month = (this_month - timedelta(days=1)).replace(day=1)
    next_month = (this_month + timedelta(days=32)).replace(day=1)
    return last_month.isoformat(), this_month.isoformat(), next_month.isoformat()


def _count_between(conn, table: str, column: str, start: str, end: str) -> int:
    return conn.execute(
        f"SELECT COUNT(*) FROM {table} WHERE substr({column}, 1, 10) >= ? AND substr({column}, 1, 10) < ?",
        (start, end),
    ).fetchone()[0]


def get_stats(today: Optional[date] = None) -> Dict[str, Any]:
    """Pano sayaçları."""
    today = today or date.today()
    today_iso = today.isoformat()
    last_start, this_start, next_start = _month_bounds(today)

    conn = get_db_connection()
    try:
        total_books = conn.execute("SELECT COUNT(*) FROM books").fetchone()[0]
        total_users = conn.execute("SELECT COUNT(*) FROM users").fetchone()[0]
        active = conn.execute(
            "SELECT COUNT(*) FROM borrowings WHERE status IN (?, ?) AND due_date >= ?",
            ACTIVE_STATUSES + (today_iso,),
        ).fetchone()[0]
        overdue = conn.execute(
            "SELECT COUNT(*) FROM borrowings WHERE status IN (?, ?) AND due_date < ?",
            ACTIVE_STATUSES + (today_iso,),
        ).fetchone()[0]
        borrow_count = conn.execute("SELECT COUNT(*) FROM borrowings").fetchone()[0]

        books_this_month = _count_between(conn, "books", "created_at", this_start, next_start)
        books_last_month = _count_between(conn, "books", "created_at", last_start, this_start)
        users_this_month = _count_between(conn, "users", "membership_date", this_start, next_start)
        users_last_month = _count_between(conn, "users", "membership_date", last_start, this_start)

        avg_days = conn.execute(
            "SELECT AVG(julianday(return_date) - julianday(borrow_date)) FROM borrowings "
            "WHERE status = ? AND return_date IS NOT NULL",
            (STATUS_RETURNED,),
        ).fetchone()[0]
    finally:
        conn.close()

    return {
        "total_books": total_books,
        "total_users": total_users,
        "active_borrowings": active,
        "overdue_borrowings": overdue,
        "borrow_count": borrow_count,
        "total_books_change_percent": percent_change(books_this_month, books_last_month),
        "total_users_change_percent": percent_change(users_this_month, users_last_month),
        "avg_borrow_days": round(avg_days, 1) if avg_days is not None else 0,
    }


def get_popular_books(params: Optional[PageParams] = None) -> Tuple[List[Dict[str, Any]], int]:
    """En çok ödünç alınan kitaplar; sayfalama yoksa ilk N kayıt."""
    limit, offset = (params.limit, params.offset) if params else (settings.top_list_size, 0)
    conn = get_db_connection()
    try:
        total = conn.execute("SELECT COUNT(*) FROM books").fetchone()[0]
        rows = conn.execute("""
            SELECT b.id, b.title, b.author, b.isbn, b.genre, b.publish_year, b.shelf_number,
                   b.available_copies, b.total_copies, b.page_count, b.created_at,
                   COUNT(br.id) AS borrow_count
            FROM books b
            LEFT JOIN borrowings br ON br.book_id = b.id
            GROUP BY b.id
            ORDER BY borrow_count DESC, b.title COLLATE NOCASE
            LIMIT ? OFFSET ?
        """, (limit, offset)).fetchall()
        return [dict(row) for row in rows], total
    finally:
        conn.close()


def get_active_users(params: Optional[PageParams] = None) -> Tuple[List[Dict[str, Any]], int]:
    """En çok ödünç alan üyeler. Parola alanları döndürülmez."""
    limit, offset = (params.limit, params.offset) if params else (settings.top_list_size, 0)
    conn = get_db_connection()
    try:
        total = conn.execute("SELECT COUNT(*) FROM users").fetchone()[0]
        rows = conn.execute("""
            SELECT u.*, COUNT(br.id) AS borrow_count
            FROM users u
            LEFT JOIN borrowings br ON br.user_id = u.id
            GROUP BY u.id
            ORDER BY borrow_count DESC, u.name COLLATE NOCASE
            LIMIT ? OFFSET ?
        """, (limit, offset)).fetchall()
    finally:
        conn.close()

    users = []
    for row in rows:
        data = Member.from_dict(dict(row)).to_dict()
        data["borrow_count"] = row["borrow_count"]
        users.append(data)
    return users, total


def get_top_readers_month(today: Optional[date] = None) -> List[Dict[str, Any]]:
    """Bu ay ödünç alınan kitapların sayfa toplamına göre en çok okuyanlar."""
    today = today or date.today()
    _, this_start, next_start = _month_bounds(today)
    conn = get_db_connection()
    try:
        rows = conn.execute("""
            SELECT u.id AS user_id, u.name, u.email,
                   SUM(COALESCE(b.page_count, 0)) AS total_pages_read
            FROM borrowings br
            JOIN books b ON b.id = br.book_id
            JOIN users u ON u.id = br.user_id
            WHERE substr(br.borrow_date, 1, 10) >= ? AND substr(br.borrow_date, 1, 10) < ?
            GROUP BY u.id
            ORDER BY total_pages_read DESC, u.name COLLATE NOCASE
            LIMIT ?
        """, (this_start, next_start, settings.top_readers_size)).fetchall()
        return [dict(row) for row in rows]
    finally:
        conn.close()


def get_weekly_activity(today: Optional[date] = None) -> List[Dict[str, Any]]:
    """Son 7 günün (bugün dahil) ödünç ve iade sayıları, en eski gün önce."""
    today = today or date.today()
    result = []
    conn = get_db_connection()
    try:
        for offset in range(6, -1, -1):
            day = today - timedelta(days=offset)
            day_iso = day.isoformat()
            borrowed = conn.execute(
                "SELECT COUNT(*) FROM borrowings WHERE substr(borrow_date, 1, 10) = ?", (day_iso,)
            ).fetchone()[0]
            returned = conn.execute(
                "SELECT COUNT(*) FROM borrowings WHERE substr(return_date, 1, 10) = ?", (day_iso,)
            ).fetchone()[0]
            result.append({"day": DAY_KEYS[day.weekday()], "borrowed": borrowed, "returned": returned})
    finally:
        conn.close()
    return result


def get_genre_distribution() -> List[Dict[str, Any]]:
    # Virgülle birleştirilmiş türler tek tek sayılır
    conn = get_db_connection()
    try:
        rows = conn.execute("SELECT genre FROM books").fetchall()
    finally:
        conn.close()

    counter: Counter = Counter()
    for row in rows:
        counter.update(TextValidator.split_genres(row["genre"]))
    ordered = sorted(counter.items(), key=lambda item: (-item[1], item[0]))
    return [{"name": name, "value": value} for name, value in ordered]
