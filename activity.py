"""Pano için etkinlik akışı: ödünç, iade, yeni kitap, yeni üye ve gecikme olayları."""

import logging
from datetime import date
from typing import Any, Dict, List, Optional

from borrowing import ACTIVE_STATUSES, STATUS_RETURNED, to_date
from database import get_db_connection

logger = logging.getLogger(__name__)

_BORROWING_JOIN = """
    SELECT br.id, br.borrow_date, br.due_date, br.return_date, br.status,
           b.title AS book_title, u.name AS user_name
    FROM borrowings br
    JOIN books b ON b.id = br.book_id
    JOIN users u ON u.id = br.user_id
"""


def _item(kind: str, record_id: int, title: str, description: str, when: str,
          user: Optional[str] = None, book: Optional[str] = None, status: Optional[str] = None,
          metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return {
        "id": f"{kind}-{record_id}",
        "type": kind,
        "title": title,
        "description": description,
        "user": user,
        "book": book,
        "date": when,
        "status": status,
        "metadata": metadata or {},
    }


def get_activity_feed(today: Optional[date] = None) -> List[Dict[str, Any]]:
    """Beş kaynağın tüm olaylarını birleştirip tarihe göre azalan sırada döndürür.

    Sayfalama çağıran tarafından birleşik liste üzerinde bellekte yapılır.
    """
    today = today or date.today()
    items: List[Dict[str, Any]] = []

    conn = get_db_connection()
    try:
        for row in conn.execute(f"{_BORROWING_JOIN} ORDER BY br.borrow_date DESC"):
            items.append(_item(
                "borrowing", row["id"], "Kitap ödünç alındı",
                f'{row["user_name"]}, "{row["book_title"]}" kitabını ödünç aldı',
                row["borrow_date"], user=row["user_name"], book=row["book_title"],
                status="borrowed" if row["status"] in ACTIVE_STATUSES else row["status"],
                metadata={"borrowing_id": row["id"], "due_date": row["due_date"]},
            ))

        for row in conn.execute(
            f"{_BORROWING_JOIN} WHERE br.status = ? AND br.return_date IS NOT NULL "
            "ORDER BY br.return_date DESC", (STATUS_RETURNED,)
        ):
            items.append(_item(
                "return", row["id"], "Kitap iade edildi",
                f'{row["user_name"]}, "{row["book_title"]}" kitabını iade etti',
                row["return_date"], user=row["user_name"], book=row["book_title"], status=STATUS_RETURNED,
                metadata={"borrowing_id": row["id"], "borrow_date": row["borrow_date"]},
            ))

        for row in conn.execute(
            "SELECT id, title, author, genre, created_at FROM books ORDER BY created_at DESC"
        ):
            items.append(_item(
                "book_added", row["id"], "Yeni kitap eklendi",
                f'"{row["title"]}" ({row["author"]}) kataloğa eklendi',
                row["created_at"], book=row["title"],
                metadata={"book_id": row["id"], "author": row["author"], "genre": row["genre"]},
            ))

        for row in conn.execute(
            "SELECT id, name, membership_date FROM users ORDER BY membership_date DESC"
        ):
            items.append(_item(
                "member_added", row["id"], "Yeni üye katıldı",
                f"{row['name']} kütüphaneye üye oldu",
                row["membership_date"], user=row["name"],
                metadata={"user_id": row["id"]},
            ))

        for row in conn.execute(
            f"{_BORROWING_JOIN} WHERE br.status IN (?, ?) AND br.due_date < ? ORDER BY br.due_date ASC",
            ACTIVE_STATUSES + (today.isoformat(),),
        ):
            days_overdue = (today - to_date(row["due_date"])).days
            items.append(_item(
                "overdue", row["id"], "Gecikmiş iade",
                f'"{row["book_title"]}" {days_overdue} gündür gecikmede ({row["user_name"]})',
                row["due_date"], user=row["user_name"], book=row["book_title"], status="overdue",
                metadata={"borrowing_id": row["id"], "days_overdue": days_overdue},
            ))
    finally:
        conn.close()

    items.sort(key=lambda item: item["date"] or "", reverse=True)
    return items


def get_recent_activities() -> List[Dict[str, Any]]:
    """Ödünç ve iade olaylarının tamamı, en yeni önce."""
    conn = get_db_connection()
    try:
        rows = conn.execute(_BORROWING_JOIN).fetchall()
    finally:
        conn.close()

    events = []
    for row in rows:
        events.append({
            "type": "borrow",
            "id": row["id"],
            "date": row["borrow_date"],
            "user": {"name": row["user_name"]},
            "book": {"title": row["book_title"]},
        })
        if row["status"] == STATUS_RETURNED and row["return_date"]:
            events.append({
                "type": "return",
                "id": row["id"],
                "date": row["return_date"],
                "user": {"name": row["user_name"]},
                "book": {"title": row["book_title"]},
            })
    events.sort(key=lambda event: event["date"] or "", reverse=True)
    return events
