from __future__ import annotations

from datetime import date, datetime

STATUS_BORROWED = "borrowed"
STATUS_RETURNED = "returned"
# Eski kayıtlarda saklanmış olabilir; okunurken "borrowed" gibi değerlendirilir
STATUS_OVERDUE = "overdue"

ACTIVE_STATUSES = (STATUS_BORROWED, STATUS_OVERDUE)


def to_date(value: str | date | datetime | None) -> date | None:
    """ISO tarih/zaman dizesini (veya nesnesini) gün hassasiyetine indirger."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def to_datetime(value: str | date | datetime | None) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    return datetime.fromisoformat(str(value).replace("Z", "+00:00").replace(" ", "T"))


class Borrowing:
    """Bir üyenin bir kitabın bir kopyasını ödünç alma kaydı."""

    def __init__(self, book_id: int, user_id: int, borrow_date: str, due_date: str,
                 return_date: str | None = None, status: str = STATUS_BORROWED,
                 extension_requested: bool = False, notes: str | None = None,
                 id: int | None = None, book: dict | None = None, user: dict | None = None) -> None:
        self.id = id
        self.book_id = book_id
        self.user_id = user_id
        self.borrow_date = borrow_date
        self.due_date = due_date
        self.return_date = return_date
        self.status = status
        self.extension_requested = bool(extension_requested)
        self.notes = notes
        # Birleştirilmiş sorgulardan gelen ayrıntılar (isteğe bağlı)
        self.book = book
        self.user = user

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def is_overdue(self, today: date | None = None) -> bool:
        """Gecikme saklanmaz, her seferinde son teslim tarihinden türetilir."""
        today = today or date.today()
        due = to_date(self.due_date)
        return self.is_active and due is not None and due < today

    def to_dict(self, today: date | None = None) -> dict:
        data = {
            "id": self.id,
            "book_id": self.book_id,
            "user_id": self.user_id,
            "borrow_date": self.borrow_date,
            "due_date": self.due_date,
            "return_date": self.return_date,
            # Eski "overdue" değeri dışarıya "borrowed" olarak yansıtılır
            "status": STATUS_BORROWED if self.status == STATUS_OVERDUE else self.status,
            "extension_requested": self.extension_requested,
            "notes": self.notes,
            "is_overdue": self.is_overdue(today),
        }
        if self.book is not None:
            data["book"] = self.book
        if self.user is not None:
            data["user"] = self.user
        return data

    @staticmethod
    def from_dict(data: dict) -> "Borrowing":
        return Borrowing(
            id=data.get("id"),
            book_id=data["book_id"],
            user_id=data["user_id"],
            borrow_date=data["borrow_date"],
            due_date=data["due_date"],
            return_date=data.get("return_date"),
            status=data.get("status") or STATUS_BORROWED,
            extension_requested=data.get("extension_requested") or False,
            notes=data.get("notes"),
            book=data.get("book"),
            user=data.get("user"),
        )
