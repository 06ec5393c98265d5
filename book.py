from __future__ import annotations


class Book:
    """Kütüphanedeki tek bir kitap kaydını temsil eder."""

    def __init__(self, title: str, author: str, genre: str, publish_year: int,
                 isbn: str | None = None, shelf_number: str | None = None,
                 available_copies: int | None = None, total_copies: int = 1,
                 page_count: int | None = None, created_at: str | None = None,
                 id: int | None = None) -> None:
        self.id = id
        self.title = title.strip()
        self.author = author.strip()
        self.isbn = isbn.strip() if isbn and isbn.strip() else None
        self.genre = genre.strip()
        self.publish_year = publish_year
        self.shelf_number = shelf_number
        self.total_copies = total_copies
        # Belirtilmezse tüm kopyalar rafta kabul edilir
        self.available_copies = total_copies if available_copies is None else available_copies
        self.page_count = page_count
        self.created_at = created_at

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.title} by {self.author} ({self.available_copies}/{self.total_copies})"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "isbn": self.isbn,
            "genre": self.genre,
            "publish_year": self.publish_year,
            "shelf_number": self.shelf_number,
            "available_copies": self.available_copies,
            "total_copies": self.total_copies,
            "page_count": self.page_count,
            "created_at": self.created_at,
        }

    @staticmethod
    def from_dict(data: dict) -> "Book":
        return Book(
            id=data.get("id"),
            title=data["title"],
            author=data["author"],
            isbn=data.get("isbn"),
            genre=data.get("genre") or "",
            publish_year=data["publish_year"],
            shelf_number=data.get("shelf_number"),
            available_copies=data.get("available_copies"),
            total_copies=data.get("total_copies", 1),
            page_count=data.get("page_count"),
            created_at=data.get("created_at"),
        )
