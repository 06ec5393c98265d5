import os
import json
from typing import List, Any, Dict
from rich.console import Console
from rich.table import Table
from rich.panel import Panel

# CLI çıktı modunu kontrol eden ortam değişkeni
# İzin verilen değerler: 'plain' (varsayılan), 'json', 'rich'
OUTPUT_MODE_ENV = "LIB_CLI_OUTPUT"

_console = Console()

def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode

def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, "plain").lower()

def print_book_list(books: List[Any]) -> None:
    """Kitap listesini mevcut çıktı moduna göre yazdır.
    - plain: '#id Title by Author (available/total)' satırları, veya 'No books in library.'
    - json: to_dict() çıktılarından oluşan JSON dizisi
    - rich: Rich tablosu
    """
    mode = get_output_mode()

    if not books:
        print("No books in library.")
        return

    if mode == "json":
        print(json.dumps([b.to_dict() for b in books], ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="📚 Kitaplar", show_lines=True, header_style="bold cyan")
        table.add_column("ID", style="magenta", no_wrap=True)
        table.add_column("Başlık", style="white")
        table.add_column("Yazar", style="white")
        table.add_column("Raf", style="dim")
        table.add_column("Kopya", justify="right")
        for b in books:
            table.add_row(str(b.id), b.title, b.author, b.shelf_number or "-",
                          f"{b.available_copies}/{b.total_copies}")
        _console.print(table)
    else:
        for b in books:
            print(f"#{b.id} {b.title} by {b.author} ({b.available_copies}/{b.total_copies})")

def print_borrowing_list(borrowings: List[Any], empty_message: str = "No borrowings.") -> None:
    """Ödünç kayıtlarını (kitap ve üye ayrıntılarıyla) yazdır."""
    mode = get_output_mode()

    if not borrowings:
        print(empty_message)
        return

    if mode == "json":
        print(json.dumps([b.to_dict() for b in borrowings], ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="📖 Ödünç Kayıtları", show_lines=True, header_style="bold cyan")
        table.add_column("ID", style="magenta", no_wrap=True)
        table.add_column("Kitap")
        table.add_column("Üye")
        table.add_column("Son Teslim", style="yellow")
        for b in borrowings:
            table.add_row(str(b.id), b.book["title"], b.user["name"], str(b.due_date))
        _console.print(table)
    else:
        for b in borrowings:
            print(f"#{b.id} {b.book['title']} -> {b.user['name']} (due {b.due_date})")

def print_stats_result(stats: Dict[str, Any]) -> None:
    """İstatistikleri mevcut çıktı moduna göre yazdır."""
    mode = get_output_mode()

    if not stats:
        print("No statistics available.")
        return

    labels = {
        "total_books": "Total Books",
        "total_users": "Total Members",
        "active_borrowings": "Active Borrowings",
        "overdue_borrowings": "Overdue Borrowings",
        "avg_borrow_days": "Average Borrow Days",
    }

    if mode == "json":
        print(json.dumps(stats, ensure_ascii=False))
    elif mode == "rich":
        content = "\n".join(f"[bold]{label}:[/] {stats.get(key, 0)}" for key, label in labels.items())
        _console.print(Panel.fit(content, title="📊 İstatistikler", border_style="blue"))
    else:
        for key, label in labels.items():
            print(f"{label}: {stats.get(key, 0)}")
