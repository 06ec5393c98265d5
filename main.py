import os
import subprocess
import sys
from typing import Optional

import typer
from rich.console import Console

import database
import library_stats
from auth import hash_password
from config import settings
from library import Library, LibraryError
from member import Member
from utils.ui_helpers import print_book_list, print_borrowing_list, print_stats_result, set_output_mode

APP_NAME = "Kütüphane CLI"

console = Console()

# --- Typer CLI Uygulaması ---
app = typer.Typer(help="Kütüphane yönetim aracı")


def _library() -> Library:
    return Library()


@app.callback()
def _global_options(
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Çıktı formatı: plain | json | rich (varsayılan: plain)",
    )
):
    """CLI için genel seçenekler (ör. çıktı modu)."""
    if output:
        set_output_mode(output)


@app.command("init-db")
def cli_init_db():
    """Veritabanı şemasını oluştur veya güncelle."""
    _library()
    print(f"Database ready: {database.DATABASE_FILE}")


@app.command("create-admin")
def cli_create_admin(
    name: str = typer.Option(..., "--name", "-n", help="Yöneticinin adı"),
    email: str = typer.Option(..., "--email", "-e", help="E-posta adresi"),
    username: Optional[str] = typer.Option(None, "--username", "-u", help="Kullanıcı adı (boşsa e-postadan üretilir)"),
    password: str = typer.Option(..., "--password", "-p", prompt=True, hide_input=True, confirmation_prompt=True),
):
    """Yönetici hesabı oluştur. Kayıt formu yalnızca normal üye oluşturduğu için ilk yönetici buradan eklenir."""
    member = Member(
        name=name,
        username=username or "",
        email=email,
        password=hash_password(password),
        is_admin=True,
        email_verified=True,
    )
    try:
        created = _library().add_member(member)
    except LibraryError as e:
        print(f"Error: {e.message}")
        raise typer.Exit(code=1)
    print(f"Admin created: {created.username} (#{created.id})")


@app.command("list-books")
def cli_list_books(query: Optional[str] = typer.Option(None, "--query", "-q", help="Başlık, yazar, ISBN veya tür")):
    """Kitapları listele ya da ara."""
    lib = _library()
    books, _ = lib.search_books(query) if query else lib.list_books()
    print_book_list(books)


@app.command("overdue")
def cli_overdue():
    """Teslim tarihi geçmiş ödünç kayıtlarını listele."""
    borrowings, _ = _library().list_overdue_borrowings()
    print_borrowing_list(borrowings, empty_message="No overdue borrowings.")


@app.command("stats")
def cli_stats():
    """Kütüphane istatistiklerini göster."""
    _library()
    print_stats_result(library_stats.get_stats())


@app.command("serve")
def cli_serve(
    host: Optional[str] = typer.Option(None, "--host", help="Dinlenecek adres"),
    port: Optional[int] = typer.Option(None, "--port", help="Dinlenecek port"),
    reload: bool = typer.Option(False, "--reload", help="Kod değişince yeniden başlat"),
):
    """API sunucusunu uvicorn ile başlat."""
    host = host or settings.api_host
    port = port or int(settings.api_port)
    print(f"Starting API on http://{host}:{port}/api")
    args = [sys.executable, "-m", "uvicorn", "api:app", "--host", host, "--port", str(port)]
    if reload:
        args.append("--reload")
    subprocess.run(args, cwd=os.path.dirname(os.path.abspath(__file__)))


if __name__ == "__main__":
    app()
