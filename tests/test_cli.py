import json
from datetime import date, timedelta
from unittest.mock import patch

from typer.testing import CliRunner

from book import Book
from main import app
from member import Member
from utils.ui_helpers import OUTPUT_MODE_ENV

runner = CliRunner()


def test_list_no_books(lib):
    result = runner.invoke(app, ["list-books"])
    assert result.exit_code == 0
    assert "No books in library." in result.stdout


def test_list_books(lib):
    lib.add_book(Book("Nutuk", "Atatürk", "Tarih", 1927, total_copies=3))
    lib.add_book(Book("Tutunamayanlar", "Oğuz Atay", "Roman", 1972))

    result = runner.invoke(app, ["list-books"])
    assert result.exit_code == 0
    assert "Nutuk by Atatürk (3/3)" in result.stdout
    assert "Tutunamayanlar by Oğuz Atay (1/1)" in result.stdout

    result = runner.invoke(app, ["list-books", "--query", "roman"])
    assert "Tutunamayanlar" in result.stdout
    assert "Nutuk" not in result.stdout


def test_list_books_json_output(lib, monkeypatch):
    # --output ortam değişkenini değiştirir; test sonunda geri alınır
    monkeypatch.setenv(OUTPUT_MODE_ENV, "plain")
    lib.add_book(Book("Nutuk", "Atatürk", "Tarih", 1927))

    result = runner.invoke(app, ["--output", "json", "list-books"])
    assert result.exit_code == 0
    books = json.loads(result.stdout)
    assert books[0]["title"] == "Nutuk"
    assert books[0]["available_copies"] == 1


def test_create_admin(lib):
    result = runner.invoke(app, ["create-admin", "-n", "Yönetici", "-e", "Admin@Example.com",
                                 "-u", "admin", "-p", "secret123"])
    assert result.exit_code == 0
    assert "Admin created: admin" in result.stdout

    admin = lib.get_member_by_username("admin")
    assert admin.is_admin is True
    assert admin.email_verified is True
    assert admin.email == "admin@example.com"
    assert admin.password != "secret123"


def test_create_admin_duplicate_email(lib):
    lib.add_member(Member(name="Ayşe", username="ayse", email="ayse@example.com"))

    result = runner.invoke(app, ["create-admin", "-n", "Ayşe", "-e", "ayse@example.com", "-p", "secret123"])
    assert result.exit_code == 1
    assert "Error: Bu e-posta adresi zaten kullanılıyor." in result.stdout


def test_overdue_empty(lib):
    result = runner.invoke(app, ["overdue"])
    assert result.exit_code == 0
    assert "No overdue borrowings." in result.stdout


def test_overdue_lists_late_borrowings(lib):
    book = lib.add_book(Book("Nutuk", "Atatürk", "Tarih", 1927))
    member = lib.add_member(Member(name="Mehmet Demir", username="mehmet"))
    today = date.today()
    lib.create_borrowing(book.id, member.id, borrow_date=today - timedelta(days=10),
                         due_date=today - timedelta(days=1))

    result = runner.invoke(app, ["overdue"])
    assert result.exit_code == 0
    assert "Nutuk -> Mehmet Demir" in result.stdout


def test_stats(lib):
    lib.add_book(Book("Nutuk", "Atatürk", "Tarih", 1927))

    result = runner.invoke(app, ["stats"])
    assert result.exit_code == 0
    assert "Total Books: 1" in result.stdout
    assert "Total Members: 0" in result.stdout
    assert "Overdue Borrowings: 0" in result.stdout


def test_init_db(lib):
    result = runner.invoke(app, ["init-db"])
    assert result.exit_code == 0
    assert "Database ready:" in result.stdout


@patch("subprocess.run")
def test_serve_command(mock_subprocess_run, lib):
    result = runner.invoke(app, ["serve", "--port", "4000"])
    assert result.exit_code == 0
    assert "Starting API on http://" in result.stdout
    mock_subprocess_run.assert_called_once()
    args = mock_subprocess_run.call_args[0][0]
    assert "uvicorn" in args
    assert "api:app" in args
    assert args[args.index("--port") + 1] == "4000"
