import threading
from datetime import date, datetime, timedelta

import pytest

from book import Book
from borrowing import STATUS_BORROWED, STATUS_RETURNED
from database import get_db_connection
from library import (
    BookNotFoundError,
    InvalidBorrowingError,
    InvalidStatusTransitionError,
    MemberNotFoundError,
    NoAvailableCopiesError,
)
from member import Member


@pytest.fixture
def setup(lib):
    book = lib.add_book(Book("Kürk Mantolu Madonna", "Sabahattin Ali", "Roman", 1943,
                             isbn="9789753638029", total_copies=2, page_count=160))
    member = lib.add_member(Member(name="Ayşe Yılmaz", username="ayse", email="ayse@example.com"))
    return lib, book, member


def _due(days=14):
    return date.today() + timedelta(days=days)


def test_borrow_and_return_scenario(setup):
    lib, book, member = setup

    first = lib.create_borrowing(book.id, member.id, due_date=_due())
    lib.create_borrowing(book.id, member.id, due_date=_due())
    assert lib.get_book(book.id).available_copies == 0

    with pytest.raises(NoAvailableCopiesError) as exc:
        lib.create_borrowing(book.id, member.id, due_date=_due())
    assert exc.value.reason == "no_available_copies"
    assert exc.value.message == "Kitabın ödünç verilebilir kopyası yok."

    returned = lib.return_borrowing(first.id)
    assert returned.status == STATUS_RETURNED
    assert lib.get_book(book.id).available_copies == 1


def test_created_borrowing_carries_details(setup):
    lib, book, member = setup
    borrowing = lib.create_borrowing(book.id, member.id, due_date=_due(), notes="Rafta hasarlı")

    assert borrowing.status == STATUS_BORROWED
    assert borrowing.return_date is None
    assert borrowing.due_date == _due().isoformat()
    assert borrowing.notes == "Rafta hasarlı"
    assert borrowing.book["title"] == "Kürk Mantolu Madonna"
    assert borrowing.user == {"id": member.id, "name": "Ayşe Yılmaz", "email": "ayse@example.com"}


def test_borrow_unknown_book_or_member(setup):
    lib, book, member = setup

    with pytest.raises(BookNotFoundError) as exc:
        lib.create_borrowing(999, member.id, due_date=_due())
    assert exc.value.reason == "book_not_found"

    with pytest.raises(MemberNotFoundError) as exc:
        lib.create_borrowing(book.id, 999, due_date=_due())
    assert exc.value.reason == "user_not_found"
    assert lib.get_book(book.id).available_copies == 2


def test_due_date_before_borrow_date_is_rejected(setup):
    lib, book, member = setup

    with pytest.raises(InvalidBorrowingError) as exc:
        lib.create_borrowing(book.id, member.id, due_date=_due(-1))
    assert exc.value.reason == "invalid_due_date"
    assert lib.get_book(book.id).available_copies == 2


def test_return_sets_server_time(setup):
    lib, book, member = setup
    borrowing = lib.create_borrowing(book.id, member.id, due_date=_due())

    before = datetime.now().replace(microsecond=0)
    returned = lib.update_borrowing(borrowing.id, {"status": "returned", "return_date": "2000-01-01T00:00:00"})
    after = datetime.now()

    return_date = datetime.fromisoformat(returned.return_date)
    assert before <= return_date <= after


def test_second_return_does_not_increment_again(setup):
    lib, book, member = setup
    borrowing = lib.create_borrowing(book.id, member.id, due_date=_due())

    first = lib.return_borrowing(borrowing.id)
    second = lib.return_borrowing(borrowing.id)

    assert second.return_date == first.return_date
    assert lib.get_book(book.id).available_copies == 2


def test_returned_borrowing_cannot_be_reopened(setup):
    lib, book, member = setup
    borrowing = lib.create_borrowing(book.id, member.id, due_date=_due())
    lib.return_borrowing(borrowing.id)

    with pytest.raises(InvalidStatusTransitionError):
        lib.update_borrowing(borrowing.id, {"status": "borrowed"})
    assert lib.get_book(book.id).available_copies == 2


def test_extend_due_date(setup):
    lib, book, member = setup
    borrowing = lib.create_borrowing(book.id, member.id, due_date=_due(7))

    updated = lib.update_borrowing(borrowing.id, {"due_date": _due(21), "extension_requested": True})
    assert updated.due_date == _due(21).isoformat()
    assert updated.extension_requested is True
    assert updated.status == STATUS_BORROWED
    assert lib.get_book(book.id).available_copies == 1


def test_update_unknown_borrowing(setup):
    lib, _, _ = setup
    assert lib.update_borrowing(999, {"status": "returned"}) is None


def test_delete_active_borrowing_restores_copy(setup):
    lib, book, member = setup
    active = lib.create_borrowing(book.id, member.id, due_date=_due())
    returned = lib.create_borrowing(book.id, member.id, due_date=_due())
    lib.return_borrowing(returned.id)
    assert lib.get_book(book.id).available_copies == 1

    assert lib.remove_borrowing(returned.id) is True
    assert lib.get_book(book.id).available_copies == 1

    assert lib.remove_borrowing(active.id) is True
    assert lib.get_book(book.id).available_copies == 2
    assert lib.remove_borrowing(active.id) is False


def test_overdue_is_derived_from_due_date(setup):
    lib, book, member = setup
    today = date.today()
    overdue = lib.create_borrowing(book.id, member.id, borrow_date=today - timedelta(days=20),
                                   due_date=today - timedelta(days=5))
    current = lib.create_borrowing(book.id, member.id, due_date=today)

    overdue_list, overdue_total = lib.list_overdue_borrowings()
    active_list, active_total = lib.list_active_borrowings()

    assert [b.id for b in overdue_list] == [overdue.id]
    assert overdue_total == 1
    # Son teslim günü bugün olan kayıt henüz gecikmiş sayılmaz
    assert [b.id for b in active_list] == [current.id]
    assert active_total == 1

    assert overdue_list[0].to_dict()["is_overdue"] is True
    assert overdue_list[0].to_dict()["status"] == STATUS_BORROWED
    assert active_list[0].to_dict()["is_overdue"] is False


def test_legacy_overdue_status_reads_as_borrowed(setup):
    lib, book, member = setup
    borrowing = lib.create_borrowing(book.id, member.id, due_date=_due())
    conn = get_db_connection()
    try:
        conn.execute("UPDATE borrowings SET status = 'overdue' WHERE id = ?", (borrowing.id,))
        conn.commit()
    finally:
        conn.close()

    stored = lib.get_borrowing(borrowing.id)
    assert stored.is_active
    assert stored.to_dict()["status"] == STATUS_BORROWED

    # Eski durumlu kayıt da tek artışla iade edilir
    lib.return_borrowing(borrowing.id)
    assert lib.get_book(book.id).available_copies == 2


def test_returned_list(setup):
    lib, book, member = setup
    borrowing = lib.create_borrowing(book.id, member.id, due_date=_due())
    lib.create_borrowing(book.id, member.id, due_date=_due())
    lib.return_borrowing(borrowing.id)

    returned, total = lib.list_returned_borrowings()
    assert total == 1
    assert returned[0].id == borrowing.id


def test_member_and_book_borrowings(setup):
    lib, book, member = setup
    other = lib.add_member(Member(name="Mehmet Demir", username="mehmet"))
    lib.create_borrowing(book.id, member.id, due_date=_due())
    lib.create_borrowing(book.id, other.id, due_date=_due())

    mine, total = lib.list_member_borrowings(member.id)
    assert total == 1
    assert mine[0].user["name"] == "Ayşe Yılmaz"

    _, book_total = lib.list_book_borrowings(book.id)
    assert book_total == 2

    found_book, history = lib.get_book_with_borrowings(book.id)
    assert found_book.id == book.id
    assert len(history) == 2


def test_search_borrowings_is_turkish_aware(setup):
    lib, book, member = setup
    other_book = lib.add_book(Book("İnce Memed", "Yaşar Kemal", "Roman", 1955, isbn="111"))
    lib.create_borrowing(book.id, member.id, due_date=_due())
    ince = lib.create_borrowing(other_book.id, member.id, due_date=_due())

    results = lib.search_borrowings("ince")
    assert [b.id for b in results] == [ince.id]

    assert len(lib.search_borrowings("AYŞE")) == 2
    assert lib.search_borrowings("   ") == []

    lib.return_borrowing(ince.id)
    assert lib.search_borrowings("ince", active_only=True) == []


def test_concurrent_borrows_of_last_copy(lib):
    book = lib.add_book(Book("Son Kopya", "Yazar", "Roman", 2020, total_copies=1))
    members = [lib.add_member(Member(name=f"Üye {i}", username=f"uye{i}")) for i in range(6)]

    results = []
    lock = threading.Lock()
    start = threading.Barrier(len(members))

    def borrow(member_id):
        start.wait()
        try:
            lib.create_borrowing(book.id, member_id, due_date=_due())
            outcome = "ok"
        except NoAvailableCopiesError:
            outcome = "no_copies"
        with lock:
            results.append(outcome)

    threads = [threading.Thread(target=borrow, args=(m.id,)) for m in members]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count("ok") == 1
    assert results.count("no_copies") == len(members) - 1
    assert lib.get_book(book.id).available_copies == 0
