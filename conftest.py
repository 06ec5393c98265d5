import os

# Ayarlar içe aktarılmadan önce: testler Redis ve SMTP'ye bağlanmaz
os.environ["REDIS_URL"] = ""
os.environ["SMTP_USERNAME"] = ""
os.environ["SMTP_PASSWORD"] = ""
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest

from library import Library


@pytest.fixture
def lib(tmp_path, request):
    # Her test için benzersiz bir veritabanı dosyası oluştur
    db_file = str(tmp_path / f"test_{request.node.name}.db")
    # Kütüphanenin bu veritabanı dosyasını kullandığından emin ol
    lib = Library(db_file=db_file)
    yield lib
    lib.close()
