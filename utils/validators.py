import re
from typing import Iterable, List, Optional

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_USERNAME_RE = re.compile(r"^[A-Za-z0-9_.-]{3,32}$")


class ISBNValidator:
    """ISBN alanı isteğe bağlıdır; boş değerler NULL olarak saklanır."""

    @staticmethod
    def normalize_isbn(raw: Optional[str]) -> Optional[str]:
        if raw is None:
            return None
        s = raw.strip()
        return s or None


class IdentityValidator:
    """Kullanıcı adı / e-posta doğrulamaları."""

    @staticmethod
    def is_email(identifier: Optional[str]) -> bool:
        # Giriş ekranında "@" içeren tanımlayıcı e-posta kabul edilir
        return bool(identifier) and "@" in identifier

    @staticmethod
    def is_valid_email(email: Optional[str]) -> bool:
        return bool(email) and bool(_EMAIL_RE.match(email.strip()))

    @staticmethod
    def normalize_email(email: Optional[str]) -> Optional[str]:
        if email is None:
            return None
        s = email.strip().lower()
        return s or None

    @staticmethod
    def is_valid_username(username: Optional[str]) -> bool:
        return bool(username) and bool(_USERNAME_RE.match(username.strip()))

    @staticmethod
    def suggest_username(name: str, email: Optional[str] = None) -> str:
        """Kullanıcı adı verilmeyen üyeler için e-posta veya isimden bir aday üret."""
        base = email.split("@", 1)[0] if email else name
        base = TextValidator.tr_lower(base)
        base = base.translate(str.maketrans("çğıöşü", "cgiosu"))
        base = re.sub(r"[^a-z0-9_.-]", "", base.replace(" ", "."))
        return (base or "member")[:24]


class TextValidator:
    """Arama için metin yardımcıları."""

    @staticmethod
    def tr_lower(text: Optional[str]) -> str:
        # Türkçe büyük I/İ harflerinin doğru küçültülmesi
        if not text:
            return ""
        return text.replace("I", "ı").replace("İ", "i").lower()

    @staticmethod
    def matches(query: str, fields: Iterable[Optional[str]]) -> bool:
        q = TextValidator.tr_lower(query).strip()
        if not q:
            return False
        return any(q in TextValidator.tr_lower(f) for f in fields if f)

    @staticmethod
    def split_genres(genre: Optional[str]) -> List[str]:
        if not genre:
            return []
        return [g.strip() for g in genre.split(",") if g.strip()]
