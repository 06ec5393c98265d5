from __future__ import annotations


class Member:
    """Kütüphane üyesi (kullanıcı). Yöneticiler de bu tabloda tutulur."""

    def __init__(self, name: str, username: str, email: str | None = None,
                 password: str | None = None, is_admin: bool = False,
                 membership_date: str | None = None, admin_rating: int | None = None,
                 admin_notes: str | None = None, email_verified: bool = False,
                 email_verification_token: str | None = None,
                 email_verification_expires: str | None = None,
                 id: int | None = None) -> None:
        self.id = id
        self.name = name.strip()
        self.username = username.strip()
        self.email = email.strip().lower() if email and email.strip() else None
        # Her zaman hash'lenmiş parola; düz metin asla saklanmaz
        self.password = password
        self.is_admin = bool(is_admin)
        self.membership_date = membership_date
        self.admin_rating = admin_rating
        self.admin_notes = admin_notes
        self.email_verified = bool(email_verified)
        self.email_verification_token = email_verification_token
        self.email_verification_expires = email_verification_expires

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.name} (@{self.username})"

    def to_dict(self, include_password: bool = False) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "username": self.username,
            "email": self.email,
            "is_admin": self.is_admin,
            "membership_date": self.membership_date,
            "admin_rating": self.admin_rating,
            "admin_notes": self.admin_notes,
            "email_verified": self.email_verified,
        }
        if include_password:
            data["password"] = self.password
            data["email_verification_token"] = self.email_verification_token
            data["email_verification_expires"] = self.email_verification_expires
        return data

    @staticmethod
    def from_dict(data: dict) -> "Member":
        return Member(
            id=data.get("id"),
            name=data["name"],
            username=data["username"],
            email=data.get("email"),
            password=data.get("password"),
            is_admin=data.get("is_admin", False),
            membership_date=data.get("membership_date"),
            admin_rating=data.get("admin_rating"),
            admin_notes=data.get("admin_notes"),
            email_verified=data.get("email_verified", False),
            email_verification_token=data.get("email_verification_token"),
            email_verification_expires=data.get("email_verification_expires"),
        )
