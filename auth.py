"""Parola hash'leme, doğrulama token'ları ve oturum tabanlı FastAPI bağımlılıkları."""

import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends, HTTPException, Request
from werkzeug.security import check_password_hash, generate_password_hash

from config import settings
from member import Member

logger = logging.getLogger(__name__)

SESSION_USER_KEY = "userId"


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(member: Member, password: str) -> bool:
    if not member.password or not password:
        return False
    return check_password_hash(member.password, password)


def generate_verification_token() -> str:
    return secrets.token_hex(32)


def resend_token_expiry(now: Optional[datetime] = None) -> str:
    """Saklanan üyeler için yeniden gönderilen token'ın son geçerlilik zamanı."""
    now = now or datetime.now()
    return (now + timedelta(hours=settings.resend_token_ttl_hours)).isoformat(timespec="seconds")


def login_session(request: Request, member: Member) -> None:
    request.session.clear()
    request.session[SESSION_USER_KEY] = member.id


def logout_session(request: Request) -> None:
    request.session.clear()


def require_auth(request: Request) -> Member:
    """Oturumdaki üyeyi döndürür; oturum yoksa 401."""
    user_id = request.session.get(SESSION_USER_KEY)
    if user_id is None:
        raise HTTPException(status_code=401, detail="Oturum açmanız gerekiyor")

    member = request.app.state.library.get_member(user_id)
    if member is None:
        # Silinmiş üyenin oturumu
        request.session.clear()
        raise HTTPException(status_code=401, detail="Oturum açmanız gerekiyor")
    return member


def require_admin(member: Member = Depends(require_auth)) -> Member:
    if not member.is_admin:
        logger.warning("Yetkisiz yönetici işlemi denemesi: üye #%s", member.id)
        raise HTTPException(status_code=403, detail="Bu işlem için yönetici yetkisi gerekiyor")
    return member
