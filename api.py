import logging
import os
import time
from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

import activity
import email_service
import library_stats
from auth import (
    generate_verification_token,
    hash_password,
    login_session,
    logout_session,
    require_admin,
    require_auth,
    resend_token_expiry,
    verify_password,
)
from book import Book
from borrowing import to_date
from config import settings
from database import get_db_connection
from email_service import EmailDeliveryError
from library import Library, LibraryError
from member import Member
from pagination import PageParams, build_page, paginate_list
from utils.validators import IdentityValidator
from verification_store import verification_store

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

STATIC_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "static")

library = Library()

app = FastAPI(title="Kütüphane Yönetim API'si", version=settings.app_version)
app.state.library = library
app.state.verification_store = verification_store

# --- Performans Ara Katmanı ---
# 1KB'den büyük yanıtlar için GZip sıkıştırmasını etkinleştir
app.add_middleware(GZipMiddleware, minimum_size=1000)

# --- Oturum ---
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.session_secret,
    session_cookie=settings.session_cookie_name,
    max_age=settings.session_max_age,
    same_site="lax",
    https_only=settings.session_cookie_secure,
)

# --- CORS ---
# Çerez tabanlı oturum için kaynak açıkça belirtilmelidir
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.cors_origin.split(",") if origin.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- İstek Günlüğü ve Güvenlik Başlıkları Ara Katmanı ---
@app.middleware("http")
async def log_and_secure(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)

    if request.url.path.startswith("/api"):
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info("%s %s %s in %.0fms", request.method, request.url.path, response.status_code, duration_ms)
        response.headers["Cache-Control"] = "no-store"

    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["X-XSS-Protection"] = "1; mode=block"
    return response


# --- Hata İşleyicileri ---
@app.exception_handler(LibraryError)
async def library_error_handler(request: Request, exc: LibraryError):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message, "reason": exc.reason})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"path": [str(part) for part in err.get("loc", ())], "message": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"message": "Geçersiz istek verisi", "reason": "validation_error", "errors": errors},
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.detail}, headers=exc.headers)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Beklenmeyen hata: %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": "Beklenmeyen bir hata oluştu"})


# --- Yanıt Yardımcıları ---
def camelize(value: Any) -> Any:
    """İç sözlük anahtarlarını (snake_case) API'nin camelCase biçimine çevirir."""
    if isinstance(value, dict):
        return {to_camel(key): camelize(item) for key, item in value.items()}
    if isinstance(value, list):
        return [camelize(item) for item in value]
    return value


def _page_params(page: Optional[int], limit: Optional[int]) -> Optional[PageParams]:
    return PageParams.from_query(page, limit)


def _list_response(items: List[Dict[str, Any]], total: int, params: Optional[PageParams]) -> Any:
    """Sayfa parametresi yoksa düz liste, varsa {data, pagination} zarfı döndürür."""
    if params is None:
        return camelize(items)
    return camelize(build_page(items, total, params))


def _member_or_404(member_id: int) -> Member:
    member = library.get_member(member_id)
    if not member:
        raise HTTPException(status_code=404, detail="Kullanıcı bulunamadı")
    return member


# --- Modeller ---
class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LoginModel(CamelModel):
    identifier: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


USERNAME_RULE_MESSAGE = "Kullanıcı adı yalnızca harf, rakam, nokta, tire ve alt çizgi içerebilir"


def _check_optional_username(v: Optional[str]) -> Optional[str]:
    # Boş kullanıcı adı verilirse ad veya e-postadan üretilir
    if v is not None and v.strip() and not IdentityValidator.is_valid_username(v):
        raise ValueError(USERNAME_RULE_MESSAGE)
    return v.strip() if v else v


class SignupModel(CamelModel):
    name: str = Field(..., min_length=1)
    username: str = Field(..., min_length=3, max_length=32)
    email: str
    password: str = Field(..., min_length=6)

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        if not IdentityValidator.is_valid_email(v):
            raise ValueError("Geçerli bir e-posta adresi girin")
        return IdentityValidator.normalize_email(v)

    @field_validator("username")
    @classmethod
    def check_username(cls, v: str) -> str:
        if not IdentityValidator.is_valid_username(v):
            raise ValueError(USERNAME_RULE_MESSAGE)
        return v.strip()


class TokenModel(CamelModel):
    token: str = Field(..., min_length=1)


class ResendVerificationModel(CamelModel):
    email: str = Field(..., min_length=1)


class BookCreateModel(CamelModel):
    title: str = Field(..., min_length=1)
    author: str = Field(..., min_length=1)
    isbn: Optional[str] = None
    genre: str = Field(..., min_length=1)
    publish_year: int
    shelf_number: Optional[str] = None
    available_copies: Optional[int] = Field(None, ge=0)
    total_copies: int = Field(1, ge=1)
    page_count: Optional[int] = Field(None, ge=1)


class BookUpdateModel(CamelModel):
    title: Optional[str] = Field(None, min_length=1)
    author: Optional[str] = Field(None, min_length=1)
    isbn: Optional[str] = None
    genre: Optional[str] = Field(None, min_length=1)
    publish_year: Optional[int] = None
    shelf_number: Optional[str] = None
    available_copies: Optional[int] = Field(None, ge=0)
    total_copies: Optional[int] = Field(None, ge=1)
    page_count: Optional[int] = Field(None, ge=1)


class MemberCreateModel(CamelModel):
    name: str = Field(..., min_length=1)
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    is_admin: bool = False
    membership_date: Optional[datetime] = None
    admin_rating: Optional[int] = Field(None, ge=1, le=5)
    admin_notes: Optional[str] = None

    @field_validator("username")
    @classmethod
    def check_username(cls, v: Optional[str]) -> Optional[str]:
        return _check_optional_username(v)

    @field_validator("email")
    @classmethod
    def check_email(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v.strip() and not IdentityValidator.is_valid_email(v):
            raise ValueError("Geçerli bir e-posta adresi girin")
        return IdentityValidator.normalize_email(v)


class MemberUpdateModel(CamelModel):
    name: Optional[str] = Field(None, min_length=1)
    username: Optional[str] = Field(None, min_length=3, max_length=32)
    email: Optional[str] = None
    password: Optional[str] = None
    is_admin: Optional[bool] = None
    membership_date: Optional[datetime] = None
    admin_rating: Optional[int] = Field(None, ge=1, le=5)
    admin_notes: Optional[str] = None

    @field_validator("username")
    @classmethod
    def check_username(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not IdentityValidator.is_valid_username(v):
            raise ValueError(USERNAME_RULE_MESSAGE)
        return v.strip() if v else v

    @field_validator("email")
    @classmethod
    def check_email(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v.strip() and not IdentityValidator.is_valid_email(v):
            raise ValueError("Geçerli bir e-posta adresi girin")
        return IdentityValidator.normalize_email(v)


def _parse_due_date(v: Any) -> Any:
    # İstemci tam zaman damgası gönderebilir; yalnızca tarih kısmı kullanılır
    if isinstance(v, str) and v.strip():
        return to_date(v.strip())
    return v


class BorrowingCreateModel(CamelModel):
    book_id: int
    user_id: int
    borrow_date: Optional[datetime] = None
    due_date: date
    status: Optional[Literal["borrowed", "overdue"]] = None
    notes: Optional[str] = None

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v: Any) -> Any:
        return _parse_due_date(v)


class BorrowingUpdateModel(CamelModel):
    status: Optional[Literal["borrowed", "returned", "overdue"]] = None
    due_date: Optional[date] = None
    # Kabul edilir ama yok sayılır; iade tarihi sunucuda belirlenir
    return_date: Optional[datetime] = None
    notes: Optional[str] = None
    extension_requested: Optional[bool] = None

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v: Any) -> Any:
        return _parse_due_date(v)


# --- Sağlık Kontrolü ---
@app.get("/api/health")
def health():
    db_ok = True
    try:
        conn = get_db_connection()
        conn.execute("SELECT 1")
        conn.close()
    except Exception:
        db_ok = False
    return {
        "status": "healthy" if db_ok else "degraded",
        "timestamp": datetime.now().isoformat(timespec="seconds"),
        "db": db_ok,
        "verificationStore": verification_store.backend,
        "emailConfigured": settings.email_configured,
    }


# --- Kimlik Doğrulama ---
@app.post("/api/auth/login")
def login(payload: LoginModel, request: Request):
    member = library.find_member_by_identifier(payload.identifier.strip())
    if not member or not verify_password(member, payload.password):
        logger.info("Başarısız giriş denemesi: %s", payload.identifier)
        raise HTTPException(status_code=401, detail="Geçersiz kullanıcı adı/e-posta veya şifre")

    if not member.email_verified:
        return JSONResponse(status_code=401, content={
            "message": "Lütfen e-posta adresinizi doğrulayın. Gelen kutunuzu kontrol edin.",
            "emailNotVerified": True,
        })

    login_session(request, member)
    logger.info("Giriş yapıldı: #%s", member.id)
    return {"user": camelize(member.to_dict())}


@app.post("/api/auth/logout")
def logout(request: Request):
    logout_session(request)
    return {"message": "Çıkış yapıldı"}


@app.get("/api/auth/me")
def me(member: Member = Depends(require_auth)):
    return {"user": camelize(member.to_dict())}


@app.post("/api/auth/signup")
def signup(payload: SignupModel):
    """Kaydı bekleyen kayıtlar deposuna koyar ve doğrulama e-postası gönderir. Üye henüz oluşturulmaz."""
    if library.get_member_by_email(payload.email) or verification_store.find_by_email(payload.email):
        return JSONResponse(status_code=400, content={
            "message": "Bu e-posta adresi zaten kayıtlı. Lütfen farklı bir e-posta adresi kullanın.",
            "reason": "duplicate_email",
        })
    if library.get_member_by_username(payload.username) or verification_store.find_by_username(payload.username):
        return JSONResponse(status_code=400, content={
            "message": "Bu kullanıcı adı zaten alınmış.",
            "reason": "duplicate_username",
        })

    token = generate_verification_token()
    verification_store.put(token, {
        "name": payload.name.strip(),
        "username": payload.username,
        "email": payload.email,
        "password": hash_password(payload.password),
        "created_at": datetime.now().isoformat(timespec="seconds"),
    })

    try:
        email_service.send_verification_email(payload.email, payload.name.strip(), token)
    except EmailDeliveryError:
        verification_store.delete(token)
        return JSONResponse(status_code=500, content={
            "message": "Doğrulama e-postası gönderilemedi. Lütfen tekrar deneyin.",
        })

    return {
        "message": "Doğrulama e-postası gönderildi. Kaydı tamamlamak için gelen kutunuzu kontrol edin.",
        "email": payload.email,
    }


def _complete_signup(token: str) -> Member:
    """Bekleyen kaydı ya da token'ı saklanan doğrulanmamış üyeyi doğrular."""
    pending = verification_store.get(token)
    if pending:
        verification_store.delete(token)
        member = Member(
            name=pending["name"],
            username=pending["username"],
            email=pending["email"],
            password=pending["password"],
            is_admin=False,
            email_verified=True,
        )
        # Bekleme süresinde aynı e-posta/kullanıcı adı alınmışsa DuplicateRecordError fırlar
        return library.add_member(member)

    member = library.find_member_by_verification_token(token)
    if member and not member.email_verified:
        expires = member.email_verification_expires
        if expires and datetime.fromisoformat(expires) < datetime.now():
            raise LibraryError("Doğrulama bağlantısının süresi dolmuş", reason="token_expired")
        return library.mark_email_verified(member.id)

    raise LibraryError("Geçersiz veya süresi dolmuş doğrulama bağlantısı", reason="invalid_token")


@app.get("/api/auth/verify-email")
def verify_email_page(token: Optional[str] = None):
    if not token:
        return FileResponse(os.path.join(STATIC_DIR, "verify-error.html"), status_code=400)
    try:
        member = _complete_signup(token)
    except LibraryError as e:
        logger.info("E-posta doğrulanamadı: %s", e.reason)
        return FileResponse(os.path.join(STATIC_DIR, "verify-error.html"), status_code=400)
    logger.info("E-posta doğrulandı: üye #%s", member.id)
    return FileResponse(os.path.join(STATIC_DIR, "verify-success.html"))


@app.post("/api/auth/verify-email", status_code=201)
@app.post("/api/auth/confirm", status_code=201)
def verify_email(payload: TokenModel):
    member = _complete_signup(payload.token)
    return {
        "message": "Hesabınız oluşturuldu. Artık giriş yapabilirsiniz.",
        "user": camelize(member.to_dict()),
    }


@app.post("/api/auth/resend-verification")
def resend_verification(payload: ResendVerificationModel):
    email = IdentityValidator.normalize_email(payload.email)
    member = library.get_member_by_email(email)
    if member:
        if member.email_verified:
            return JSONResponse(status_code=400, content={
                "message": "E-posta adresi zaten doğrulanmış",
                "reason": "already_verified",
            })
        token = generate_verification_token()
        library.set_verification_token(member.id, token, resend_token_expiry())
        name = member.name
    else:
        found = verification_store.find_by_email(email)
        if not found:
            raise HTTPException(status_code=404, detail="Kullanıcı bulunamadı")
        token, pending = found
        name = pending["name"]

    try:
        email_service.send_verification_email(email, name, token)
    except EmailDeliveryError:
        return JSONResponse(status_code=500, content={"message": "Doğrulama e-postası gönderilemedi"})
    return {"message": "Doğrulama e-postası gönderildi"}


# --- Üyeler ---
@app.get("/api/users")
def list_users(page: Optional[int] = None, limit: Optional[int] = None, _: Member = Depends(require_auth)):
    params = _page_params(page, limit)
    members, total = library.list_members(params)
    return _list_response([m.to_dict() for m in members], total, params)


@app.get("/api/users/search")
def search_users(q: str = "", page: Optional[int] = None, limit: Optional[int] = None,
                 _: Member = Depends(require_auth)):
    params = _page_params(page, limit) or PageParams()
    members, total = library.search_members(q.strip(), params)
    return _list_response([m.to_dict() for m in members], total, params)


@app.get("/api/users/{user_id}")
def get_user(user_id: int, _: Member = Depends(require_auth)):
    return camelize(_member_or_404(user_id).to_dict())


@app.get("/api/users/{user_id}/borrowings")
def get_user_borrowings(user_id: int, page: Optional[int] = None, limit: Optional[int] = None,
                        _: Member = Depends(require_auth)):
    _member_or_404(user_id)
    params = _page_params(page, limit)
    borrowings, total = library.list_member_borrowings(user_id, params)
    return _list_response([b.to_dict() for b in borrowings], total, params)


@app.post("/api/users", status_code=201)
def create_user(payload: MemberCreateModel, _: Member = Depends(require_admin)):
    data = payload.model_dump()
    if data["password"] and data["password"].strip():
        data["password"] = hash_password(data["password"])
    member = Member(
        name=data["name"],
        username=(data["username"] or "").strip(),
        email=data["email"],
        password=data["password"] or None,
        is_admin=data["is_admin"],
        membership_date=data["membership_date"],
        admin_rating=data["admin_rating"],
        admin_notes=data["admin_notes"],
        # Yönetici tarafından eklenen üyeler doğrulanmış kabul edilir
        email_verified=True,
    )
    return camelize(library.add_member(member).to_dict())


@app.put("/api/users/{user_id}")
def update_user(user_id: int, payload: MemberUpdateModel, _: Member = Depends(require_admin)):
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("password"):
        changes["password"] = hash_password(changes["password"])
    else:
        # Boş parola mevcut parolayı değiştirmez
        changes.pop("password", None)
    member = library.update_member(user_id, changes)
    if not member:
        raise HTTPException(status_code=404, detail="Kullanıcı bulunamadı")
    return camelize(member.to_dict())


@app.delete("/api/users/{user_id}")
def delete_user(user_id: int, _: Member = Depends(require_admin)):
    if not library.remove_member(user_id):
        raise HTTPException(status_code=404, detail="Kullanıcı bulunamadı")
    return {"message": "Kullanıcı başarıyla silindi"}


# --- Kitaplar ---
@app.get("/api/books")
def list_books(page: Optional[int] = None, limit: Optional[int] = None, _: Member = Depends(require_auth)):
    params = _page_params(page, limit)
    books, total = library.list_books(params)
    return _list_response([b.to_dict() for b in books], total, params)


@app.get("/api/books/search")
def search_books(q: Optional[str] = None, page: Optional[int] = None, limit: Optional[int] = None,
                 _: Member = Depends(require_auth)):
    if not q or not q.strip():
        return JSONResponse(status_code=400, content={"message": "Arama sorgusu gerekli", "reason": "validation_error"})
    params = _page_params(page, limit)
    books, total = library.search_books(q.strip(), params)
    return _list_response([b.to_dict() for b in books], total, params)


@app.get("/api/books/{book_id}")
def get_book(book_id: int, _: Member = Depends(require_auth)):
    found = library.get_book_with_borrowings(book_id)
    if not found:
        raise HTTPException(status_code=404, detail="Kitap bulunamadı")
    book, borrowings = found
    data = book.to_dict()
    data["borrowings"] = [b.to_dict() for b in borrowings]
    return camelize(data)


@app.post("/api/books", status_code=201)
def create_book(payload: BookCreateModel, _: Member = Depends(require_admin)):
    book = Book(**payload.model_dump())
    return camelize(library.add_book(book).to_dict())


@app.put("/api/books/{book_id}")
def update_book(book_id: int, payload: BookUpdateModel, _: Member = Depends(require_admin)):
    book = library.update_book(book_id, payload.model_dump(exclude_unset=True))
    if not book:
        raise HTTPException(status_code=404, detail="Kitap bulunamadı")
    return camelize(book.to_dict())


@app.delete("/api/books/{book_id}")
def delete_book(book_id: int, _: Member = Depends(require_admin)):
    if not library.remove_book(book_id):
        raise HTTPException(status_code=404, detail="Kitap bulunamadı")
    return {"message": "Kitap başarıyla silindi"}


# --- Ödünç İşlemleri ---
@app.get("/api/borrowings")
def list_borrowings(page: Optional[int] = None, limit: Optional[int] = None, _: Member = Depends(require_auth)):
    params = _page_params(page, limit)
    borrowings, total = library.list_borrowings(params)
    return _list_response([b.to_dict() for b in borrowings], total, params)


@app.get("/api/borrowings/search")
def search_borrowings(q: str = "", _: Member = Depends(require_auth)):
    return camelize([b.to_dict() for b in library.search_borrowings(q)])


@app.get("/api/borrowings/active")
def list_active_borrowings(page: Optional[int] = None, limit: Optional[int] = None,
                           _: Member = Depends(require_auth)):
    params = _page_params(page, limit)
    borrowings, total = library.list_active_borrowings(params)
    return _list_response([b.to_dict() for b in borrowings], total, params)


@app.get("/api/borrowings/active/search")
def search_active_borrowings(q: str = "", _: Member = Depends(require_auth)):
    return camelize([b.to_dict() for b in library.search_borrowings(q, active_only=True)])


@app.get("/api/borrowings/overdue")
def list_overdue_borrowings(page: Optional[int] = None, limit: Optional[int] = None,
                            _: Member = Depends(require_auth)):
    params = _page_params(page, limit)
    borrowings, total = library.list_overdue_borrowings(params)
    return _list_response([b.to_dict() for b in borrowings], total, params)


@app.get("/api/borrowings/returned")
def list_returned_borrowings(page: Optional[int] = None, limit: Optional[int] = None,
                             _: Member = Depends(require_auth)):
    params = _page_params(page, limit)
    borrowings, total = library.list_returned_borrowings(params)
    return _list_response([b.to_dict() for b in borrowings], total, params)


@app.post("/api/borrowings", status_code=201)
def create_borrowing(payload: BorrowingCreateModel, _: Member = Depends(require_auth)):
    borrowing = library.create_borrowing(
        book_id=payload.book_id,
        user_id=payload.user_id,
        due_date=payload.due_date,
        borrow_date=payload.borrow_date,
        notes=payload.notes,
    )
    return camelize(borrowing.to_dict())


@app.put("/api/borrowings/{borrowing_id}")
def update_borrowing(borrowing_id: int, payload: BorrowingUpdateModel, _: Member = Depends(require_auth)):
    changes = payload.model_dump(exclude_unset=True)
    changes.pop("return_date", None)
    borrowing = library.update_borrowing(borrowing_id, changes)
    if not borrowing:
        raise HTTPException(status_code=404, detail="Ödünç kaydı bulunamadı")
    return camelize(borrowing.to_dict())


@app.delete("/api/borrowings/{borrowing_id}")
def delete_borrowing(borrowing_id: int, _: Member = Depends(require_admin)):
    if not library.remove_borrowing(borrowing_id):
        raise HTTPException(status_code=404, detail="Ödünç kaydı bulunamadı")
    return {"message": "Ödünç kaydı başarıyla silindi"}


# --- İstatistikler ---
@app.get("/api/stats")
def get_stats(_: Member = Depends(require_auth)):
    return camelize(library_stats.get_stats())


@app.get("/api/stats/popular-books")
def popular_books(page: Optional[int] = None, limit: Optional[int] = None, _: Member = Depends(require_auth)):
    params = _page_params(page, limit)
    books, total = library_stats.get_popular_books(params)
    return _list_response(books, total, params)


@app.get("/api/stats/active-users")
def active_users(page: Optional[int] = None, limit: Optional[int] = None, _: Member = Depends(require_auth)):
    params = _page_params(page, limit)
    users, total = library_stats.get_active_users(params)
    return _list_response(users, total, params)


@app.get("/api/stats/top-readers-month")
def top_readers_month():
    return camelize(library_stats.get_top_readers_month())


@app.get("/api/stats/weekly-activity")
def weekly_activity(_: Member = Depends(require_auth)):
    return library_stats.get_weekly_activity()


@app.get("/api/stats/genre-distribution")
def genre_distribution(_: Member = Depends(require_auth)):
    return library_stats.get_genre_distribution()


@app.get("/api/translations/days")
def day_translations():
    return library_stats.DAY_TRANSLATIONS


# --- Etkinlikler ---
@app.get("/api/activities/recent")
def recent_activities(page: Optional[int] = None, limit: Optional[int] = None, _: Member = Depends(require_auth)):
    events = activity.get_recent_activities()
    params = _page_params(page, limit)
    if params is None:
        return camelize(events[:settings.recent_activity_size])
    return camelize(paginate_list(events, params))


@app.get("/api/activities/feed")
def activity_feed(page: Optional[int] = None, limit: Optional[int] = None, _: Member = Depends(require_auth)):
    items = activity.get_activity_feed()
    params = _page_params(page, limit)
    if params is None:
        return camelize(items)
    return camelize(paginate_list(items, params))


# --- Statik Dosyalar ---
app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")
