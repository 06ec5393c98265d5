"""
E-posta doğrulaması bekleyen kayıtlar için süreli depo.
Redis kullanılamıyorsa bellek içi depoya geri döner.
"""

import json
import logging
import threading
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import redis

from config import settings

logger = logging.getLogger(__name__)

KEY_PREFIX = "verify:"


class VerificationStore:
    """Bekleyen kayıtları ``verify:<token>`` anahtarıyla TTL süresince tutar."""

    def __init__(self, redis_url: Optional[str] = None, ttl_seconds: Optional[int] = None):
        self.redis_client = None
        self.memory_store: Dict[str, Any] = {}
        self.memory_store_lock = threading.RLock()
        self.ttl_seconds = ttl_seconds or settings.verification_ttl_seconds

        # Redis'i başlatmayı dene
        self._init_redis(settings.redis_url if redis_url is None else redis_url)

    def _init_redis(self, redis_url: str):
        """Varsa Redis bağlantısını başlat."""
        if not redis_url:
            logger.info("REDIS_URL tanımlı değil, bekleyen kayıtlar bellekte tutuluyor")
            return

        try:
            self.redis_client = redis.from_url(
                redis_url,
                decode_responses=True,
                socket_connect_timeout=1,
                socket_timeout=1,
                retry_on_timeout=True,
                health_check_interval=30,
            )
            # Bağlantıyı test et
            self.redis_client.ping()
            logger.info("Redis doğrulama deposu başarıyla başlatıldı")
        except redis.RedisError as e:
            logger.warning(f"Redis başlatılamadı: {e}. Bekleyen kayıtlar bellekte tutuluyor.")
            self.redis_client = None

    @staticmethod
    def _make_key(token: str) -> str:
        return f"{KEY_PREFIX}{token}"

    @property
    def backend(self) -> str:
        return "redis" if self.redis_client is not None else "memory"

    def put(self, token: str, payload: Dict[str, Any], ttl_seconds: Optional[int] = None) -> None:
        """Bekleyen kaydı TTL ile sakla."""
        ttl = ttl_seconds or self.ttl_seconds
        key = self._make_key(token)

        if self.redis_client:
            self.redis_client.setex(key, ttl, json.dumps(payload, ensure_ascii=False))
            return

        with self.memory_store_lock:
            self.memory_store[key] = (dict(payload), datetime.now() + timedelta(seconds=ttl))

    def get(self, token: str) -> Optional[Dict[str, Any]]:
        """Süresi dolmamış bekleyen kaydı döndür."""
        key = self._make_key(token)

        if self.redis_client:
            data = self.redis_client.get(key)
            return json.loads(data) if data is not None else None

        with self.memory_store_lock:
            entry = self.memory_store.get(key)
            if not entry:
                return None
            payload, expires_at = entry
            if datetime.now() >= expires_at:
                # Süresi dolmuş, kaldır
                del self.memory_store[key]
                return None
            return dict(payload)

    def delete(self, token: str) -> bool:
        key = self._make_key(token)

        if self.redis_client:
            return bool(self.redis_client.delete(key))

        with self.memory_store_lock:
            return self.memory_store.pop(key, None) is not None

    def find_by_email(self, email: str):
        """E-postaya ait bekleyen kaydı bul; (token, payload) veya None döndürür."""
        wanted = email.strip().lower()

        if self.redis_client:
            for key in self.redis_client.scan_iter(match=f"{KEY_PREFIX}*"):
                data = self.redis_client.get(key)
                if data is None:
                    continue
                payload = json.loads(data)
                if (payload.get("email") or "").lower() == wanted:
                    return key[len(KEY_PREFIX):], payload
            return None

        with self.memory_store_lock:
            now = datetime.now()
            for key, (payload, expires_at) in list(self.memory_store.items()):
                if now >= expires_at:
                    del self.memory_store[key]
                    continue
                if (payload.get("email") or "").lower() == wanted:
                    return key[len(KEY_PREFIX):], dict(payload)
        return None

    def find_by_username(self, username: str):
        """Kullanıcı adına ait bekleyen kaydı bul."""
        wanted = username.strip().lower()

        if self.redis_client:
            for key in self.redis_client.scan_iter(match=f"{KEY_PREFIX}*"):
                data = self.redis_client.get(key)
                if data is not None and (json.loads(data).get("username") or "").lower() == wanted:
                    return key[len(KEY_PREFIX):], json.loads(data)
            return None

        with self.memory_store_lock:
            now = datetime.now()
            for key, (payload, expires_at) in list(self.memory_store.items()):
                if now < expires_at and (payload.get("username") or "").lower() == wanted:
                    return key[len(KEY_PREFIX):], dict(payload)
        return None

    def clear(self) -> None:
        """Tüm bekleyen kayıtları temizle."""
        if self.redis_client:
            keys = list(self.redis_client.scan_iter(match=f"{KEY_PREFIX}*"))
            if keys:
                self.redis_client.delete(*keys)

        with self.memory_store_lock:
            self.memory_store.clear()


# Global doğrulama deposu örneği
verification_store = VerificationStore()
