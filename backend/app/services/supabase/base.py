from dataclasses import dataclass
from typing import Optional

import httpx

from ...core.config import settings


class SupabaseError(Exception):
    """Supabase API 호출 실패"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AuthError(SupabaseError):
    """로그인/로그아웃 실패"""


@dataclass(frozen=True)
class Session:
    user_id: str
    email: str
    access_token: str


def error_message(resp: httpx.Response) -> str:
    """응답 본문에서 에러 메시지 추출 (없으면 HTTP 상태)"""
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("message", "error_description", "msg", "error"):
            if body.get(key):
                return str(body[key])
    return f"HTTP {resp.status_code}"


class SupabaseClient:
    """Supabase REST 공통 클라이언트"""

    def __init__(
        self,
        base_url: str | None = None,
        anon_key: str | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = (base_url or settings.SUPABASE_URL).rstrip("/")
        self.anon_key = anon_key or settings.SUPABASE_ANON_KEY
        self.client = client or httpx.AsyncClient(timeout=30.0)

    def _headers(self, access_token: str | None = None) -> dict:
        return {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {access_token or self.anon_key}",
        }

    def _check(self, resp: httpx.Response, error_cls: type[SupabaseError] = SupabaseError) -> None:
        if resp.is_error:
            raise error_cls(error_message(resp), resp.status_code)

    async def close(self) -> None:
        """HTTP 클라이언트 종료"""
        await self.client.aclose()
