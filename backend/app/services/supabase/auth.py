"""Supabase Auth (GoTrue) 세션 관리.

이메일/비밀번호 로그인, 로그아웃, 세션 변경 리스너를 제공한다.
"""

import logging
from typing import Callable

import httpx

from .base import AuthError, Session, SupabaseClient

logger = logging.getLogger(__name__)

SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"

SessionListener = Callable[[str, Session], None]


class SupabaseAuth(SupabaseClient):
    """Supabase Auth REST 클라이언트"""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._listeners: list[SessionListener] = []

    def on_session_change(self, callback: SessionListener) -> Callable[[], None]:
        """세션 변경 리스너 등록. 반환값 호출 시 해제."""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _notify(self, event: str, session: Session) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, session)
            except Exception:
                logger.exception("세션 리스너 실행 실패: %s", event)

    async def sign_in(self, email: str, password: str) -> Session:
        """이메일/비밀번호 로그인"""
        try:
            resp = await self.client.post(
                f"{self.base_url}/auth/v1/token",
                params={"grant_type": "password"},
                json={"email": email, "password": password},
                headers=self._headers(),
            )
        except httpx.HTTPError as e:
            raise AuthError(f"인증 서버 연결 실패: {e}")
        self._check(resp, AuthError)

        data = resp.json()
        user = data.get("user") or {}
        if not data.get("access_token") or not user.get("id"):
            raise AuthError("인증 응답이 올바르지 않습니다", resp.status_code)

        session = Session(
            user_id=user["id"],
            email=user.get("email", email),
            access_token=data["access_token"],
        )
        logger.info("로그인: %s", session.email)
        self._notify(SIGNED_IN, session)
        return session

    async def sign_out(self, session: Session) -> None:
        """로그아웃 (Supabase 토큰 폐기)"""
        try:
            resp = await self.client.post(
                f"{self.base_url}/auth/v1/logout",
                headers=self._headers(session.access_token),
            )
        except httpx.HTTPError as e:
            raise AuthError(f"인증 서버 연결 실패: {e}")
        # 이미 만료된 토큰은 로그아웃된 것으로 간주
        if resp.status_code != 401:
            self._check(resp, AuthError)
        logger.info("로그아웃: %s", session.email)
        self._notify(SIGNED_OUT, session)
