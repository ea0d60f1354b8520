"""인증 라우터 - Supabase 이메일/비밀번호 로그인."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from ..core.security import create_access_token, get_current_session
from ..services.supabase import AuthError, Session, SupabaseAuth, SupabaseError

router = APIRouter(prefix="/api/auth", tags=["auth"])
logger = logging.getLogger(__name__)

auth_provider = SupabaseAuth()


def get_auth() -> SupabaseAuth:
    """FastAPI 의존성: 세션 제공자"""
    return auth_provider


class LoginRequest(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: str
    email: str


class SessionResponse(BaseModel):
    user_id: str
    email: str


@router.post("/login", response_model=TokenResponse)
async def login(req: LoginRequest, auth: SupabaseAuth = Depends(get_auth)):
    """로그인: Supabase 인증 후 앱 토큰 발급"""
    email = req.email.strip()
    if not email or not req.password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="이메일과 비밀번호를 입력해 주세요.",
        )

    try:
        session = await auth.sign_in(email, req.password)
    except AuthError as e:
        logger.error("로그인 실패: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message or "로그인에 실패했습니다.",
        )

    return TokenResponse(
        access_token=create_access_token(session),
        user_id=session.user_id,
        email=session.email,
    )


@router.post("/logout", status_code=204)
async def logout(
    session: Session = Depends(get_current_session),
    auth: SupabaseAuth = Depends(get_auth),
):
    """로그아웃"""
    try:
        await auth.sign_out(session)
    except SupabaseError as e:
        logger.error("로그아웃 실패: %s", e)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="로그아웃에 실패했습니다.")


@router.get("/session", response_model=SessionResponse)
async def current_session(session: Session = Depends(get_current_session)):
    """현재 로그인 세션"""
    return SessionResponse(user_id=session.user_id, email=session.email)
