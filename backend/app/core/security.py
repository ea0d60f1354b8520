from datetime import datetime, timedelta, timezone

import jwt
from cryptography.fernet import InvalidToken
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..services.supabase.base import Session
from .config import settings
from .encryption import decrypt, encrypt

security_scheme = HTTPBearer()


def create_access_token(session: Session) -> str:
    """JWT 액세스 토큰 생성 (Supabase 토큰은 암호화해서 ptk 클레임에 보관)"""
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.JWT_EXPIRE_MINUTES)
    payload = {
        "sub": session.user_id,
        "email": session.email,
        "ptk": encrypt(session.access_token),
        "exp": expire,
    }
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def verify_token(credentials: HTTPAuthorizationCredentials = Depends(security_scheme)) -> dict:
    """JWT 토큰 검증 의존성"""
    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
        )
        return payload
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")


def get_current_session(payload: dict = Depends(verify_token)) -> Session:
    """토큰 클레임 → 현재 로그인 세션"""
    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    try:
        provider_token = decrypt(payload.get("ptk", ""))
    except InvalidToken:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    return Session(
        user_id=user_id,
        email=payload.get("email", ""),
        access_token=provider_token,
    )
