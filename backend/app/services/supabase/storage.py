"""Supabase Storage 이미지 관리.

매매 기록에 첨부한 이미지를 업로드/삭제하고, 조회용 서명 URL을 발급한다.
"""

import asyncio
import logging
import uuid
from dataclasses import replace
from pathlib import PurePath
from urllib.parse import quote

import httpx

from ...core.config import settings
from ..trade_record import TradeRecord
from .base import SupabaseClient, SupabaseError

logger = logging.getLogger(__name__)


def build_image_path(user_id: str, filename: str | None) -> str:
    """저장 경로: <user_id>/<랜덤 ID>.<확장자>"""
    suffix = PurePath(filename or "").suffix.lower().lstrip(".")
    extension = suffix if suffix.isalnum() else "png"
    return f"{user_id}/{uuid.uuid4().hex}.{extension}"


class ImageStorage(SupabaseClient):
    """Supabase Storage REST 클라이언트 (사용자 토큰으로 접근)"""

    def __init__(self, access_token: str, bucket: str | None = None, **kwargs):
        super().__init__(**kwargs)
        self.access_token = access_token
        self.bucket = bucket or settings.STORAGE_BUCKET

    def _object_url(self, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/{self.bucket}/{quote(path)}"

    async def _request(self, method: str, url: str, headers: dict | None = None, **kwargs) -> httpx.Response:
        try:
            resp = await self.client.request(
                method, url, headers={**self._headers(self.access_token), **(headers or {})}, **kwargs
            )
        except httpx.HTTPError as e:
            raise SupabaseError(f"스토리지 연결 실패: {e}")
        self._check(resp)
        return resp

    async def upload(self, path: str, data: bytes, content_type: str | None = None) -> None:
        """이미지 업로드 (덮어쓰기 없음)"""
        await self._request(
            "POST",
            self._object_url(path),
            content=data,
            headers={
                "Content-Type": content_type or "application/octet-stream",
                "Cache-Control": f"max-age={settings.IMAGE_CACHE_CONTROL}",
                "x-upsert": "false",
            },
        )

    async def create_signed_url(self, path: str, ttl_seconds: int | None = None) -> str:
        """조회용 임시 서명 URL 발급"""
        resp = await self._request(
            "POST",
            f"{self.base_url}/storage/v1/object/sign/{self.bucket}/{quote(path)}",
            json={"expiresIn": ttl_seconds or settings.SIGNED_URL_TTL_SECONDS},
        )
        signed = resp.json().get("signedURL") or resp.json().get("signedUrl")
        if not signed:
            raise SupabaseError("서명 URL 응답이 비어 있습니다", resp.status_code)
        if signed.startswith("http"):
            return signed
        return f"{self.base_url}/storage/v1{signed}"

    async def delete(self, path: str) -> None:
        """이미지 삭제"""
        await self._request(
            "DELETE",
            f"{self.base_url}/storage/v1/object/{self.bucket}",
            json={"prefixes": [path]},
        )


async def attach_image_url(record: TradeRecord, storage: ImageStorage) -> TradeRecord:
    """이미지가 있으면 서명 URL을 붙인 사본 반환. 실패 시 원본 그대로."""
    if not record.image_path:
        return record
    try:
        url = await storage.create_signed_url(record.image_path)
    except SupabaseError as e:
        logger.warning("이미지 URL 생성 실패 (%s): %s", record.image_path, e)
        return record
    return replace(record, image_url=url)


async def resolve_image_urls(records: list[TradeRecord], storage: ImageStorage) -> list[TradeRecord]:
    """목록 로드 후 기록별 이미지 서명 URL 갱신 (순서 유지)"""
    return list(await asyncio.gather(*(attach_image_url(r, storage) for r in records)))
