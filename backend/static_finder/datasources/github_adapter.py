import base64
import binascii
from typing import Any, Dict, List, Optional

import httpx
from loguru import logger
from pydantic import ValidationError

from ..config import Settings
from ..schemas import RawHit, SearchPage
from .base import DataSource


class GitHubError(RuntimeError):
    """Non-success response, transport failure or unreadable payload from GitHub."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


def decode_content(payload: Dict[str, Any]) -> str:
    """Decode the ``content`` field of a contents API response."""
    raw = payload.get("content") or ""
    if payload.get("encoding", "base64") != "base64":
        return raw
    try:
        return base64.b64decode(raw).decode("utf-8", errors="ignore")
    except (binascii.Error, ValueError) as exc:
        raise GitHubError(f"GitHub content decode error: {exc}") from exc


class GitHubAdapter(DataSource):
    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "Static-Repo-Finder",
        }
        if settings.github_token:
            headers["Authorization"] = f"Bearer {settings.github_token}"
        self.headers = headers
        client_kwargs: Dict[str, Any] = {
            "base_url": str(settings.github_base_url),
            "headers": headers,
            "timeout": settings.request_timeout_seconds,
        }
        if transport is not None:
            client_kwargs["transport"] = transport
        elif settings.github_proxy:
            # http(s):// and socks5:// are both accepted by httpx
            client_kwargs["proxy"] = settings.github_proxy
        self.client = httpx.AsyncClient(**client_kwargs)

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        try:
            resp = await self.client.get(path, params=params)
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            body = exc.response.text[:200]
            raise GitHubError(f"GitHub API error: {status} {body}", status=status) from exc
        except httpx.RequestError as exc:
            raise GitHubError(f"GitHub request error: {type(exc).__name__} {exc!r}") from exc
        remaining = resp.headers.get("X-RateLimit-Remaining")
        if remaining is not None and remaining.isdigit() and int(remaining) < 5:
            logger.warning(f"[GitHub] 速率限制即将耗尽: remaining={remaining}, path={path}")
        return resp

    async def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        resp = await self._get(path, params=params)
        try:
            return resp.json()
        except ValueError as exc:
            # proxies and captive portals answer 200 with an HTML page
            raise GitHubError(
                f"GitHub returned a non-JSON body for {path}: {resp.text[:200]!r}", status=resp.status_code
            ) from exc

    def _to_hit(self, item: Any) -> RawHit:
        if not isinstance(item, dict):
            raise GitHubError(f"Unexpected repository payload: {type(item).__name__}")
        try:
            return RawHit.from_api(item)
        except ValidationError as exc:
            raise GitHubError(f"Invalid repository payload for {item.get('full_name')}: {exc}") from exc

    async def search_page(self, query: str, page: int, per_page: int) -> SearchPage:
        params = {
            "q": query,
            "sort": "stars",
            "order": "desc",
            "per_page": per_page,
            "page": page,
        }
        data = await self._get_json("/search/repositories", params=params)
        if not isinstance(data, dict):
            raise GitHubError(f"Unexpected search payload on page {page}: {type(data).__name__}")
        items = data.get("items") or []
        hits = [self._to_hit(item) for item in items if isinstance(item, dict) and item.get("full_name")]
        try:
            return SearchPage(index=page, total_count=data.get("total_count") or 0, hits=hits)
        except ValidationError as exc:
            raise GitHubError(f"Invalid search payload on page {page}: {exc}") from exc

    async def get_repository(self, full_name: str) -> Optional[RawHit]:
        """根据 full_name 获取单个仓库的详细信息"""
        try:
            data = await self._get_json(f"/repos/{full_name}")
        except GitHubError as exc:
            if exc.status == 404:
                return None
            raise
        return self._to_hit(data)

    async def get_readme(self, full_name: str) -> Optional[str]:
        try:
            data = await self._get_json(f"/repos/{full_name}/readme")
        except GitHubError as exc:
            if exc.status == 404:
                return None
            raise
        if not isinstance(data, dict):
            return None
        return decode_content(data)

    async def list_directory(self, full_name: str, path: str = "") -> List[str]:
        data = await self._get_json(f"/repos/{full_name}/contents/{path}".rstrip("/"))
        if not isinstance(data, list):
            return []
        return [entry.get("name", "") for entry in data if isinstance(entry, dict) and entry.get("name")]

    async def get_file_text(self, full_name: str, path: str) -> Optional[str]:
        try:
            data = await self._get_json(f"/repos/{full_name}/contents/{path}")
        except GitHubError as exc:
            if exc.status == 404:
                return None
            raise
        if not isinstance(data, dict):
            return None
        return decode_content(data)
