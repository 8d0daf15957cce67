"""Tests for the GitHub adapter, using httpx.MockTransport."""

import base64
import json

import httpx
import pytest

from static_finder.datasources.github_adapter import GitHubAdapter, GitHubError, decode_content


def _b64(text: str) -> str:
    encoded = base64.b64encode(text.encode()).decode()
    # GitHub wraps base64 content at 60 characters
    return "\n".join(encoded[i : i + 60] for i in range(0, len(encoded), 60))


SEARCH_ITEM = {
    "full_name": "octo/site",
    "description": "demo",
    "language": "HTML",
    "stargazers_count": 42,
    "forks_count": 3,
    "html_url": "https://github.com/octo/site",
    "updated_at": "2024-05-01T00:00:00Z",
    "pushed_at": "2024-05-02T00:00:00Z",
    "homepage": "https://octo.github.io/site",
    "topics": ["website"],
    "owner": {"login": "octo", "avatar_url": "https://a/octo", "html_url": "https://github.com/octo"},
}


def make_adapter(settings, handler) -> GitHubAdapter:
    return GitHubAdapter(settings, transport=httpx.MockTransport(handler))


class TestSearchPage:
    @pytest.mark.asyncio
    async def test_request_and_parsing(self, settings) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={"total_count": 321, "items": [SEARCH_ITEM, {"id": 1}]})

        adapter = make_adapter(settings, handler)
        page = await adapter.search_page("blog language:HTML", page=2, per_page=100)
        await adapter.aclose()

        assert seen["path"] == "/search/repositories"
        assert seen["params"] == {
            "q": "blog language:HTML",
            "sort": "stars",
            "order": "desc",
            "per_page": "100",
            "page": "2",
        }
        assert seen["auth"] == "Bearer test-token"
        assert page.index == 2
        assert page.total_count == 321
        assert len(page.hits) == 1
        hit = page.hits[0]
        assert hit.owner == "octo"
        assert hit.owner_avatar == "https://a/octo"
        assert hit.homepage == "https://octo.github.io/site"
        assert hit.topics == ["website"]

    @pytest.mark.asyncio
    async def test_error_status_raises(self, settings) -> None:
        adapter = make_adapter(settings, lambda request: httpx.Response(403, json={"message": "rate limited"}))
        with pytest.raises(GitHubError) as exc_info:
            await adapter.search_page("x", page=1, per_page=10)
        assert exc_info.value.status == 403
        assert "403" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_transport_error_raises(self, settings) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        adapter = make_adapter(settings, handler)
        with pytest.raises(GitHubError) as exc_info:
            await adapter.search_page("x", page=1, per_page=10)
        assert exc_info.value.status is None


class TestContents:
    @pytest.mark.asyncio
    async def test_readme_is_decoded(self, settings) -> None:
        text = "# Title\n" + "Live demo at https://x.vercel.app " * 5

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/repos/octo/site/readme"
            return httpx.Response(200, json={"content": _b64(text), "encoding": "base64"})

        adapter = make_adapter(settings, handler)
        assert await adapter.get_readme("octo/site") == text

    @pytest.mark.asyncio
    async def test_missing_readme_is_none(self, settings) -> None:
        adapter = make_adapter(settings, lambda request: httpx.Response(404, json={"message": "Not Found"}))
        assert await adapter.get_readme("octo/site") is None

    @pytest.mark.asyncio
    async def test_readme_server_error_raises(self, settings) -> None:
        adapter = make_adapter(settings, lambda request: httpx.Response(502))
        with pytest.raises(GitHubError):
            await adapter.get_readme("octo/site")

    @pytest.mark.asyncio
    async def test_list_directory(self, settings) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/repos/octo/site/contents"
            return httpx.Response(200, json=[{"name": "index.html"}, {"name": "dist"}, {"type": "file"}])

        adapter = make_adapter(settings, handler)
        assert await adapter.list_directory("octo/site") == ["index.html", "dist"]

    @pytest.mark.asyncio
    async def test_get_file_text(self, settings) -> None:
        manifest = {"dependencies": {"react": "^18"}}

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/repos/octo/site/contents/package.json"
            return httpx.Response(200, json={"content": _b64(json.dumps(manifest)), "encoding": "base64"})

        adapter = make_adapter(settings, handler)
        assert json.loads(await adapter.get_file_text("octo/site", "package.json")) == manifest

    @pytest.mark.asyncio
    async def test_get_repository(self, settings) -> None:
        adapter = make_adapter(settings, lambda request: httpx.Response(200, json=SEARCH_ITEM))
        hit = await adapter.get_repository("octo/site")
        assert hit is not None
        assert hit.full_name == "octo/site"
        assert hit.pushed_at == "2024-05-02T00:00:00Z"

    def test_decode_content_plain_encoding(self) -> None:
        assert decode_content({"content": "raw text", "encoding": "utf-8"}) == "raw text"


class TestMalformedPayloads:
    @pytest.mark.asyncio
    async def test_bad_base64_readme_raises_github_error(self, settings) -> None:
        adapter = make_adapter(settings, lambda request: httpx.Response(200, json={"content": "abc", "encoding": "base64"}))
        with pytest.raises(GitHubError):
            await adapter.get_readme("octo/site")

    @pytest.mark.asyncio
    async def test_non_json_search_page_raises_github_error(self, settings) -> None:
        adapter = make_adapter(settings, lambda request: httpx.Response(200, text="<html>proxy error</html>"))
        with pytest.raises(GitHubError) as exc_info:
            await adapter.search_page("x", page=2, per_page=100)
        assert "non-JSON" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_unexpected_search_shape_raises_github_error(self, settings) -> None:
        adapter = make_adapter(settings, lambda request: httpx.Response(200, json=["not", "a", "dict"]))
        with pytest.raises(GitHubError):
            await adapter.search_page("x", page=1, per_page=10)

    @pytest.mark.asyncio
    async def test_invalid_item_raises_github_error(self, settings) -> None:
        item = dict(SEARCH_ITEM, stargazers_count="lots")
        adapter = make_adapter(settings, lambda request: httpx.Response(200, json={"total_count": 1, "items": [item]}))
        with pytest.raises(GitHubError):
            await adapter.search_page("x", page=1, per_page=10)

    @pytest.mark.asyncio
    async def test_non_json_listing_and_file_raise_github_error(self, settings) -> None:
        adapter = make_adapter(settings, lambda request: httpx.Response(200, text="Service Unavailable"))
        with pytest.raises(GitHubError):
            await adapter.list_directory("octo/site")
        with pytest.raises(GitHubError):
            await adapter.get_file_text("octo/site", "package.json")

    def test_decode_content_bad_padding(self) -> None:
        with pytest.raises(GitHubError):
            decode_content({"content": "abc", "encoding": "base64"})
