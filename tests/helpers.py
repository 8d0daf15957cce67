"""Test doubles shared by the test modules."""

import asyncio
from typing import Dict, List, Optional, Sequence, Tuple, Union

from static_finder.datasources.github_adapter import GitHubError
from static_finder.schemas import RawHit, SearchPage


def make_hit(full_name: str = "octo/site", **kwargs) -> RawHit:
    owner = full_name.split("/")[0]
    data = {
        "full_name": full_name,
        "description": "A small demo site",
        "language": "JavaScript",
        "stargazers_count": 10,
        "forks_count": 1,
        "html_url": f"https://github.com/{full_name}",
        "updated_at": "2024-01-01T00:00:00Z",
        "owner": owner,
        "owner_avatar": f"https://avatars.example/{owner}",
        "owner_html_url": f"https://github.com/{owner}",
    }
    data.update(kwargs)
    return RawHit(**data)


def make_page_hits(page: int, count: int) -> List[RawHit]:
    return [make_hit(f"owner{page}/repo{i}") for i in range(count)]


Value = Union[str, Exception, None]


class FakeSource:
    """In-memory DataSource with scripted responses."""

    def __init__(
        self,
        total_count: int = 0,
        pages: Optional[Dict[int, List[RawHit]]] = None,
        fail_pages: Sequence[int] = (),
        readmes: Optional[Dict[str, Value]] = None,
        directories: Optional[Dict[str, Union[List[str], Exception]]] = None,
        files: Optional[Dict[Tuple[str, str], Value]] = None,
        repos: Optional[Dict[str, RawHit]] = None,
        readme_delays: Optional[Dict[str, float]] = None,
        page_gates: Optional[Dict[int, asyncio.Event]] = None,
    ):
        self.total_count = total_count
        self.pages = pages or {}
        self.fail_pages = set(fail_pages)
        self.readmes = readmes or {}
        self.directories = directories or {}
        self.files = files or {}
        self.repos = repos or {}
        self.readme_delays = readme_delays or {}
        self.page_gates = page_gates or {}
        self.search_calls: List[Tuple[str, int, int]] = []
        self.readme_calls: List[str] = []

    async def search_page(self, query: str, page: int, per_page: int) -> SearchPage:
        self.search_calls.append((query, page, per_page))
        gate = self.page_gates.get(page)
        if gate is not None:
            await gate.wait()
        if page in self.fail_pages:
            raise GitHubError(f"GitHub API error: 500 page {page}", status=500)
        return SearchPage(index=page, total_count=self.total_count, hits=self.pages.get(page, []))

    async def get_repository(self, full_name: str) -> Optional[RawHit]:
        return self.repos.get(full_name)

    async def get_readme(self, full_name: str) -> Optional[str]:
        self.readme_calls.append(full_name)
        delay = self.readme_delays.get(full_name)
        if delay:
            await asyncio.sleep(delay)
        value = self.readmes.get(full_name)
        if isinstance(value, Exception):
            raise value
        return value

    async def list_directory(self, full_name: str, path: str = "") -> List[str]:
        value = self.directories.get(full_name, [])
        if isinstance(value, Exception):
            raise value
        return value

    async def get_file_text(self, full_name: str, path: str) -> Optional[str]:
        value = self.files.get((full_name, path))
        if isinstance(value, Exception):
            raise value
        return value

    @property
    def requested_pages(self) -> List[int]:
        return [page for _, page, _ in self.search_calls]


class StubLLM:
    """Stands in for LLMClient: replays scripted replies or raises."""

    def __init__(self, *replies: Union[str, Exception], enabled: bool = True):
        self.replies = list(replies)
        self.enabled = enabled
        self.calls: List[Tuple[str, str]] = []

    async def chat(self, system_prompt: str, user_prompt: str, model: Optional[str] = None) -> str:
        self.calls.append((system_prompt, user_prompt))
        reply = self.replies.pop(0) if self.replies else ""
        if isinstance(reply, Exception):
            raise reply
        return reply
