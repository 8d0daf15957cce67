import asyncio
import math
from typing import AsyncIterator, Optional, Tuple

import httpx
from loguru import logger

from ..datasources.base import DataSource
from ..datasources.github_adapter import GitHubError
from ..schemas import RawHit, SearchPage, SearchQuery

MAX_PER_PAGE = 100  # GitHub search hard limit
MAX_PAGES = 10
MAX_RESULTS = 1000  # GitHub only serves the first 1000 matches of a query


def total_pages(total_count: int) -> int:
    return min(math.ceil(max(total_count, 0) / MAX_PER_PAGE), MAX_PAGES)


def continuation_range(start_page: int, total_count: int) -> range:
    """Pages fetched after the first one: ``start_page+1 .. min(start_page+9, total_pages)``."""
    last = min(start_page + MAX_PAGES - 1, total_pages(total_count))
    return range(start_page + 1, last + 1)


class SearchPager:
    """Drives paginated repository search with GitHub's 1000-result ceiling.

    The first page is mandatory: its failure raises ``GitHubError``. A failing
    continuation page only truncates the run; results already yielded stand.
    """

    def __init__(self, source: DataSource):
        self.source = source

    async def pages(self, query: SearchQuery, cancel: Optional[asyncio.Event] = None) -> AsyncIterator[SearchPage]:
        query_string = query.to_query_string()
        per_page = max(1, min(query.per_page, MAX_PER_PAGE))
        first_index = query.first_page

        if cancel is not None and cancel.is_set():
            return
        logger.info(f"[搜索分页] 请求第 {first_index} 页: q={query_string!r}, per_page={per_page}")
        first = await self.source.search_page(query_string, page=first_index, per_page=per_page)
        if cancel is not None and cancel.is_set():
            return

        budget = MAX_RESULTS
        first = _trim(first, budget)
        budget -= len(first.hits)
        yield first

        pages = continuation_range(first_index, first.total_count)
        logger.info(f"[搜索分页] 共 {first.total_count} 条结果，继续请求 {len(pages)} 页")
        for index in pages:
            if budget <= 0:
                break
            if cancel is not None and cancel.is_set():
                logger.info(f"[搜索分页] 已取消，停止于第 {index} 页之前")
                return
            try:
                page = await self.source.search_page(query_string, page=index, per_page=MAX_PER_PAGE)
            except (GitHubError, httpx.HTTPError) as exc:
                logger.warning(f"[搜索分页] 第 {index} 页获取失败，停止分页并保留已有结果: {exc}")
                break
            if cancel is not None and cancel.is_set():
                return
            page = _trim(page, budget)
            budget -= len(page.hits)
            yield page
            if not page.hits:
                break

    async def paginate(
        self, query: SearchQuery, cancel: Optional[asyncio.Event] = None
    ) -> AsyncIterator[Tuple[RawHit, int]]:
        async for page in self.pages(query, cancel):
            for hit in page.hits:
                yield hit, page.index


def _trim(page: SearchPage, budget: int) -> SearchPage:
    if len(page.hits) <= budget:
        return page
    return page.model_copy(update={"hits": page.hits[: max(budget, 0)]})
