import asyncio
from collections import deque
from contextlib import aclosing
from typing import AsyncIterator, Deque, Optional

import httpx
from loguru import logger

from ..config import Settings
from ..datasources.github_adapter import GitHubError
from ..schemas import (
    EndEvent,
    ErrorEvent,
    FilterRuleSet,
    RawHit,
    RepositoryRecord,
    ResultEvent,
    SearchPage,
    Stage,
    StageEvent,
    StreamEvent,
    StreamRequest,
    TotalCountEvent,
)
from .channel import ChannelClosed, EventChannel
from .filter_rules import FilterRuleParser
from .repository_analyzer import RepositoryAnalyzer
from .search_pager import SearchPager


class MissingCredentialError(RuntimeError):
    pass


_TRANSITIONS = {
    Stage.IDLE: {Stage.SEARCHING, Stage.ERROR},
    Stage.SEARCHING: {Stage.ANALYZING, Stage.ERROR},
    Stage.ANALYZING: {Stage.GENERATING, Stage.ERROR},
    Stage.GENERATING: {Stage.DONE, Stage.ERROR},
}

# stages announced to the caller with a stage event
_VISIBLE_STAGES = {Stage.SEARCHING, Stage.ANALYZING, Stage.GENERATING}


class _Run:
    """State of one streaming request."""

    def __init__(self, channel: EventChannel[StreamEvent]):
        self.channel = channel
        self.stage = Stage.IDLE
        self.pending: Deque["asyncio.Task[RepositoryRecord]"] = deque()
        self.emitted = 0

    async def advance(self, stage: Stage) -> None:
        if stage not in _TRANSITIONS.get(self.stage, ()):
            raise RuntimeError(f"illegal stage transition {self.stage.value} -> {stage.value}")
        self.stage = stage
        if stage in _VISIBLE_STAGES:
            await self.channel.send(StageEvent(stage=stage.value))

    async def fail(self, message: str) -> None:
        self.stage = Stage.ERROR
        await self.channel.send(ErrorEvent(message=message))


class StreamOrchestrator:
    """Runs one search request end to end and emits typed events onto a channel.

    Event order: stage(searching), total_count, stage(analyzing), result*,
    stage(generating), end; or an error event in place of the remainder.
    Enrichment runs concurrently but results are emitted in discovery order.
    """

    def __init__(
        self,
        settings: Settings,
        pager: SearchPager,
        analyzer: RepositoryAnalyzer,
        filter_parser: FilterRuleParser,
        window: Optional[int] = None,
    ):
        self.settings = settings
        self.pager = pager
        self.analyzer = analyzer
        self.filter_parser = filter_parser
        # enrichment tasks allowed in flight before the head must be emitted
        self.window = window or settings.analysis_concurrency * 4

    def check_credentials(self) -> None:
        if self.settings.github_token_required and not self.settings.github_token:
            raise MissingCredentialError("GITHUB_TOKEN is not configured")

    async def run(self, request: StreamRequest, channel: EventChannel[StreamEvent]) -> None:
        run = _Run(channel)
        try:
            await self._run(request, run)
        except ChannelClosed:
            logger.info(f"[流式搜索] 客户端已取消，停止处理 (已发送 {run.emitted} 条结果)")
        except Exception as exc:
            logger.exception(f"[流式搜索] 未预期的错误: {type(exc).__name__}: {exc}")
            if not channel.closed and run.stage not in (Stage.DONE, Stage.ERROR):
                await run.fail(str(exc) or type(exc).__name__)
        finally:
            for task in run.pending:
                task.cancel()
            if run.pending:
                await asyncio.gather(*run.pending, return_exceptions=True)
            channel.close()

    async def _run(self, request: StreamRequest, run: _Run) -> None:
        try:
            self.check_credentials()
        except MissingCredentialError as exc:
            logger.error(f"[流式搜索] {exc}")
            await run.fail(str(exc))
            return

        await run.advance(Stage.SEARCHING)
        query = request.to_search_query()
        rules: Optional[FilterRuleSet] = None
        if request.analyze and request.ai_filter.strip():
            rules = await self.filter_parser.parse(request.ai_filter)

        cancel = run.channel.closed_event
        async with aclosing(self.pager.pages(query, cancel=cancel)) as pages:
            try:
                first = await anext(pages)
            except StopAsyncIteration:
                # cancelled before the first page resolved
                raise ChannelClosed()
            except (GitHubError, httpx.HTTPError) as exc:
                logger.error(f"[流式搜索] 首页请求失败: {exc}")
                await run.fail(str(exc))
                return

            await run.channel.send(TotalCountEvent(total_count=first.total_count))
            await run.advance(Stage.ANALYZING)
            await self._dispatch(first, request, rules, run)
            async for page in pages:
                await self._dispatch(page, request, rules, run)

        await self._flush(run, limit=0)
        logger.info(f"[流式搜索] 处理完成，共发送 {run.emitted} 条结果")
        await run.advance(Stage.GENERATING)
        await run.advance(Stage.DONE)
        await run.channel.send(EndEvent())

    async def _dispatch(
        self, page: SearchPage, request: StreamRequest, rules: Optional[FilterRuleSet], run: _Run
    ) -> None:
        logger.debug(f"[流式搜索] 第 {page.index} 页: {len(page.hits)} 个仓库")
        for hit in page.hits:
            if run.channel.closed:
                raise ChannelClosed()
            if not request.analyze:
                await self._emit(run, RepositoryRecord.from_hit(hit))
                continue
            run.pending.append(asyncio.create_task(self._enrich(hit, rules)))
            await self._flush(run, limit=self.window)

    async def _flush(self, run: _Run, limit: int) -> None:
        """Emit finished results at the head; wait on the head while more than ``limit`` are in flight."""
        while run.pending and (run.pending[0].done() or len(run.pending) > limit):
            record = await run.pending[0]
            run.pending.popleft()
            await self._emit(run, record)

    async def _emit(self, run: _Run, record: RepositoryRecord) -> None:
        await run.channel.send(ResultEvent(result=record))
        run.emitted += 1

    async def _enrich(self, hit: RawHit, rules: Optional[FilterRuleSet]) -> RepositoryRecord:
        try:
            return await self.analyzer.enrich(hit, rules)
        except Exception as exc:
            logger.warning(f"[流式搜索] 仓库分析失败，发送未分析结果: {hit.full_name}, {type(exc).__name__}: {exc}")
            return RepositoryRecord.from_hit(hit)

    async def events(self, request: StreamRequest) -> AsyncIterator[StreamEvent]:
        """Consumer side: run the request in a task and yield its events.

        Leaving the iteration early (client disconnect) closes the channel and
        cancels the producer; nothing is emitted after that.
        """
        channel: EventChannel[StreamEvent] = EventChannel()
        producer = asyncio.create_task(self.run(request, channel))
        try:
            async for event in channel:
                yield event
        finally:
            channel.close()
            if not producer.done():
                producer.cancel()
            await asyncio.gather(producer, return_exceptions=True)
