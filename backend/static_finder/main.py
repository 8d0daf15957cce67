from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import AsyncGenerator, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from loguru import logger
from pydantic import BaseModel

from .config import Settings, get_settings, setup_logging
from .datasources.base import DataSource
from .datasources.github_adapter import GitHubAdapter, GitHubError
from .schemas import CombinedAnalysis, FilterRuleSet, FilterRulesRequest, StreamRequest
from .services.cache import InMemoryCache
from .services.filter_rules import FilterRuleParser
from .services.llm_client import LLMClient
from .services.orchestrator import StreamOrchestrator
from .services.readme_analyzer import ReadmeAnalyzer
from .services.repository_analyzer import RepositoryAnalyzer
from .services.search_pager import SearchPager

STREAM_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


@dataclass
class Services:
    settings: Settings
    source: DataSource
    llm: LLMClient
    analyzer: RepositoryAnalyzer
    filter_parser: FilterRuleParser
    orchestrator: StreamOrchestrator


def build_services(
    settings: Settings, source: Optional[DataSource] = None, llm: Optional[LLMClient] = None
) -> Services:
    source = source if source is not None else GitHubAdapter(settings)
    llm = llm if llm is not None else LLMClient(settings)
    readme_analyzer = ReadmeAnalyzer(llm, max_chars=settings.readme_max_chars)
    filter_parser = FilterRuleParser(llm)
    analyzer = RepositoryAnalyzer(
        source,
        readme_analyzer,
        filter_parser,
        concurrency=settings.analysis_concurrency,
        cache=InMemoryCache(settings.cache_ttl_seconds),
    )
    orchestrator = StreamOrchestrator(settings, SearchPager(source), analyzer, filter_parser)
    logger.info(
        f"[启动] LLM {'已启用' if llm.enabled else '未配置，使用关键词匹配'}，"
        f"GitHub token {'已配置' if settings.github_token else '未配置'}"
    )
    return Services(settings, source, llm, analyzer, filter_parser, orchestrator)


def sse(event: BaseModel) -> str:
    return f"data: {event.model_dump_json()}\n\n"


def get_services(request: Request) -> Services:
    return request.app.state.services


def create_app(
    settings: Optional[Settings] = None,
    source: Optional[DataSource] = None,
    llm: Optional[LLMClient] = None,
) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings.log_level)
        services = build_services(settings, source, llm)
        app.state.services = services
        yield
        # injected collaborators belong to the caller
        if source is None:
            await services.source.aclose()
        if llm is None:
            await services.llm.aclose()

    app = FastAPI(title="Static Repo Finder", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health():
        return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}

    @app.get("/api/search")
    async def search_stream(
        query: str = Query(""),
        language: str = Query(""),
        stars: str = Query(""),
        ai_filter: str = Query("", alias="aiFilter"),
        per_page: int = Query(100, ge=1),
        page: int = Query(1, ge=1),
        start_page: int = Query(1, ge=1),
        analyze: bool = Query(True),
        services: Services = Depends(get_services),
    ):
        body = StreamRequest(
            query=query,
            language=language,
            stars=stars,
            ai_filter=ai_filter,
            per_page=per_page,
            page=page,
            start_page=start_page,
            analyze=analyze,
        )
        logger.info(f"[流式搜索] 开始: {body.model_dump()}")

        async def event_generator() -> AsyncGenerator[str, None]:
            async for event in services.orchestrator.events(body):
                yield sse(event)

        return StreamingResponse(
            event_generator(), media_type="text/event-stream; charset=utf-8", headers=STREAM_HEADERS
        )

    @app.get("/api/repos/{owner}/{repo}/analysis", response_model=CombinedAnalysis)
    async def analyze_repository(owner: str, repo: str, services: Services = Depends(get_services)):
        full_name = f"{owner}/{repo}"
        try:
            hit = await services.source.get_repository(full_name)
        except GitHubError as exc:
            raise HTTPException(status_code=502, detail=str(exc))
        if hit is None:
            raise HTTPException(status_code=404, detail=f"Repository not found: {full_name}")
        analysis, _ = await services.analyzer.analyze(hit)
        return analysis

    @app.post("/api/filter-rules", response_model=FilterRuleSet)
    async def parse_filter_rules(body: FilterRulesRequest, services: Services = Depends(get_services)):
        return await services.filter_parser.parse(body.text)

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8020)
