import asyncio
from typing import Optional, Tuple

import httpx
from loguru import logger

from ..datasources.base import DataSource
from ..datasources.github_adapter import GitHubError
from ..schemas import CombinedAnalysis, FilterRuleSet, RawHit, ReadmeSignal, RepositoryRecord
from .cache import InMemoryCache
from .file_structure import analyze_file_structure
from .filter_rules import README_EXCERPT_CHARS, FilterRuleParser
from .readme_analyzer import ReadmeAnalyzer
from .score_engine import analyze_about, analyze_text, combine


class RepositoryAnalyzer:
    """Collects README, about metadata and file structure for one repository and fuses them.

    Every sub-call degrades to its fallback value on failure, so ``analyze``
    and ``enrich`` always produce a result for the repository.
    """

    def __init__(
        self,
        source: DataSource,
        readme_analyzer: ReadmeAnalyzer,
        filter_parser: FilterRuleParser,
        concurrency: int = 5,
        cache: Optional[InMemoryCache] = None,
    ):
        self.source = source
        self.readme_analyzer = readme_analyzer
        self.filter_parser = filter_parser
        self.cache = cache
        self._semaphore = asyncio.Semaphore(max(1, concurrency))

    async def _readme_signal(self, hit: RawHit) -> Tuple[ReadmeSignal, str]:
        try:
            content = await self.source.get_readme(hit.full_name) or ""
        except (GitHubError, httpx.HTTPError) as exc:
            logger.warning(f"[仓库分析] README 获取失败: {hit.full_name}, {exc}")
            content = ""
        if not content:
            # no README: classify the description instead of nothing
            return analyze_text(hit.description or ""), ""
        return await self.readme_analyzer.analyze(content, hit.full_name), content

    async def analyze(self, hit: RawHit) -> Tuple[CombinedAnalysis, str]:
        """Return the combined analysis and the README excerpt used for filter evaluation."""
        key = f"{hit.full_name}@{hit.pushed_at or hit.updated_at}"
        if self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        (readme, readme_text), file_structure = await asyncio.gather(
            self._readme_signal(hit),
            analyze_file_structure(self.source, hit.full_name),
        )
        about = analyze_about(hit)
        analysis = combine(readme, about, file_structure)
        if analysis.final_assessment.veto_conflict:
            logger.info(
                f"[仓库分析] README 判定为静态项目，但依赖中包含后端库: {hit.full_name}, "
                f"{file_structure.backend_dependencies}"
            )

        excerpt = readme_text[:README_EXCERPT_CHARS]
        if self.cache is not None:
            self.cache.set(key, (analysis, excerpt))
        return analysis, excerpt

    async def enrich(self, hit: RawHit, rules: Optional[FilterRuleSet] = None) -> RepositoryRecord:
        async with self._semaphore:
            analysis, readme_excerpt = await self.analyze(hit)
            verdict = None
            if rules is not None and not rules.is_empty:
                verdict = await self.filter_parser.evaluate(hit, rules, readme_excerpt)
        logger.debug(
            f"[仓库分析] {hit.full_name}: static={analysis.final_assessment.is_static_deploy}, "
            f"confidence={analysis.combined_confidence:.2f}"
        )
        return RepositoryRecord.from_hit(hit, analysis=analysis, ai_filter=verdict)
