"""Pytest configuration and fixtures."""

import pytest

from static_finder.config import Settings
from static_finder.services.filter_rules import FilterRuleParser
from static_finder.services.readme_analyzer import ReadmeAnalyzer
from static_finder.services.repository_analyzer import RepositoryAnalyzer

from helpers import FakeSource, make_hit


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the environment and any .env file."""
    return Settings(
        _env_file=None,
        GITHUB_TOKEN="test-token",
        GITHUB_TOKEN_REQUIRED=True,
        OPENAI_API_KEY=None,
        ANALYSIS_CONCURRENCY=3,
        CACHE_TTL_SECONDS=0,
    )


@pytest.fixture
def static_hit():
    return make_hit(
        "octo/portfolio",
        description="My personal portfolio",
        homepage="https://octo.github.io",
        topics=["portfolio", "react"],
    )


@pytest.fixture
def analyzer_factory():
    """Build a heuristic-only RepositoryAnalyzer around a FakeSource."""

    def build(source: FakeSource, concurrency: int = 3, cache=None) -> RepositoryAnalyzer:
        return RepositoryAnalyzer(
            source,
            ReadmeAnalyzer(None),
            FilterRuleParser(None),
            concurrency=concurrency,
            cache=cache,
        )

    return build
