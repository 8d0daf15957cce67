from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, float(value)))


def dedup(values: List[str]) -> List[str]:
    """Order-preserving de-duplication (exact string match)."""
    seen = set()
    out: List[str] = []
    for v in values:
        if v in seen:
            continue
        seen.add(v)
        out.append(v)
    return out


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True)


class _Scored(_Record):
    @field_validator("confidence", "score", mode="before", check_fields=False)
    @classmethod
    def _clamp_unit(cls, v: Any) -> float:
        try:
            return clamp(float(v))
        except (TypeError, ValueError):
            return 0.5


# ---------------------------------------------------------------- search side


class SearchQuery(_Record):
    keywords: List[str] = Field(default_factory=list)
    language: Optional[str] = None
    min_stars: Optional[str] = None  # GitHub qualifier syntax, e.g. ">100" or "10..50"
    start_page: int = Field(default=1, ge=1)
    page: int = Field(default=1, ge=1)
    per_page: int = 100

    @property
    def first_page(self) -> int:
        return self.start_page if self.start_page > 1 else self.page

    def to_query_string(self) -> str:
        seen = set()
        terms: List[str] = []
        for kw in self.keywords:
            kw = kw.strip()
            if not kw or kw.lower() in seen:
                continue
            seen.add(kw.lower())
            terms.append(kw)
        if self.language:
            terms.append(f"language:{self.language}")
        if self.min_stars:
            terms.append(f"stars:{self.min_stars}")
        return " ".join(terms)


class RawHit(_Record):
    full_name: str
    description: Optional[str] = None
    language: Optional[str] = None
    stargazers_count: int = 0
    forks_count: int = 0
    html_url: str = ""
    updated_at: str = ""
    pushed_at: Optional[str] = None
    owner: str = ""
    owner_avatar: str = ""
    owner_html_url: str = ""
    homepage: Optional[str] = None
    topics: List[str] = Field(default_factory=list)
    default_branch: Optional[str] = None

    @classmethod
    def from_api(cls, item: Dict[str, Any]) -> "RawHit":
        owner = item.get("owner") if isinstance(item.get("owner"), dict) else {}
        return cls(
            full_name=item.get("full_name") or "",
            description=item.get("description"),
            language=item.get("language"),
            stargazers_count=item.get("stargazers_count") or 0,
            forks_count=item.get("forks_count") or 0,
            html_url=item.get("html_url") or "",
            updated_at=item.get("updated_at") or "",
            pushed_at=item.get("pushed_at"),
            owner=owner.get("login") or "",
            owner_avatar=owner.get("avatar_url") or "",
            owner_html_url=owner.get("html_url") or "",
            homepage=item.get("homepage") or None,
            topics=item.get("topics") or [],
            default_branch=item.get("default_branch"),
        )


class SearchPage(_Record):
    index: int
    total_count: int
    hits: List[RawHit] = Field(default_factory=list)


# -------------------------------------------------------------- analysis side


class ReadmeSignal(_Scored):
    is_static_deploy: bool = False
    has_preview_url: bool = False
    has_deploy_buttons: bool = False
    preview_urls: List[str] = Field(default_factory=list)
    deploy_platforms: List[str] = Field(default_factory=list)
    confidence: float = 0.0
    summary: str = ""

    @field_validator("preview_urls", "deploy_platforms", mode="before")
    @classmethod
    def _dedup_lists(cls, v: Any) -> List[str]:
        if not v:
            return []
        if isinstance(v, str):
            v = [v]
        if not isinstance(v, (list, tuple, set)):
            raise ValueError("expected a list of strings")
        return dedup([str(x) for x in v])


class AboutSignal(_Record):
    homepage: Optional[str] = None
    topics: List[str] = Field(default_factory=list)
    has_static_topics: bool = False

    @property
    def has_homepage(self) -> bool:
        return bool(self.homepage)


class FileStructureIndicators(_Record):
    has_index_html: bool = False
    has_public_dir: bool = False
    has_dist_dir: bool = False
    has_out_dir: bool = False
    has_next_like_config: bool = False
    has_vite_like_config: bool = False
    has_react_like_layout: bool = False
    has_vue_like_config: bool = False


class FileStructureSignal(_Scored):
    indicators: FileStructureIndicators = Field(default_factory=FileStructureIndicators)
    static_file_names: List[str] = Field(default_factory=list)
    backend_dependencies: List[str] = Field(default_factory=list)
    is_static_project: bool = False
    confidence: float = 0.0

    @property
    def vetoed(self) -> bool:
        return bool(self.backend_dependencies)

    @classmethod
    def empty(cls) -> "FileStructureSignal":
        return cls()


class FinalAssessment(_Scored):
    is_static_deploy: bool = False
    has_preview_url: bool = False
    has_deploy_buttons: bool = False
    deploy_platforms: List[str] = Field(default_factory=list)
    confidence: float = 0.0
    summary: str = ""
    # README claims static while the manifest vetoed the file structure
    veto_conflict: bool = False


class CombinedAnalysis(_Scored):
    readme: ReadmeSignal
    about: AboutSignal
    file_structure: FileStructureSignal
    combined_preview_urls: List[str] = Field(default_factory=list)
    combined_confidence: float = 0.0
    final_assessment: FinalAssessment

    @field_validator("combined_confidence", mode="before")
    @classmethod
    def _clamp_combined(cls, v: Any) -> float:
        return clamp(float(v))


class FilterRuleSet(_Record):
    include: List[str] = Field(default_factory=list)
    exclude: List[str] = Field(default_factory=list)
    prioritize: List[str] = Field(default_factory=list)
    requirements: List[str] = Field(default_factory=list)
    preferences: List[str] = Field(default_factory=list)

    @field_validator("include", "exclude", "prioritize", "requirements", "preferences", mode="before")
    @classmethod
    def _strings_only(cls, v: Any) -> List[str]:
        if not v:
            return []
        if isinstance(v, str):
            v = [v]
        if not isinstance(v, (list, tuple, set)):
            raise ValueError("expected a list of strings")
        return dedup([str(x).strip() for x in v if str(x).strip()])

    @property
    def is_empty(self) -> bool:
        return not (self.include or self.exclude or self.prioritize or self.requirements or self.preferences)


class AIFilterVerdict(_Scored):
    matches: bool = True
    confidence: float = 0.5
    reasons: List[str] = Field(default_factory=list)
    score: float = 0.5
    summary: str = ""


class RepositoryRecord(BaseModel):
    full_name: str
    description: Optional[str] = None
    language: Optional[str] = None
    stargazers_count: int = 0
    forks_count: int = 0
    html_url: str = ""
    updated_at: str = ""
    owner: str = ""
    owner_avatar: str = ""
    owner_html_url: str = ""
    homepage: Optional[str] = None
    topics: List[str] = Field(default_factory=list)
    analysis: Optional[CombinedAnalysis] = None
    ai_filter: Optional[AIFilterVerdict] = None

    @classmethod
    def from_hit(
        cls,
        hit: RawHit,
        analysis: Optional[CombinedAnalysis] = None,
        ai_filter: Optional[AIFilterVerdict] = None,
    ) -> "RepositoryRecord":
        return cls(
            full_name=hit.full_name,
            description=hit.description,
            language=hit.language,
            stargazers_count=hit.stargazers_count,
            forks_count=hit.forks_count,
            html_url=hit.html_url,
            updated_at=hit.updated_at,
            owner=hit.owner,
            owner_avatar=hit.owner_avatar,
            owner_html_url=hit.owner_html_url,
            homepage=hit.homepage,
            topics=list(hit.topics),
            analysis=analysis,
            ai_filter=ai_filter,
        )


# ------------------------------------------------------------------ streaming


class Stage(str, Enum):
    IDLE = "idle"
    SEARCHING = "searching"
    ANALYZING = "analyzing"
    GENERATING = "generating"
    DONE = "done"
    ERROR = "error"


class StreamRequest(BaseModel):
    query: str = ""
    language: str = ""
    stars: str = ""
    ai_filter: str = ""
    per_page: int = 100
    page: int = Field(default=1, ge=1)
    start_page: int = Field(default=1, ge=1)
    analyze: bool = True

    def to_search_query(self) -> SearchQuery:
        return SearchQuery(
            keywords=[self.query] if self.query.strip() else [],
            language=self.language.strip() or None,
            min_stars=self.stars.strip() or None,
            start_page=self.start_page,
            page=self.page,
            per_page=self.per_page,
        )


class StageEvent(BaseModel):
    type: Literal["stage"] = "stage"
    stage: Literal["searching", "analyzing", "generating"]


class TotalCountEvent(BaseModel):
    type: Literal["total_count"] = "total_count"
    total_count: int


class ResultEvent(BaseModel):
    type: Literal["result"] = "result"
    result: RepositoryRecord


class ErrorEvent(BaseModel):
    type: Literal["error"] = "error"
    message: str


class EndEvent(BaseModel):
    type: Literal["end"] = "end"


StreamEvent = Union[StageEvent, TotalCountEvent, ResultEvent, ErrorEvent, EndEvent]


class FilterRulesRequest(BaseModel):
    text: str = ""
