"""Pure scoring functions: raw text / metadata in, confidence-scored records out.

Nothing here performs I/O. The network-facing analyzers gather the inputs and
call into this module.
"""
import re
from typing import Any, Dict, Iterable, List, Optional

from ..schemas import (
    AboutSignal,
    CombinedAnalysis,
    FileStructureIndicators,
    FileStructureSignal,
    FinalAssessment,
    RawHit,
    ReadmeSignal,
    clamp,
    dedup,
)
from ..vocabulary import (
    BACKEND_DEPENDENCIES,
    BACKEND_KEYWORDS,
    BUILD_SCRIPT_FRAGMENTS,
    DEPLOY_BUTTON_KEYWORDS,
    DEPLOY_PLATFORMS,
    INDEX_HTML_FILES,
    NEXT_CONFIG_FILES,
    PREVIEW_URL_HOSTS,
    PREVIEW_URL_KEYWORDS,
    REACT_LAYOUT_FILES,
    STATIC_DEPLOY_KEYWORDS,
    STATIC_OUTPUT_DIRS,
    STATIC_TOPIC_FRAGMENTS,
    VITE_CONFIG_FILES,
    VUE_CONFIG_FILES,
)

URL_PATTERN = re.compile(r"https?://[^\s\)]+")

SUMMARY_SEPARATOR = "，"
PHRASE_README_STATIC = "README 显示为静态项目"
PHRASE_FILES_STATIC = "文件结构符合静态项目"
PHRASE_HOMEPAGE = "提供了主页地址"
PHRASE_PREVIEW = "找到预览地址"
PHRASE_DEPLOY = "包含部署按钮"
PHRASE_NOT_STATIC = "未发现静态部署特征"

__all__ = [
    "clamp",
    "contains_any",
    "analyze_text",
    "analyze_about",
    "backend_dependencies",
    "score_file_structure",
    "combine",
]


def contains_any(content: str, keywords: Iterable[str]) -> bool:
    return any(keyword in content for keyword in keywords)


def analyze_text(content: str) -> ReadmeSignal:
    """Deterministic README classifier."""
    text = (content or "").lower()

    has_backend_keywords = contains_any(text, BACKEND_KEYWORDS)
    is_static_deploy = not has_backend_keywords and contains_any(text, STATIC_DEPLOY_KEYWORDS)

    urls = URL_PATTERN.findall(text)
    has_preview_url = contains_any(text, PREVIEW_URL_KEYWORDS) or len(urls) > 0
    preview_urls = dedup([url for url in urls if contains_any(url, PREVIEW_URL_HOSTS)])

    has_deploy_buttons = contains_any(text, DEPLOY_BUTTON_KEYWORDS)
    deploy_platforms = [label for label, keyword in DEPLOY_PLATFORMS if keyword in text]

    confidence = 0.0
    if is_static_deploy:
        confidence += 0.4
    if has_preview_url:
        confidence += 0.4
    if has_deploy_buttons:
        confidence += 0.2
    if preview_urls:
        confidence += 0.1
    if deploy_platforms:
        confidence += 0.1

    summary = (
        "基于关键词匹配分析："
        f"{'疑似静态项目' if is_static_deploy else '非静态项目'}，"
        f"{'包含预览地址' if has_preview_url else '无预览地址'}，"
        f"{'包含部署按钮' if has_deploy_buttons else '无部署按钮'}"
    )
    return ReadmeSignal(
        is_static_deploy=is_static_deploy,
        has_preview_url=has_preview_url,
        has_deploy_buttons=has_deploy_buttons,
        preview_urls=preview_urls,
        deploy_platforms=deploy_platforms,
        confidence=clamp(confidence),
        summary=summary,
    )


def analyze_about(hit: RawHit) -> AboutSignal:
    topics = [t for t in hit.topics if t]
    has_static_topics = any(
        fragment in topic.lower() for topic in topics for fragment in STATIC_TOPIC_FRAGMENTS
    )
    return AboutSignal(
        homepage=(hit.homepage or "").strip() or None,
        topics=topics,
        has_static_topics=has_static_topics,
    )


def _dependency_names(manifest: Dict[str, Any]) -> List[str]:
    names: List[str] = []
    for section in ("dependencies", "devDependencies"):
        deps = manifest.get(section)
        if isinstance(deps, dict):
            names.extend(str(name).lower() for name in deps)
    return names


def backend_dependencies(manifest: Optional[Dict[str, Any]]) -> List[str]:
    """Declared (dev)dependencies that imply a server process."""
    if not manifest:
        return []
    backend = set(BACKEND_DEPENDENCIES)
    return dedup([name for name in _dependency_names(manifest) if name in backend])


def _has_build_script(manifest: Optional[Dict[str, Any]]) -> bool:
    scripts = (manifest or {}).get("scripts")
    if not isinstance(scripts, dict):
        return False
    return any(
        fragment in str(name).lower() for name in scripts for fragment in BUILD_SCRIPT_FRAGMENTS
    )


def score_file_structure(entries: Iterable[str], manifest: Optional[Dict[str, Any]] = None) -> FileStructureSignal:
    """Score a repository root listing plus its parsed ``package.json``.

    A backend dependency in the manifest vetoes everything: the result is
    ``is_static_project=False`` and ``confidence=0`` regardless of markers.
    """
    names = {entry.lower() for entry in entries}

    def present(candidates: Iterable[str]) -> List[str]:
        return [c for c in candidates if c.lower() in names]

    index_files = present(INDEX_HTML_FILES)
    output_dirs = present(STATIC_OUTPUT_DIRS)
    next_configs = present(NEXT_CONFIG_FILES)
    vite_configs = present(VITE_CONFIG_FILES)
    vue_configs = present(VUE_CONFIG_FILES)
    react_files = present(REACT_LAYOUT_FILES)

    indicators = FileStructureIndicators(
        has_index_html=bool(index_files),
        has_next_like_config=bool(next_configs),
        has_vite_like_config=bool(vite_configs),
        has_vue_like_config=bool(vue_configs),
        has_react_like_layout=bool(react_files) or {"src", "public"} <= names,
        **{flag: name in names for name, flag in STATIC_OUTPUT_DIRS.items()},
    )
    static_file_names = index_files + output_dirs + next_configs + vite_configs + vue_configs + react_files

    vetoing = backend_dependencies(manifest)
    if vetoing:
        return FileStructureSignal(
            indicators=indicators,
            static_file_names=static_file_names,
            backend_dependencies=vetoing,
            is_static_project=False,
            confidence=0.0,
        )

    confidence = 0.0
    is_static_project = False
    if indicators.has_index_html:
        confidence += 0.4
        is_static_project = True
    if indicators.has_public_dir or indicators.has_dist_dir or indicators.has_out_dir:
        confidence += 0.3
        is_static_project = True
    if indicators.has_next_like_config or indicators.has_vite_like_config:
        confidence += 0.2
        is_static_project = True
    if _has_build_script(manifest):
        confidence += 0.1

    return FileStructureSignal(
        indicators=indicators,
        static_file_names=static_file_names,
        is_static_project=is_static_project,
        confidence=clamp(confidence),
    )


def combine(readme: ReadmeSignal, about: AboutSignal, file_structure: FileStructureSignal) -> CombinedAnalysis:
    preview_urls = list(readme.preview_urls)
    if about.homepage:
        preview_urls.append(about.homepage)
    combined_preview_urls = dedup(preview_urls)

    combined_confidence = clamp(
        0.4 * readme.confidence
        + 0.4 * file_structure.confidence
        + 0.2 * (1.0 if about.has_homepage else 0.0)
    )

    is_static_deploy = readme.is_static_deploy or file_structure.is_static_project
    has_preview_url = readme.has_preview_url or about.has_homepage or bool(combined_preview_urls)

    phrases: List[str] = []
    if readme.is_static_deploy:
        phrases.append(PHRASE_README_STATIC)
    if file_structure.is_static_project:
        phrases.append(PHRASE_FILES_STATIC)
    if about.has_homepage:
        phrases.append(PHRASE_HOMEPAGE)
    if combined_preview_urls:
        phrases.append(PHRASE_PREVIEW)
    if readme.has_deploy_buttons:
        phrases.append(PHRASE_DEPLOY)
    summary = SUMMARY_SEPARATOR.join(phrases) if phrases else PHRASE_NOT_STATIC

    return CombinedAnalysis(
        readme=readme,
        about=about,
        file_structure=file_structure,
        combined_preview_urls=combined_preview_urls,
        combined_confidence=combined_confidence,
        final_assessment=FinalAssessment(
            is_static_deploy=is_static_deploy,
            has_preview_url=has_preview_url,
            has_deploy_buttons=readme.has_deploy_buttons,
            deploy_platforms=list(readme.deploy_platforms),
            confidence=combined_confidence,
            summary=summary,
            veto_conflict=file_structure.vetoed and readme.is_static_deploy,
        ),
    )
