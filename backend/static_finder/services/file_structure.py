import json
from typing import Any, Dict, Optional

import httpx
from loguru import logger

from ..datasources.base import DataSource
from ..datasources.github_adapter import GitHubError
from ..schemas import FileStructureSignal
from ..vocabulary import MANIFEST_FILE
from .score_engine import score_file_structure


def parse_manifest(text: Optional[str]) -> Optional[Dict[str, Any]]:
    if not text:
        return None
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


async def analyze_file_structure(source: DataSource, full_name: str) -> FileStructureSignal:
    """List the repository root and score it; GitHub failures yield the empty signal."""
    try:
        entries = await source.list_directory(full_name)
        manifest = None
        if any(entry.lower() == MANIFEST_FILE for entry in entries):
            manifest = parse_manifest(await source.get_file_text(full_name, MANIFEST_FILE))
    except (GitHubError, httpx.HTTPError) as exc:
        logger.warning(f"[文件结构] 获取目录失败，使用默认值: {full_name}, {exc}")
        return FileStructureSignal.empty()
    return score_file_structure(entries, manifest)
