import json
import re
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from loguru import logger
from pydantic import ValidationError

from ..schemas import AIFilterVerdict, FilterRuleSet, RawHit, clamp
from ..vocabulary import (
    CONDITION_INDICATORS,
    CONDITION_STOPWORDS,
    EXCLUDE_PHRASES,
    FILTER_CONCEPTS,
    HIGH_STAR_THRESHOLD,
    NEGATED_REQUIRE_PHRASES,
    ONLY_SHOW_PHRASES,
    PRIORITIZE_PHRASES,
    RECENT_CONDITION,
    REQUIRE_PHRASES,
    STARS_CONDITION,
)
from .llm_client import LLMClient, extract_json_object
from .scoring import is_recent, popularity_bonus

README_EXCERPT_CHARS = 1500

# rule list each trigger phrase routes a concept into
_TRIGGERS: List[Tuple[str, List[str]]] = [
    ("include", ONLY_SHOW_PHRASES),
    ("exclude", EXCLUDE_PHRASES),
    ("exclude", NEGATED_REQUIRE_PHRASES),
    ("prioritize", PRIORITIZE_PHRASES),
    ("requirements", REQUIRE_PHRASES),
]

_CLAUSE_SPLIT = re.compile(r"[，,。；;！!？?\n]+|\.\s")


def _find_all(text: str, needle: str) -> List[int]:
    return [m.start() for m in re.finditer(re.escape(needle), text)]


def _clause_triggers(clause: str) -> List[Tuple[int, str]]:
    """Trigger positions in ``clause``; a longer phrase hides the shorter ones it overlaps."""
    spans: List[Tuple[int, int, str]] = []
    for target, phrases in _TRIGGERS:
        for phrase in phrases:
            spans.extend((pos, pos + len(phrase), target) for pos in _find_all(clause, phrase))
    kept: List[Tuple[int, int, str]] = []
    for start, end, target in sorted(spans, key=lambda span: (span[0] - span[1], span[0])):
        if any(start < k_end and k_start < end for k_start, k_end, _ in kept):
            continue
        kept.append((start, end, target))
    return sorted((start, target) for start, _, target in kept)


def heuristic_parse(text: str) -> FilterRuleSet:
    """Keyword-triggered rule extraction.

    Each known concept in a clause is routed to the list of the nearest
    trigger phrase before it ("only show", "exclude", "prioritize", "must");
    a concept with no trigger becomes a soft preference.
    """
    lowered = (text or "").lower().strip()
    rules: Dict[str, List[str]] = {
        "include": [],
        "exclude": [],
        "prioritize": [],
        "requirements": [],
        "preferences": [],
    }
    if not lowered:
        return FilterRuleSet()

    for clause in _CLAUSE_SPLIT.split(lowered):
        if not clause.strip():
            continue
        triggers = _clause_triggers(clause)

        for words, condition in FILTER_CONCEPTS:
            positions = [pos for word in words for pos in _find_all(clause, word)]
            if not positions:
                continue
            first = min(positions)
            preceding = [target for pos, target in triggers if pos < first]
            target = preceding[-1] if preceding else "preferences"
            if condition not in rules[target]:
                rules[target].append(condition)

    return FilterRuleSet(**rules)


def _haystack(hit: RawHit, readme_excerpt: str) -> str:
    parts = [hit.full_name, hit.description or "", hit.language or "", " ".join(hit.topics), readme_excerpt]
    return " ".join(parts).lower()


def _condition_keywords(condition: str) -> List[str]:
    if condition in CONDITION_INDICATORS:
        return CONDITION_INDICATORS[condition]
    tokens = re.findall(r"[\w\-\.]+", condition.lower())
    return [t for t in tokens if len(t) >= 3 and t not in CONDITION_STOPWORDS] or [condition.lower()]


def condition_satisfied(condition: str, hit: RawHit, haystack: str, now: Optional[datetime] = None) -> bool:
    if condition == RECENT_CONDITION:
        return is_recent(hit.pushed_at or hit.updated_at, now)
    if condition == STARS_CONDITION:
        return hit.stargazers_count >= HIGH_STAR_THRESHOLD
    return any(keyword in haystack for keyword in _condition_keywords(condition))


def heuristic_evaluate(
    hit: RawHit, rules: FilterRuleSet, readme_excerpt: str = "", now: Optional[datetime] = None
) -> AIFilterVerdict:
    matches = True
    confidence = 0.5
    score = 0.5 + popularity_bonus(hit.stargazers_count, hit.forks_count, hit.description)
    reasons: List[str] = []
    haystack = _haystack(hit, readme_excerpt)

    for condition in rules.requirements:
        if condition_satisfied(condition, hit, haystack, now):
            confidence += 0.1
            reasons.append(f"满足要求: {condition}")
        else:
            matches = False
            reasons.append(f"未满足要求: {condition}")
    for condition in rules.include:
        if condition_satisfied(condition, hit, haystack, now):
            confidence += 0.1
            reasons.append(f"符合条件: {condition}")
    for condition in rules.exclude:
        if condition_satisfied(condition, hit, haystack, now):
            matches = False
            reasons.append(f"命中排除条件: {condition}")
    for condition in rules.prioritize:
        if condition_satisfied(condition, hit, haystack, now):
            score += 0.1
            reasons.append(f"优先条件: {condition}")
    for condition in rules.preferences:
        if condition_satisfied(condition, hit, haystack, now):
            score += 0.05
            reasons.append(f"偏好: {condition}")

    return AIFilterVerdict(
        matches=matches,
        confidence=clamp(confidence),
        reasons=reasons,
        score=clamp(score),
        summary=f"基于关键词规则评估：{'符合' if matches else '不符合'}筛选条件",
    )


PARSE_SYSTEM_PROMPT = (
    "You turn a user's free-text filter intent for GitHub repositories into structured rules.\n"
    "Return JSON only, schema: {\"include\":[], \"exclude\":[], \"prioritize\":[], "
    "\"requirements\":[], \"preferences\":[]}.\n"
    "- include: kinds of repositories the user only wants to see.\n"
    "- exclude: characteristics that disqualify a repository.\n"
    "- prioritize: characteristics that should rank a repository higher.\n"
    "- requirements: hard conditions every repository must satisfy.\n"
    "- preferences: soft wishes.\n"
    "Each item is a short English phrase. Leave a list empty when nothing applies. Avoid hallucinations."
)

EVALUATE_SYSTEM_PROMPT = (
    "You judge whether a GitHub repository matches a user's filter rules. "
    "Base your answer only on the provided metadata and README excerpt.\n"
    "Return JSON only, schema: {\"matches\": bool, \"confidence\": number 0-1, "
    "\"reasons\": [string], \"score\": number 0-1, \"summary\": string}."
)


class FilterRuleParser:
    def __init__(self, llm: Optional[LLMClient] = None):
        self.llm = llm if llm is not None and llm.enabled else None

    async def parse(self, text: str) -> FilterRuleSet:
        text = (text or "").strip()
        if not text or self.llm is None:
            return FilterRuleSet()

        user_prompt = f"User filter intent: {text}"
        try:
            reply = await self.llm.chat(PARSE_SYSTEM_PROMPT, user_prompt)
        except Exception as exc:
            logger.warning(f"[筛选规则] LLM 解析失败，使用关键词规则: {type(exc).__name__}: {exc}")
            return heuristic_parse(text)

        data = extract_json_object(reply)
        if data is None:
            logger.warning("[筛选规则] LLM 响应中未找到 JSON 对象，使用关键词规则")
            logger.debug(f"[筛选规则] 原始响应:\n{reply}")
            return heuristic_parse(text)
        try:
            rules = FilterRuleSet.model_validate(data)
        except ValidationError as exc:
            logger.warning(f"[筛选规则] LLM 响应字段不符合预期，使用关键词规则: {exc.error_count()} 个错误")
            return heuristic_parse(text)
        logger.info(f"[筛选规则] 解析完成: {rules.model_dump()}")
        return rules

    async def evaluate(self, hit: RawHit, rules: FilterRuleSet, readme_excerpt: str = "") -> AIFilterVerdict:
        if rules.is_empty or self.llm is None:
            return heuristic_evaluate(hit, rules, readme_excerpt)

        repo_snippet = (
            f"Name: {hit.full_name}\n"
            f"Description: {hit.description}\n"
            f"Stars: {hit.stargazers_count}, Forks: {hit.forks_count}, Updated: {hit.updated_at}, "
            f"Language: {hit.language}\n"
            f"Topics: {', '.join(hit.topics)}\n"
            f"Homepage: {hit.homepage or ''}\n"
            f"README excerpt:\n{readme_excerpt[:README_EXCERPT_CHARS]}"
        )
        user_prompt = f"Filter rules:\n{json.dumps(rules.model_dump(), ensure_ascii=False)}\n\nRepo data:\n{repo_snippet}"
        try:
            reply = await self.llm.chat(EVALUATE_SYSTEM_PROMPT, user_prompt)
        except Exception as exc:
            logger.warning(f"[筛选评估] LLM 调用失败，使用关键词规则: {hit.full_name}, {type(exc).__name__}: {exc}")
            return heuristic_evaluate(hit, rules, readme_excerpt)

        data = extract_json_object(reply)
        if data is None or "matches" not in data:
            logger.warning(f"[筛选评估] LLM 响应无法解析，使用关键词规则: {hit.full_name}")
            return heuristic_evaluate(hit, rules, readme_excerpt)
        try:
            return AIFilterVerdict.model_validate(data)
        except ValidationError:
            logger.warning(f"[筛选评估] LLM 响应字段不符合预期，使用关键词规则: {hit.full_name}")
            return heuristic_evaluate(hit, rules, readme_excerpt)
