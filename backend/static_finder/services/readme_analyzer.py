from typing import Awaitable, Callable, Optional

from loguru import logger
from pydantic import ValidationError

from ..schemas import ReadmeSignal
from .llm_client import LLMClient, extract_json_object
from .score_engine import analyze_text

SYSTEM_PROMPT = "你是一个专业的GitHub项目分析助手，擅长识别静态部署项目和提取预览信息。"

PROMPT_TEMPLATE = """请分析以下GitHub仓库的README内容，判断它是否是静态部署项目，并提取相关信息：

仓库名称: {repo_name}
README内容:
{readme}

请只返回一个JSON对象：
{{
  "is_static_deploy": boolean,
  "has_preview_url": boolean,
  "has_deploy_buttons": boolean,
  "preview_urls": string[],
  "deploy_platforms": string[],
  "confidence": number,
  "summary": string
}}

判断标准：
1. 静态部署项目：可以直接运行或部署的前端项目，如个人博客、作品集、画廊、游戏、静态网站、文档网站、展示页面，或可以直接在浏览器中运行的项目。
2. 如果项目依赖后端服务（API服务器、数据库、Express/Django/Flask等后端框架、登录鉴权、WebSocket/GraphQL服务），则不是静态部署项目。
3. 预览地址：Live demo、preview、在线演示链接或部署后的访问地址。
4. 部署按钮：Vercel、Netlify、GitHub Pages 等一键部署按钮或明确的静态托管部署说明。
5. confidence 为 0 到 1 之间的数值。
"""

Strategy = Callable[[str, str], Awaitable[ReadmeSignal]]


class ReadmeAnalyzer:
    """Classify README text, via the model when one is configured.

    The strategy is fixed at construction; both paths return a ReadmeSignal
    and the model path falls back to the keyword heuristic on any failure.
    """

    def __init__(self, llm: Optional[LLMClient] = None, max_chars: int = 4000):
        self.llm = llm
        self.max_chars = max_chars
        self._strategy: Strategy = self._with_llm if llm is not None and llm.enabled else self._heuristic

    @property
    def uses_llm(self) -> bool:
        return self._strategy == self._with_llm

    async def analyze(self, content: str, repo_name: str) -> ReadmeSignal:
        return await self._strategy(content or "", repo_name)

    async def _heuristic(self, content: str, repo_name: str) -> ReadmeSignal:
        return analyze_text(content)

    async def _with_llm(self, content: str, repo_name: str) -> ReadmeSignal:
        prompt = PROMPT_TEMPLATE.format(repo_name=repo_name, readme=content[: self.max_chars])
        try:
            reply = await self.llm.chat(SYSTEM_PROMPT, prompt)
        except Exception as exc:
            # quota, network, timeout: all degrade to the heuristic
            logger.warning(f"[README分析] LLM 调用失败，使用关键词匹配: {repo_name}, {type(exc).__name__}: {exc}")
            return analyze_text(content)

        data = extract_json_object(reply)
        if data is None or "is_static_deploy" not in data:
            logger.warning(f"[README分析] LLM 响应无法解析为 JSON，使用关键词匹配: {repo_name}")
            logger.debug(f"[README分析] 原始响应: {reply}")
            return analyze_text(content)
        try:
            return ReadmeSignal.model_validate(data)
        except ValidationError as exc:
            logger.warning(f"[README分析] LLM 响应字段不符合预期，使用关键词匹配: {repo_name}, {exc.error_count()} 个错误")
            return analyze_text(content)
