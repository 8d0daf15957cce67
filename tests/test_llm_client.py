"""Tests for the model client wrapper and JSON extraction."""

from types import SimpleNamespace

import pytest

from static_finder.services.llm_client import LLMClient, LLMUnavailableError, extract_json_object


class TestExtractJsonObject:
    def test_plain_object(self) -> None:
        assert extract_json_object('{"a": 1}') == {"a": 1}

    def test_object_inside_prose(self) -> None:
        assert extract_json_object('Sure! {"a": {"b": 2}} hope this helps {"c": 3}') == {"a": {"b": 2}}

    def test_markdown_fence(self) -> None:
        assert extract_json_object('```json\n{"ok": true}\n```') == {"ok": True}

    def test_braces_inside_strings(self) -> None:
        assert extract_json_object('{"summary": "use {curly} \\"quotes\\""}') == {
            "summary": 'use {curly} "quotes"'
        }

    def test_skips_invalid_candidate(self) -> None:
        assert extract_json_object('{not json} then {"a": 1}') == {"a": 1}

    @pytest.mark.parametrize("text", ["", "no json here", "[1, 2, 3]", '{"unterminated": 1'])
    def test_nothing_found(self, text: str) -> None:
        assert extract_json_object(text) is None


class TestLLMClient:
    def test_disabled_without_key(self, settings) -> None:
        assert LLMClient(settings).enabled is False

    @pytest.mark.asyncio
    async def test_chat_without_client_raises(self, settings) -> None:
        with pytest.raises(LLMUnavailableError):
            await LLMClient(settings).chat("system", "user")

    @pytest.mark.asyncio
    async def test_chat_uses_injected_client(self, settings) -> None:
        captured = {}

        async def create(**kwargs):
            captured.update(kwargs)
            message = SimpleNamespace(content='{"a": 1}')
            return SimpleNamespace(choices=[SimpleNamespace(message=message)])

        fake = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))
        client = LLMClient(settings, client=fake)
        assert client.enabled is True
        reply = await client.chat("sys", "usr")
        assert reply == '{"a": 1}'
        assert captured["model"] == settings.openai_model
        assert captured["messages"][0] == {"role": "system", "content": "sys"}
        assert captured["messages"][1] == {"role": "user", "content": "usr"}
