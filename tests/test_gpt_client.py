import asyncio
import unittest
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai

from decoding import gpt_client
from decoding.errors import ParseError, StageTimeoutError, UpstreamError
from decoding.gpt_client import call_gpt, parse_json_object, split_completion_url


def _response(content, usage=None):
    message = SimpleNamespace(content=content)
    usage_obj = MagicMock()
    usage_obj.model_dump.return_value = usage or {"prompt_tokens": 3, "completion_tokens": 4, "total_tokens": 7}
    return SimpleNamespace(choices=[SimpleNamespace(message=message)], usage=usage_obj)


def _client_with(create):
    client = MagicMock()
    client.chat.completions.create = create
    return client


class TestParseJsonObject(unittest.TestCase):
    def test_strict_json(self):
        self.assertEqual(parse_json_object('{"a": 1}'), {"a": 1})

    def test_fenced_json_with_prose(self):
        raw = 'Here you go:\n```json\n{"mcqs": [], "solution": {"finalAnswer": "5"}}\n```'
        self.assertEqual(parse_json_object(raw)["solution"]["finalAnswer"], "5")

    def test_trailing_comma_is_repaired(self):
        self.assertEqual(parse_json_object('{"pitfalls": ["a", "b",],}')["pitfalls"], ["a", "b"])

    def test_no_object(self):
        with self.assertRaises(ParseError):
            parse_json_object("I cannot help with that.")

    def test_array_is_rejected(self):
        with self.assertRaises(ParseError):
            parse_json_object("[1, 2, 3]")


class TestSplitCompletionUrl(unittest.TestCase):
    def test_split(self):
        base, query = split_completion_url(
            "https://x.openai.azure.com/openai/deployments/dep/chat/completions?api-version=2024-06-01"
        )
        self.assertEqual(base, "https://x.openai.azure.com/openai/deployments/dep")
        self.assertEqual(query, {"api-version": "2024-06-01"})


class TestCallGpt(unittest.IsolatedAsyncioTestCase):
    async def test_returns_content_and_usage(self):
        create = AsyncMock(return_value=_response('{"ok": true}'))
        with patch.object(gpt_client, "_get_client", return_value=_client_with(create)):
            reply = await call_gpt("hello", system="sys")
        self.assertEqual(reply.content, '{"ok": true}')
        self.assertEqual(reply.usage["total_tokens"], 7)
        kwargs = create.call_args.kwargs
        self.assertEqual(kwargs["messages"][0], {"role": "system", "content": "sys"})
        self.assertEqual(kwargs["response_format"], {"type": "json_object"})

    async def test_status_error_keeps_provider_status(self):
        request = httpx.Request("POST", "https://x.openai.azure.com")
        error = openai.APIStatusError("rate limited", response=httpx.Response(429, request=request), body=None)
        create = AsyncMock(side_effect=error)
        with patch.object(gpt_client, "_get_client", return_value=_client_with(create)):
            with self.assertRaises(UpstreamError) as ctx:
                await call_gpt("hello")
        self.assertEqual(ctx.exception.status_code, 429)

    async def test_connection_error_is_upstream(self):
        error = openai.APIConnectionError(request=httpx.Request("POST", "https://x.openai.azure.com"))
        create = AsyncMock(side_effect=error)
        with patch.object(gpt_client, "_get_client", return_value=_client_with(create)):
            with self.assertRaises(UpstreamError) as ctx:
                await call_gpt("hello")
        self.assertEqual(ctx.exception.status_code, 502)

    async def test_timeout(self):
        async def slow(**kwargs):
            await asyncio.sleep(1)

        with patch.object(gpt_client, "_get_client", return_value=_client_with(slow)):
            with self.assertRaises(StageTimeoutError):
                await call_gpt("hello", timeout=0.01)

    async def test_text_mode_has_no_response_format(self):
        create = AsyncMock(return_value=_response("plain text"))
        with patch.object(gpt_client, "_get_client", return_value=_client_with(create)):
            await call_gpt("hello", json_mode=False, temperature=None)
        self.assertNotIn("response_format", create.call_args.kwargs)
        self.assertNotIn("temperature", create.call_args.kwargs)


if __name__ == "__main__":
    unittest.main()
