import json
import os
import unittest
from unittest.mock import patch

import httpx

from chunkscribe import chat
from chunkscribe.chat import ChatClient
from chunkscribe.errors import MissingCredentialError, SummarizationError, TranscriptionError
from chunkscribe.providers import gemini, ollama
from chunkscribe.transcriber import (
    DeepgramTranscriber,
    OpenAITranscriber,
    create_transcriber,
)

MESSAGES = [
    {"role": "system", "content": "Summarize."},
    {"role": "user", "content": "we talked about the budget"},
    {"role": "assistant", "content": "Budget discussion."},
    {"role": "user", "content": "and the launch date"},
]


def _client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestDeepgramTranscriber(unittest.IsolatedAsyncioTestCase):
    async def test_transcribe_posts_audio_and_reads_first_alternative(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers["Authorization"]
            seen["type"] = request.headers["Content-Type"]
            seen["model"] = request.url.params["model"]
            seen["body"] = request.content
            return httpx.Response(200, json={
                "results": {"channels": [{"alternatives": [{"transcript": " hello world "}]}]}
            })

        async with _client(handler) as client:
            t = DeepgramTranscriber(api_key="dg-key", url="https://dg.test/v1/listen", model="nova-2", client=client)
            text = await t.transcribe(b"RIFFdata")

        self.assertEqual(text, "hello world")
        self.assertEqual(seen["auth"], "Token dg-key")
        self.assertEqual(seen["type"], "audio/wav")
        self.assertEqual(seen["model"], "nova-2")
        self.assertEqual(seen["body"], b"RIFFdata")

    async def test_empty_transcript_is_returned_as_empty_text(self):
        def handler(request):
            return httpx.Response(200, json={"results": {"channels": [{"alternatives": [{"transcript": ""}]}]}})

        async with _client(handler) as client:
            t = DeepgramTranscriber(api_key="k", url="https://dg.test/v1/listen", client=client)
            self.assertEqual(await t.transcribe(b"x"), "")

    async def test_http_error_becomes_transcription_error(self):
        def handler(request):
            return httpx.Response(502, text="bad gateway")

        async with _client(handler) as client:
            t = DeepgramTranscriber(api_key="k", url="https://dg.test/v1/listen", client=client)
            with self.assertRaises(TranscriptionError) as ctx:
                await t.transcribe(b"x")
        self.assertIn("502", str(ctx.exception))

    async def test_unexpected_shape_becomes_transcription_error(self):
        def handler(request):
            return httpx.Response(200, json={"unexpected": True})

        async with _client(handler) as client:
            t = DeepgramTranscriber(api_key="k", url="https://dg.test/v1/listen", client=client)
            with self.assertRaises(TranscriptionError):
                await t.transcribe(b"x")

    async def test_non_json_body_becomes_transcription_error(self):
        def handler(request):
            return httpx.Response(200, text="<html>oops</html>")

        async with _client(handler) as client:
            t = DeepgramTranscriber(api_key="k", url="https://dg.test/v1/listen", client=client)
            with self.assertRaises(TranscriptionError):
                await t.transcribe(b"x")

    async def test_non_object_alternative_becomes_transcription_error(self):
        def handler(request):
            return httpx.Response(200, json={"results": {"channels": [{"alternatives": ["hello"]}]}})

        async with _client(handler) as client:
            t = DeepgramTranscriber(api_key="k", url="https://dg.test/v1/listen", client=client)
            with self.assertRaises(TranscriptionError):
                await t.transcribe(b"x")

    async def test_missing_key_fails_per_call(self):
        t = DeepgramTranscriber(api_key="", url="https://dg.test/v1/listen")
        with self.assertRaises(MissingCredentialError):
            await t.transcribe(b"x")


class TestOpenAITranscriber(unittest.IsolatedAsyncioTestCase):
    async def test_transcribe_uploads_multipart_file(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = request.content
            return httpx.Response(200, json={"text": " hi there "})

        async with _client(handler) as client:
            t = OpenAITranscriber(api_key="sk", base_url="https://oa.test/v1/", model="whisper-1", client=client)
            text = await t.transcribe(b"RIFFdata")

        self.assertEqual(text, "hi there")
        self.assertEqual(seen["url"], "https://oa.test/v1/audio/transcriptions")
        self.assertEqual(seen["auth"], "Bearer sk")
        self.assertIn(b"whisper-1", seen["body"])
        self.assertIn(b"RIFFdata", seen["body"])

    async def test_missing_text_field_is_an_error(self):
        def handler(request):
            return httpx.Response(200, json={"error": "nope"})

        async with _client(handler) as client:
            t = OpenAITranscriber(api_key="sk", base_url="https://oa.test/v1", client=client)
            with self.assertRaises(TranscriptionError):
                await t.transcribe(b"x")


class TestCreateTranscriber(unittest.TestCase):
    def test_known_types(self):
        self.assertIsInstance(create_transcriber("Deepgram"), DeepgramTranscriber)
        self.assertIsInstance(create_transcriber("openai"), OpenAITranscriber)

    def test_unknown_type(self):
        with self.assertRaises(ValueError):
            create_transcriber("carrier-pigeon")


class TestOllamaProvider(unittest.IsolatedAsyncioTestCase):
    async def test_generate_sends_messages_verbatim(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["payload"] = json.loads(request.content)
            return httpx.Response(200, json={"message": {"role": "assistant", "content": " Launch date set. "}})

        with patch.dict(os.environ, {"OLLAMA_URL": "http://ollama.test/", "OLLAMA_MODEL": "tiny"}):
            async with _client(handler) as client:
                text = await ollama.generate(MESSAGES, client=client)

        self.assertEqual(text, "Launch date set.")
        self.assertEqual(seen["url"], "http://ollama.test/api/chat")
        self.assertEqual(seen["payload"], {"model": "tiny", "messages": MESSAGES, "stream": False})

    async def test_missing_model_is_reported(self):
        def handler(request):
            return httpx.Response(404, json={"error": "model not found"})

        with patch.dict(os.environ, {"OLLAMA_URL": "http://ollama.test", "OLLAMA_MODEL": "absent"}):
            async with _client(handler) as client:
                with self.assertRaises(SummarizationError) as ctx:
                    await ollama.generate(MESSAGES, client=client)
        self.assertIn("absent", str(ctx.exception))

    async def test_connection_error_becomes_summarization_error(self):
        def handler(request):
            raise httpx.ConnectError("refused")

        with patch.dict(os.environ, {"OLLAMA_URL": "http://ollama.test"}):
            async with _client(handler) as client:
                with self.assertRaises(SummarizationError):
                    await ollama.generate(MESSAGES, client=client)


class TestGeminiProvider(unittest.IsolatedAsyncioTestCase):
    def test_body_maps_system_and_assistant_roles(self):
        body = gemini._to_gemini_body(MESSAGES)
        self.assertEqual(body["systemInstruction"], {"parts": [{"text": "Summarize."}]})
        self.assertEqual([c["role"] for c in body["contents"]], ["user", "model", "user"])
        self.assertEqual(body["contents"][1]["parts"], [{"text": "Budget discussion."}])

    async def test_generate_joins_candidate_parts(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["key"] = request.headers["x-goog-api-key"]
            return httpx.Response(200, json={
                "candidates": [{"content": {"parts": [{"text": "Launch "}, {"text": "in May."}]}}]
            })

        env = {"GEMINI_API_KEY": "g-key", "GEMINI_BASE_URL": "https://gem.test", "GEMINI_MODEL": "flash"}
        with patch.dict(os.environ, env):
            async with _client(handler) as client:
                text = await gemini.generate(MESSAGES, client=client)

        self.assertEqual(text, "Launch in May.")
        self.assertEqual(seen["url"], "https://gem.test/v1beta/models/flash:generateContent")
        self.assertEqual(seen["key"], "g-key")

    async def test_no_candidates_is_an_error(self):
        def handler(request):
            return httpx.Response(200, json={"candidates": []})

        with patch.dict(os.environ, {"GEMINI_API_KEY": "g-key", "GEMINI_BASE_URL": "https://gem.test"}):
            async with _client(handler) as client:
                with self.assertRaises(SummarizationError):
                    await gemini.generate(MESSAGES, client=client)

    async def test_missing_key_fails_per_call(self):
        with patch.dict(os.environ, {"GEMINI_API_KEY": ""}):
            with self.assertRaises(MissingCredentialError):
                await gemini.generate(MESSAGES)


class TestChatClient(unittest.IsolatedAsyncioTestCase):
    def test_unknown_provider_rejected(self):
        with self.assertRaises(ValueError):
            ChatClient("groq")

    async def test_dispatches_to_registered_provider(self):
        calls = []

        async def fake_generate(messages, *, timeout=None, client=None):
            calls.append((messages, timeout))
            return "ok"

        with patch.dict(chat.PROVIDERS, {"fake": fake_generate}):
            client = ChatClient("FAKE", timeout=12)
            self.assertEqual(await client.complete(MESSAGES), "ok")
        self.assertEqual(calls, [(MESSAGES, 12)])

    async def test_empty_reply_passes_through(self):
        async def silent_generate(messages, *, timeout=None, client=None):
            return ""

        with patch.dict(chat.PROVIDERS, {"silent": silent_generate}):
            self.assertEqual(await ChatClient("silent").complete(MESSAGES), "")


if __name__ == "__main__":
    unittest.main()
