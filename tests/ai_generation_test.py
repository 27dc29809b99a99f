import json

import pytest
from tenacity import wait_none

from blogcore.ai_generation import AIGenerationService, TextGenerator
from blogcore.errors import ValidationError
from blogcore.post_service import ContentService
from blogcore.translation_service import TranslationService, truncate_summary
from tests.factories import FakeTextGenerator

LONG_TEXT = "PostgreSQL keeps every row version until vacuum reclaims it. " * 2


class FailingGenerator(TextGenerator):
    def __init__(self, failures: int, reply: str):
        self.failures = failures
        self.reply = reply
        self.calls = 0

    async def generate(self, system, prompt, max_tokens, json_output=False):
        self.calls += 1
        if self.calls <= self.failures:
            raise TimeoutError("model timed out")
        return self.reply


class TestAIGenerationService:
    @pytest.mark.asyncio
    async def test_generate_summary_reads_json_field(self):
        generator = FakeTextGenerator(default=json.dumps({"summary": " Vacuum explained. "}))
        service = AIGenerationService(generator, retry_wait=wait_none())

        assert await service.generate_summary(LONG_TEXT) == "Vacuum explained."
        assert generator.calls[0][3] is True

    @pytest.mark.asyncio
    async def test_generate_summary_needs_fifty_characters(self):
        generator = FakeTextGenerator()
        service = AIGenerationService(generator, retry_wait=wait_none())

        with pytest.raises(ValidationError):
            await service.generate_summary("too short")
        assert generator.calls == []

    @pytest.mark.asyncio
    async def test_generate_slug_is_sanitized(self):
        generator = FakeTextGenerator(default=json.dumps({"slug": "Understanding MVCC & Vacuum!"}))
        service = AIGenerationService(generator, retry_wait=wait_none())

        assert await service.generate_slug("MVCC", LONG_TEXT) == "understanding-mvcc-vacuum"

    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self):
        generator = FailingGenerator(failures=2, reply="Hello")
        service = AIGenerationService(generator, retry_wait=wait_none())

        assert await service.translate("안녕", "title") == "Hello"
        assert generator.calls == 3

    @pytest.mark.asyncio
    async def test_reraises_after_three_attempts(self):
        generator = FailingGenerator(failures=10, reply="Hello")
        service = AIGenerationService(generator, retry_wait=wait_none())

        with pytest.raises(TimeoutError):
            await service.translate("안녕", "title")
        assert generator.calls == 3

    @pytest.mark.asyncio
    async def test_malformed_json_raises(self):
        service = AIGenerationService(FakeTextGenerator(default="not json"), retry_wait=wait_none())

        with pytest.raises(ValueError):
            await service.generate_summary(LONG_TEXT)


class TestTranslationPrevalidation:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("target", ["ko", "ja", "fr"])
    async def test_unsupported_target_fails_before_any_ai_call(self, target):
        generator = FakeTextGenerator()
        # The pool does not exist: reaching the store would raise ValueError instead
        service = TranslationService(
            ContentService(db_name="unregistered"),
            AIGenerationService(generator, retry_wait=wait_none()),
        )

        with pytest.raises(ValidationError, match="Only English translation is supported"):
            await service.translate_post(1, target)
        assert generator.calls == []

    @pytest.mark.asyncio
    async def test_invalid_post_id_fails_before_any_ai_call(self):
        generator = FakeTextGenerator()
        service = TranslationService(
            ContentService(db_name="unregistered"),
            AIGenerationService(generator, retry_wait=wait_none()),
        )

        with pytest.raises(ValidationError):
            await service.translate_post("abc", "en")
        assert generator.calls == []


def test_truncate_summary():
    assert truncate_summary("short") == "short"
    assert truncate_summary("x" * 200) == "x" * 200

    truncated = truncate_summary("x" * 250)
    assert len(truncated) == 200
    assert truncated.endswith("...")
