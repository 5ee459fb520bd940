"""Tests for business context inference and alt text generation."""

import json

import pytest

from pipeline.ai.alt_text import MAX_ALT_LENGTH, AltTextContext, AltTextService
from pipeline.ai.client import MockAIClient
from pipeline.ai.site_overview import (
    SiteOverviewService,
    build_overview_prompt,
    parse_business_context,
)
from pipeline.models import Heading, SitePage
from tests.fixtures.pages import AI_DEFAULT_RESPONSE


def site_pages(count: int = 2) -> list[SitePage]:
    return [
        SitePage(
            url=f"https://example.com/page-{i}",
            title=f"Feature {i}",
            meta_description="",
            headings=[Heading(level=1, text=f"Feature {i}")],
            paragraphs=["Invoicing for teams."],
        )
        for i in range(count)
    ]


class TestParseBusinessContext:
    """Tests for parse_business_context."""

    def test_maps_camel_case(self) -> None:
        """camelCase keys map onto the context fields."""
        context = parse_business_context(json.loads(AI_DEFAULT_RESPONSE))

        assert context.business_type == "SaaS Platform"
        assert context.industry == "Technology"
        assert context.target_audience == "Small Business Owners"
        assert context.main_services == ["Invoicing", "Payroll"]
        assert context.content_strategy == ["Product-led copy"]
        assert not context.is_fallback

    def test_missing_fields_use_defaults(self) -> None:
        """Absent values fall back to the generic defaults."""
        context = parse_business_context({"industry": "Healthcare", "mainServices": "oops"})

        assert context.industry == "Healthcare"
        assert context.business_type == "General Website"
        assert context.main_services == []
        assert context.location is None


class TestSiteOverviewService:
    """Tests for SiteOverviewService."""

    @pytest.mark.asyncio
    async def test_analyze(self) -> None:
        """A valid response becomes a BusinessContext."""
        client = MockAIClient(default_response=AI_DEFAULT_RESPONSE)

        context = await SiteOverviewService(client, model="gpt-test").analyze(
            site_pages(), additional_info="We serve freelancers"
        )

        assert context.business_type == "SaaS Platform"
        assert "USER PROVIDED CONTEXT: We serve freelancers" in client.calls[0].user

    @pytest.mark.asyncio
    async def test_empty_site_skips_model(self) -> None:
        """No pages yields the fallback without a call."""
        client = MockAIClient()

        context = await SiteOverviewService(client, model="gpt-test").analyze([])

        assert context.is_fallback
        assert client.calls == []

    @pytest.mark.asyncio
    async def test_failure_yields_fallback(self) -> None:
        """AI errors yield the generic fallback."""
        client = MockAIClient()
        client.set_failure_mode(True)

        context = await SiteOverviewService(client, model="gpt-test").analyze(site_pages())

        assert context.is_fallback
        assert context.business_type == "General Website"
        assert context.industry == "General"
        assert context.target_audience == "General Public"

    @pytest.mark.asyncio
    async def test_non_object_yields_fallback(self) -> None:
        """A JSON array is not a usable answer."""
        client = MockAIClient(default_response='["SaaS"]')

        context = await SiteOverviewService(client, model="gpt-test").analyze(site_pages())

        assert context.is_fallback

    def test_prompt_limited_to_fifteen_pages(self) -> None:
        """Only the first 15 pages are summarized."""
        prompt = build_overview_prompt(site_pages(20), None)

        assert "WEBSITE DATA (20 pages analyzed)" in prompt
        assert "Page 15: https://example.com/page-14" in prompt
        assert "Page 16:" not in prompt


class TestAltTextService:
    """Tests for AltTextService."""

    @pytest.mark.asyncio
    async def test_generate_sends_image(self) -> None:
        """The image URL goes to the vision model."""
        client = MockAIClient(default_response='{"alt_text": "Bar chart of monthly revenue"}')
        service = AltTextService(client, model="vision-test")

        alt = await service.generate(
            "https://example.com/chart.png", AltTextContext(url="https://example.com/")
        )

        assert alt == "Bar chart of monthly revenue"
        assert client.calls[0].image_urls == ["https://example.com/chart.png"]

    @pytest.mark.asyncio
    async def test_cached_per_image_and_page(self) -> None:
        """The same image on the same page is generated once."""
        client = MockAIClient(default_response='{"alt_text": "Logo"}')
        service = AltTextService(client, model="vision-test")
        context = AltTextContext(url="https://example.com/")

        await service.generate("https://example.com/logo.png", context)
        await service.generate("https://example.com/logo.png", context)
        await service.generate("https://example.com/logo.png", AltTextContext(url="https://example.com/b"))

        assert len(client.calls) == 2

    @pytest.mark.asyncio
    async def test_truncated(self) -> None:
        """Alt text is cut to the maximum length."""
        client = MockAIClient(default_response=json.dumps({"alt_text": "x" * 300}))

        alt = await AltTextService(client, model="v").generate(
            "https://example.com/a.png", AltTextContext(url="https://example.com/")
        )

        assert len(alt) == MAX_ALT_LENGTH

    @pytest.mark.asyncio
    async def test_failure_returns_empty(self) -> None:
        """Failures yield an empty string and nothing is cached."""
        client = MockAIClient(default_response='{"alt_text": "Later"}')
        client.set_failure_mode(True)
        service = AltTextService(client, model="v")
        context = AltTextContext(url="https://example.com/")

        assert await service.generate("https://example.com/a.png", context) == ""
        assert await service.generate("https://example.com/a.png", context) == "Later"

    @pytest.mark.asyncio
    async def test_generate_batch(self) -> None:
        """Batches preserve image order."""
        client = MockAIClient(
            responses=[f'{{"alt_text": "Image {i}"}}' for i in range(4)],
        )
        service = AltTextService(client, model="v", batch_size=2)

        results = await service.generate_batch(
            [f"https://example.com/{i}.png" for i in range(4)],
            AltTextContext(url="https://example.com/"),
        )

        assert [src for src, _ in results] == [f"https://example.com/{i}.png" for i in range(4)]
        assert all(alt.startswith("Image ") for _, alt in results)
