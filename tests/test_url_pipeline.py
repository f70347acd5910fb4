"""Tests for the citation URL pipeline (inventory, extraction, classification)."""

import pytest
from sqlalchemy import func, select

from app.models import BrandPrompt, DailyReport, UrlCitation, UrlContentFacts, UrlInventory
from app.services.url_pipeline import process_report_urls, retry_failed_urls
from tests.fakes import FakeClassifier, FakeExtractor, make_result

URL_A = "https://www.acme.com/blog/crm-guide"
URL_B = "https://betacorp.com/pricing?utm_source=perplexity"
URL_C = "https://g2.com/categories/crm"
URL_B_KEY = "https://betacorp.com/pricing"


@pytest.fixture
async def second_prompt(db, brand):
    prompt = BrandPrompt(brand_id=brand.id, raw_prompt="Which CRM has the best API?")
    db.add(prompt)
    await db.commit()
    return prompt


async def _inventory(db) -> dict[str, UrlInventory]:
    rows = await db.execute(select(UrlInventory))
    return {inv.url: inv for inv in rows.scalars().all()}


class TestProcessReportUrls:
    @pytest.mark.asyncio
    async def test_inventory_links_and_facts(self, db, report, prompts, second_prompt):
        db.add_all(
            [
                make_result(report, prompts[0], urls=[URL_A, URL_B]),
                make_result(report, second_prompt, urls=[URL_B, URL_C]),
                make_result(report, prompts[0], provider="chatgpt", status="error", urls=["https://ignored.com"]),
            ]
        )
        await db.commit()
        extractor = FakeExtractor()
        classifier = FakeClassifier("COMPARISON_ANALYSIS")

        summary = await process_report_urls(db, report.id, extractor, classifier)

        assert summary.total_urls == 3
        assert summary.new_urls == 3
        assert summary.extracted_urls == 3
        assert summary.classified_urls == 3
        assert summary.failed is False
        assert extractor.requested == [[URL_A, URL_B_KEY, URL_C]]

        inventory = await _inventory(db)
        assert set(inventory) == {URL_A, URL_B_KEY, URL_C}
        assert inventory[URL_A].domain == "acme.com"
        assert inventory[URL_B_KEY].normalized_url == URL_B_KEY
        assert all(inv.content_extracted for inv in inventory.values())

        links = await db.execute(select(func.count()).select_from(UrlCitation))
        assert links.scalar() == 4
        facts = (await db.execute(select(UrlContentFacts))).scalars().all()
        assert {f.content_structure_category for f in facts} == {"COMPARISON_ANALYSIS"}

        refreshed = await db.get(DailyReport, report.id)
        assert refreshed.url_processing_status == "complete"
        assert (refreshed.urls_total, refreshed.urls_extracted, refreshed.urls_classified) == (3, 3, 3)

    @pytest.mark.asyncio
    async def test_second_run_skips_processed_urls(self, db, report, prompts):
        db.add(make_result(report, prompts[0], urls=[URL_A]))
        await db.commit()
        extractor = FakeExtractor()

        await process_report_urls(db, report.id, extractor, FakeClassifier())
        summary = await process_report_urls(db, report.id, extractor, FakeClassifier())

        assert len(extractor.requested) == 1
        assert summary.new_urls == 0
        assert summary.extracted_urls == 0
        links = await db.execute(select(func.count()).select_from(UrlCitation))
        assert links.scalar() == 1
        assert report.url_processing_status == "complete"
        assert report.urls_extracted == 1

    @pytest.mark.asyncio
    async def test_url_variants_share_one_inventory_row(self, db, report, prompts):
        variants = ["https://acme.com/guide", "https://acme.com/guide/", "https://acme.com/guide#intro"]
        db.add(make_result(report, prompts[0], urls=variants))
        await db.commit()
        extractor = FakeExtractor()

        summary = await process_report_urls(db, report.id, extractor, FakeClassifier())

        assert summary.total_urls == 1
        assert summary.new_urls == 1
        assert extractor.requested == [["https://acme.com/guide"]]
        inventory = await _inventory(db)
        assert list(inventory) == ["https://acme.com/guide"]
        links = await db.execute(select(func.count()).select_from(UrlCitation))
        assert links.scalar() == 1

    @pytest.mark.asyncio
    async def test_extracted_but_unclassified_is_not_refetched(self, db, report, prompts):
        inv = UrlInventory(url=URL_C, normalized_url=URL_C, domain="g2.com", content_extracted=True, retry_count=0)
        db.add(inv)
        await db.flush()
        db.add(
            UrlContentFacts(
                url_id=inv.id,
                title="CRM software",
                raw_content="Compare CRM tools",
                content_snippet="Compare CRM tools",
            )
        )
        db.add(make_result(report, prompts[0], urls=[URL_C]))
        await db.commit()
        extractor = FakeExtractor(fail_all=True)
        classifier = FakeClassifier("COMPARISON_ANALYSIS")

        summary = await process_report_urls(db, report.id, extractor, classifier)

        assert extractor.requested == []
        assert classifier.seen == [URL_C]
        assert summary.classified_urls == 1
        assert summary.failed is False
        assert report.url_processing_status == "complete"
        facts = (await db.execute(select(UrlContentFacts))).scalars().one()
        assert facts.content_structure_category == "COMPARISON_ANALYSIS"
        await db.refresh(inv)
        assert inv.retry_count == 0
        assert report.urls_classified == 1

    @pytest.mark.asyncio
    async def test_partial_failure_still_completes(self, db, report, prompts):
        db.add(make_result(report, prompts[0], urls=[URL_A, URL_C]))
        await db.commit()

        summary = await process_report_urls(db, report.id, FakeExtractor(fail={URL_C}), FakeClassifier())

        assert summary.extracted_urls == 1
        assert summary.errors == 1
        assert report.url_processing_status == "complete"
        inventory = await _inventory(db)
        assert inventory[URL_C].content_extracted is False
        assert inventory[URL_C].retry_count == 1
        assert inventory[URL_C].last_retry_error == "HTTP 403"

    @pytest.mark.asyncio
    async def test_retry_cap_stops_extraction(self, db, report, prompts):
        db.add(make_result(report, prompts[0], urls=[URL_A]))
        await db.commit()
        extractor = FakeExtractor(fail_all=True)

        for _ in range(3):
            summary = await process_report_urls(db, report.id, extractor, FakeClassifier(), max_retries=3)
            assert summary.failed is True
            assert report.url_processing_status == "failed"

        inventory = await _inventory(db)
        assert inventory[URL_A].retry_count == 3

        # Fourth run: the capped URL is no longer sent to the extractor
        summary = await process_report_urls(db, report.id, extractor, FakeClassifier(), max_retries=3)
        assert len(extractor.requested) == 3
        assert summary.failed is False
        assert report.url_processing_status == "complete"
        assert inventory[URL_A].retry_count == 3

    @pytest.mark.asyncio
    async def test_no_citations(self, db, report, prompts):
        db.add(make_result(report, prompts[0]))
        await db.commit()
        extractor = FakeExtractor()

        summary = await process_report_urls(db, report.id, extractor, FakeClassifier())

        assert summary.total_urls == 0
        assert extractor.requested == []
        assert report.url_processing_status == "complete"

    @pytest.mark.asyncio
    async def test_unexpected_error_marks_failed(self, db, report, prompts):
        db.add(make_result(report, prompts[0], urls=[URL_A]))
        await db.commit()

        class BrokenClassifier:
            async def classify_batch(self, items):
                raise RuntimeError("classifier down")

        rid = report.id
        with pytest.raises(RuntimeError):
            await process_report_urls(db, rid, FakeExtractor(), BrokenClassifier())

        refreshed = await db.get(DailyReport, rid)
        await db.refresh(refreshed)
        assert refreshed.url_processing_status == "failed"


class TestRetryFailedUrls:
    @pytest.mark.asyncio
    async def test_capped_urls_need_flag(self, db):
        db.add_all(
            [
                UrlInventory(url=URL_A, normalized_url=URL_A, domain="acme.com", retry_count=3),
                UrlInventory(url=URL_C, normalized_url=URL_C, domain="g2.com", retry_count=1),
            ]
        )
        await db.commit()
        extractor = FakeExtractor()

        summary = await retry_failed_urls(db, extractor, FakeClassifier(), max_retries=3)
        assert summary.total_urls == 1
        assert extractor.requested == [[URL_C]]

        summary = await retry_failed_urls(db, extractor, FakeClassifier(), include_capped=True, max_retries=3)
        assert summary.total_urls == 1
        assert summary.extracted_urls == 1
        assert extractor.requested[-1] == [URL_A]
        inventory = await _inventory(db)
        assert all(inv.content_extracted for inv in inventory.values())
