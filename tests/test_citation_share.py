"""Tests for per-domain citation share."""

from collections import Counter

import pytest
from sqlalchemy import delete, select

from app.models import BrandPrompt, CitationShareStats, UrlCitation
from app.services.citation_share import bare_domain, build_share_rows, calculate_citation_share
from app.services.url_pipeline import process_report_urls
from tests.fakes import FakeClassifier, FakeExtractor, make_result

COMPETITORS = [("BetaCorp", "betacorp.com")]


class TestBareDomain:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("acme.com", "acme.com"),
            ("www.Acme.com", "acme.com"),
            ("https://www.acme.com/about", "acme.com"),
            ("acme.com/pricing", "acme.com"),
        ],
    )
    def test_forms(self, value, expected):
        assert bare_domain(value) == expected


class TestBuildShareRows:
    def test_forty_sixty_split(self):
        rows = build_share_rows(Counter({"acme.com": 4, "betacorp.com": 6}), "acme.com", COMPETITORS)

        assert [(r["domain"], r["share_percentage"], r["rank"]) for r in rows] == [
            ("betacorp.com", 60.0, 1),
            ("acme.com", 40.0, 2),
        ]
        assert rows[0]["entity_name"] == "BetaCorp"
        assert rows[1]["domain_type"] == "brand"
        assert all(r["total_citations"] == 10 for r in rows)

    def test_other_domains_count_toward_total_only(self):
        rows = build_share_rows(Counter({"acme.com": 2, "g2.com": 6, "betacorp.com": 2}), "acme.com", COMPETITORS)
        assert {r["domain"] for r in rows} == {"acme.com", "betacorp.com"}
        assert all(r["share_percentage"] == 20.0 for r in rows)

    def test_tie_keeps_brand_first(self):
        rows = build_share_rows(Counter({"acme.com": 3, "betacorp.com": 3}), "acme.com", COMPETITORS)
        assert [r["domain"] for r in rows] == ["acme.com", "betacorp.com"]
        assert [r["rank"] for r in rows] == [1, 2]

    def test_uncited_entities_get_zero(self):
        rows = build_share_rows(Counter({"g2.com": 5}), "acme.com", COMPETITORS)
        assert [r["citation_count"] for r in rows] == [0, 0]
        assert [r["share_percentage"] for r in rows] == [0.0, 0.0]


@pytest.fixture
async def cited_report(db, brand, report, prompts):
    """Report whose citations are 2 brand and 3 competitor URLs."""
    second = BrandPrompt(brand_id=brand.id, raw_prompt="CRM with the best pricing?")
    db.add(second)
    await db.flush()
    db.add_all(
        [
            make_result(
                report,
                prompts[0],
                urls=["https://www.acme.com/a", "https://acme.com/b", "https://betacorp.com/1"],
            ),
            make_result(report, second, urls=["https://betacorp.com/2", "https://www.betacorp.com/3"]),
        ]
    )
    await db.commit()
    await process_report_urls(db, report.id, FakeExtractor(), FakeClassifier())
    return report


@pytest.mark.asyncio
async def test_calculate_from_citation_links(db, cited_report):
    rows = await calculate_citation_share(db, cited_report.id)

    assert [(r["domain"], r["citation_count"], r["share_percentage"]) for r in rows] == [
        ("betacorp.com", 3, 60.0),
        ("acme.com", 2, 40.0),
    ]
    stored = (
        await db.execute(
            select(CitationShareStats)
            .where(CitationShareStats.daily_report_id == cited_report.id)
            .order_by(CitationShareStats.rank)
        )
    ).scalars().all()
    assert [(s.domain, s.rank) for s in stored] == [("betacorp.com", 1), ("acme.com", 2)]


@pytest.mark.asyncio
async def test_recalculation_replaces_rows(db, cited_report):
    await calculate_citation_share(db, cited_report.id)
    await calculate_citation_share(db, cited_report.id)

    stored = (
        await db.execute(select(CitationShareStats).where(CitationShareStats.daily_report_id == cited_report.id))
    ).scalars().all()
    assert len(stored) == 2


async def _stored(db, report_id):
    rows = await db.execute(select(CitationShareStats).where(CitationShareStats.daily_report_id == report_id))
    return rows.scalars().all()


@pytest.mark.asyncio
async def test_skipped_without_brand_domain_clears_old_rows(db, brand, cited_report):
    await calculate_citation_share(db, cited_report.id)
    brand.domain = None
    await db.commit()

    assert await calculate_citation_share(db, cited_report.id) == []
    assert await _stored(db, cited_report.id) == []


@pytest.mark.asyncio
async def test_citations_gone_clears_old_rows(db, cited_report):
    await calculate_citation_share(db, cited_report.id)
    await db.execute(delete(UrlCitation))
    await db.commit()

    assert await calculate_citation_share(db, cited_report.id) == []
    assert await _stored(db, cited_report.id) == []


@pytest.mark.asyncio
async def test_skipped_without_citations(db, report):
    assert await calculate_citation_share(db, report.id) == []
