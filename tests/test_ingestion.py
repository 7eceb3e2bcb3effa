"""
Tests for news ingestion services.

These tests use mocked HTTP transports and in-memory sources to verify
extraction and aggregation without requiring network access.
"""

import asyncio
import json
import logging
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import httpx

from baystars_news.services.data_ingestion.aggregator import SourceAggregator
from baystars_news.services.data_ingestion.base import (
    CandidateRecord,
    SourceConfig,
    SourceResult,
)
from baystars_news.services.data_ingestion.gateway import FetchGateway
from baystars_news.services.data_ingestion.snapshot import SnapshotStore
from baystars_news.services.data_ingestion.sources import NewsSource, build_sources


# Sample team news page
SAMPLE_OFFICIAL_HTML = """<html><body>
<nav><a href="/news/">ニュース</a></nav>
<ul class="news-list">
  <li><a href="/news/2024/0501.html">佐野選手が3・4月度の月間MVPを受賞</a></li>
  <li><a href="https://www.baystars.co.jp/news/2024/0502.html">  横浜スタジアムでファン感謝デー開催決定  </a></li>
  <li><a href="/ticket/">チケット購入はこちらから</a></li>
  <li><a href="/news/2024/0501.html">佐野選手が3・4月度の月間MVPを受賞</a></li>
  <li><a>リンク先のないテキストです</a></li>
</ul>
</body></html>
"""

# Sample Yahoo team page
SAMPLE_YAHOO_HTML = """<html><body>
<a href="https://baseball.yahoo.co.jp/npb/game/2021038712/top">DeNA、逆転勝ちで連敗ストップ</a>
<a href="/npb/teams/3/tickets">今季チケット販売のお知らせ</a>
<a href="https://example.com/other">npbを含まないリンクの記事</a>
</body></html>
"""

# Sample Google News RSS feed
SAMPLE_GOOGLE_RSS = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>"ベイスターズ" - Google ニュース</title>
    <link>https://news.google.com/search?q=ベイスターズ</link>
    <item>
      <title>DeNA、延長戦を制して3連勝 - 神奈川新聞</title>
      <link>https://news.google.com/rss/articles/CBMiabc?oc=5</link>
      <pubDate>Mon, 15 Apr 2024 09:00:00 GMT</pubDate>
    </item>
    <item>
      <title>短い</title>
      <link>https://news.google.com/rss/articles/CBMidef?oc=5</link>
    </item>
    <item>
      <title>リンクのないフィード項目のタイトル</title>
    </item>
  </channel>
</rss>
"""

SAMPLE_MAINICHI_HTML = """<html><body>
<a href="/articles/20240415/k00/00m/050/001000c">ベイスターズ、投手陣が奮起し完封勝利</a>
<a href="/articles/20240415/k00/00m/050/002000c">巨人、終盤の猛攻で逆転勝ち</a>
</body></html>
"""


def source_for(name: str) -> NewsSource:
    """Build a built-in source with a dummy gateway (extract only)."""
    config = next(c for c in build_sources("ベイスターズ") if c.name == name)
    return NewsSource(config, gateway=MagicMock())


def record(title: str, source: str, fetched_at: datetime) -> CandidateRecord:
    return CandidateRecord(
        title=title,
        url=f"https://example.com/{abs(hash(title))}",
        source=source,
        fetched_at=fetched_at,
    )


class TestSourceExtraction:
    """Tests for the shared extraction routine."""

    def test_official_page(self):
        """Test link filtering, relative URL resolution and in-source dedup."""
        source = source_for("ベイスターズ公式")
        records = source.extract(SAMPLE_OFFICIAL_HTML)

        assert [r.title for r in records] == [
            "佐野選手が3・4月度の月間MVPを受賞",
            "横浜スタジアムでファン感謝デー開催決定",
        ]
        assert records[0].url == "https://www.baystars.co.jp/news/2024/0501.html"
        assert records[1].url == "https://www.baystars.co.jp/news/2024/0502.html"
        assert all(r.source == "ベイスターズ公式" for r in records)

    def test_selector_and_ticket_filter(self):
        """Test that only npb links without ticket text are kept."""
        source = source_for("Yahoo!ニュース")
        records = source.extract(SAMPLE_YAHOO_HTML)

        assert len(records) == 1
        assert records[0].title == "DeNA、逆転勝ちで連敗ストップ"

    def test_parse_feed(self):
        """Test parsing of the RSS search feed."""
        source = source_for("Google ニュース")
        records = source.extract(SAMPLE_GOOGLE_RSS)

        assert len(records) == 1
        assert records[0].title == "DeNA、延長戦を制して3連勝 - 神奈川新聞"
        assert records[0].url == "https://news.google.com/rss/articles/CBMiabc?oc=5"
        assert records[0].source == "Google ニュース"

    def test_subject_text_filter(self):
        """Test that the subject name is required in the text."""
        source = source_for("毎日新聞")
        records = source.extract(SAMPLE_MAINICHI_HTML)

        assert len(records) == 1
        assert records[0].url == "https://mainichi.jp/articles/20240415/k00/00m/050/001000c"

    def test_title_truncation_and_length_bounds(self):
        """Test the (5, 200) text bounds and the 150 code point title cap."""
        long_text = "あ" * 180
        too_long = "い" * 200
        html = (
            f'<a href="/news/1.html">{long_text}</a>'
            f'<a href="/news/2.html">{too_long}</a>'
            '<a href="/news/3.html">五文字です</a>'
        )
        records = source_for("ベイスターズ公式").extract(html)

        assert len(records) == 1
        assert records[0].title == "あ" * 150

    def test_cap_keeps_document_order(self):
        """Test that at most 10 records are returned, first matches first."""
        html = "".join(
            f'<a href="/news/{i}.html">ニュース記事番号 {i:02d}</a>' for i in range(15)
        )
        records = source_for("ベイスターズ公式").extract(html)

        assert len(records) == 10
        assert records[0].title == "ニュース記事番号 00"
        assert records[-1].title == "ニュース記事番号 09"

    def test_extraction_error_yields_empty(self):
        """Test that an exception during extraction is contained."""
        config = SourceConfig(
            name="broken",
            url="https://example.com/",
            base_origin="https://example.com",
            link_filter=lambda href: 1 / 0,
        )
        source = NewsSource(config, gateway=MagicMock())

        assert source.extract('<a href="/x">十分に長いテキスト</a>') == []

    def test_fetch_failure_yields_empty(self):
        """Test that a gateway error never escapes a source."""
        gateway = MagicMock()
        gateway.fetch = AsyncMock(side_effect=RuntimeError("boom"))
        source = NewsSource(build_sources("ベイスターズ")[0], gateway=gateway)

        assert asyncio.run(source.fetch()) == []

    def test_absent_body_yields_empty(self, caplog):
        """Test that a missing body is logged with the source label."""
        gateway = MagicMock()
        gateway.fetch = AsyncMock(return_value=None)
        source = NewsSource(build_sources("ベイスターズ")[0], gateway=gateway)

        with caplog.at_level(logging.WARNING):
            assert asyncio.run(source.fetch()) == []

        assert any("ベイスターズ公式" in message for message in caplog.messages)

    def test_non_web_links_are_rejected(self):
        """Test that javascript: and mailto: targets never become record URLs."""
        html = (
            '<a href="javascript:void(0)">もっと見るボタンのテキスト</a>'
            '<a href="mailto:info@example.com">お問い合わせはこちらへ</a>'
            '<a href="/baseball/npb/game/1/">DeNA、延長戦を制して3連勝</a>'
        )
        records = source_for("スポーツナビ").extract(html)

        assert [r.url for r in records] == ["https://sports.yahoo.co.jp/baseball/npb/game/1/"]

    def test_explicit_fetched_at_is_stamped(self):
        stamp = datetime(2024, 4, 15, 9, 0, tzinfo=timezone.utc)
        records = source_for("ベイスターズ公式").extract(SAMPLE_OFFICIAL_HTML, fetched_at=stamp)

        assert records
        assert all(r.fetched_at == stamp for r in records)


class TestFetchGateway:
    """Tests for the HTTP gateway."""

    def _fetch(self, handler, url="https://example.com/news", **kwargs):
        async def _run():
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
                gateway = FetchGateway(client=client, timeout=1.0)
                return await gateway.fetch(url, **kwargs)

        return asyncio.run(_run())

    def test_returns_body_and_sends_user_agent(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["ua"] = request.headers["User-Agent"]
            seen["q"] = request.url.params.get("q")
            return httpx.Response(200, text="<html>ok</html>")

        body = self._fetch(handler, params={"q": "ベイスターズ"})

        assert body == "<html>ok</html>"
        assert seen["ua"].startswith("Mozilla/5.0")
        assert seen["q"] == "ベイスターズ"

    def test_error_status_is_absent(self):
        assert self._fetch(lambda request: httpx.Response(404)) is None

    def test_timeout_is_absent(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        assert self._fetch(handler) is None

    def test_connection_error_is_absent(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        assert self._fetch(handler) is None


class FakeSource:
    """In-memory source returning fixed records or raising."""

    def __init__(self, name, records=None, error=None, delay=0.0):
        self.name = name
        self._records = records or []
        self._error = error
        self._delay = delay

    async def fetch(self, fetched_at=None):
        await asyncio.sleep(self._delay)
        if self._error:
            raise self._error
        return list(self._records)


class TestAggregator:
    """Tests for the source aggregator."""

    def _aggregator(self, tmp_path, sources):
        return SourceAggregator(SnapshotStore(tmp_path / "raw-articles.json"), sources=sources)

    def test_first_declared_source_wins(self, tmp_path):
        """Test that duplicate titles keep the earlier-declared source."""
        now = datetime.now(timezone.utc)
        sources = [
            FakeSource("A", [record("速報", "A", now)], delay=0.05),
            FakeSource("B", [record("速報", "B", now)]),
        ]

        merged = asyncio.run(self._aggregator(tmp_path, sources).run())

        assert len(merged) == 1
        assert merged[0].source == "A"

    def test_dedup_uses_trimmed_title(self):
        now = datetime.now(timezone.utc)
        results = [
            SourceResult("A", [record("  ベイスターズ勝利  ", "A", now)]),
            SourceResult("B", [record("ベイスターズ勝利", "B", now)]),
        ]

        merged = SourceAggregator.merge(results)

        assert [r.source for r in merged] == ["A"]

    def test_merge_is_idempotent(self):
        now = datetime.now(timezone.utc)
        results = [
            SourceResult("A", [record("一つ目の記事", "A", now), record("二つ目の記事", "A", now)]),
            SourceResult("B", [record("一つ目の記事", "B", now), record("三つ目の記事", "B", now)]),
        ]

        once = SourceAggregator.merge(results)
        twice = SourceAggregator.merge(results)
        again = SourceAggregator.merge([SourceResult("merged", once)])

        assert once == twice == again
        assert [r.title for r in once] == ["一つ目の記事", "二つ目の記事", "三つ目の記事"]

    def test_orders_newest_first(self):
        """Test [t3, t1, t2] input orders as [t3, t2, t1]."""
        t1 = datetime(2024, 4, 15, 9, 0, tzinfo=timezone.utc)
        t2 = t1 + timedelta(minutes=1)
        t3 = t1 + timedelta(minutes=2)
        results = [SourceResult("A", [
            record("記事スリー", "A", t3),
            record("記事ワン", "A", t1),
            record("記事ツー", "A", t2),
        ])]

        merged = SourceAggregator.merge(results)

        assert [r.fetched_at for r in merged] == [t3, t2, t1]

    def test_equal_timestamps_keep_declaration_order(self):
        now = datetime.now(timezone.utc)
        results = [
            SourceResult("A", [record("Aの記事です", "A", now)]),
            SourceResult("B", [record("Bの記事です", "B", now)]),
            SourceResult("C", [record("Cの記事です", "C", now)]),
        ]

        assert [r.source for r in SourceAggregator.merge(results)] == ["A", "B", "C"]

    def test_failed_results_are_dropped(self):
        now = datetime.now(timezone.utc)
        results = [
            SourceResult("A", [record("捨てられる記事", "A", now)], error="boom"),
            SourceResult("B", [record("残る記事です", "B", now)]),
        ]

        assert [r.source for r in SourceAggregator.merge(results)] == ["B"]

    def test_raising_source_does_not_abort(self, tmp_path):
        now = datetime.now(timezone.utc)
        sources = [
            FakeSource("A", error=RuntimeError("boom")),
            FakeSource("B", [record("生き残った記事", "B", now)]),
        ]
        aggregator = self._aggregator(tmp_path, sources)

        results = asyncio.run(aggregator.fetch_all())

        assert [r.success for r in results] == [False, True]
        assert "boom" in results[0].error

    def test_all_sources_failing_writes_empty_snapshot(self, tmp_path):
        sources = [FakeSource(str(i), error=RuntimeError("down")) for i in range(6)]
        aggregator = self._aggregator(tmp_path, sources)

        merged = asyncio.run(aggregator.run())

        assert merged == []
        snapshot = json.loads((tmp_path / "raw-articles.json").read_text(encoding="utf-8"))
        assert snapshot == []
        assert aggregator.source_stats() == {}

    def test_partial_failure_with_real_sources(self, tmp_path):
        """Test that five failing sites still leave the sixth's records."""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "www.baystars.co.jp":
                return httpx.Response(200, text=SAMPLE_OFFICIAL_HTML)
            return httpx.Response(503)

        snapshot_path = tmp_path / "raw-articles.json"

        async def _run():
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
                gateway = FetchGateway(client=client)
                sources = [NewsSource(c, gateway) for c in build_sources("ベイスターズ")]
                aggregator = SourceAggregator(SnapshotStore(snapshot_path), sources=sources, gateway=gateway)
                return await aggregator.run(), aggregator.source_stats()

        merged, stats = asyncio.run(_run())

        assert len(merged) == 2
        assert stats == {"ベイスターズ公式": 2}

        snapshot = json.loads(snapshot_path.read_text(encoding="utf-8"))
        assert [item["title"] for item in snapshot] == [r.title for r in merged]
        assert set(snapshot[0]) == {"title", "url", "source", "fetchedAt"}

    def test_snapshot_overwrites_previous(self, tmp_path):
        store = SnapshotStore(tmp_path / "raw-articles.json")
        now = datetime.now(timezone.utc)
        store.save([record("古いスナップショット", "A", now)])
        store.save([record("新しいスナップショット", "B", now)])

        loaded = store.load()

        assert [r.title for r in loaded] == ["新しいスナップショット"]
        assert loaded[0].fetched_at == now

    def _run_timed_sources(self, tmp_path, slow_host):
        """Run two real sources where one host answers late."""

        async def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == slow_host:
                await asyncio.sleep(0.05)
            label = "A" if request.url.host == "a.example" else "B"
            return httpx.Response(200, text=f'<a href="/news/1">{label}サイトのニュース記事</a>')

        configs = [
            SourceConfig(name="A", url="https://a.example/", base_origin="https://a.example"),
            SourceConfig(name="B", url="https://b.example/", base_origin="https://b.example"),
        ]

        async def _run():
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
                gateway = FetchGateway(client=client)
                sources = [NewsSource(c, gateway) for c in configs]
                aggregator = SourceAggregator(
                    SnapshotStore(tmp_path / f"{slow_host}.json"),
                    sources=sources,
                    gateway=gateway,
                )
                return await aggregator.run()

        return asyncio.run(_run())

    def test_order_ignores_completion_order(self, tmp_path):
        """Test that declaration order holds whichever source finishes last."""
        slow_a = self._run_timed_sources(tmp_path, "a.example")
        slow_b = self._run_timed_sources(tmp_path, "b.example")

        assert [r.source for r in slow_a] == ["A", "B"]
        assert [r.source for r in slow_b] == ["A", "B"]
        assert len({r.fetched_at for r in slow_a}) == 1


class TestSourceResult:
    """Tests for per-source result reporting."""

    def test_str_reports_outcome(self):
        ok = SourceResult("ベイスターズ公式", [record("結果表示のテスト", "ベイスターズ公式", datetime.now(timezone.utc))])
        failed = SourceResult("毎日新聞", error="RuntimeError('down')")

        assert str(ok) == "✓ ベイスターズ公式: records=1"
        assert str(failed) == "✗ 毎日新聞: records=0, error=RuntimeError('down')"
