import asyncio
import csv
import json
from pathlib import Path

import pytest

from gmap_extractor import pipeline
from gmap_extractor.config import ExportSettings, ExtractorConfig, RetrySettings, Timeouts
from gmap_extractor.error_log import ErrorRecorder
from gmap_extractor.errors import SearchNavigationError
from gmap_extractor.models import BusinessRecord


class FakeSession:
    def __init__(
        self,
        config: ExtractorConfig | None = None,
        *,
        counts: list[int] | None = None,
        search_ok: bool = True,
        unclickable: set[int] | None = None,
        links: list[str] | None = None,
    ) -> None:
        self.config = config
        self.counts = counts or [0]
        self.search_ok = search_ok
        self.unclickable = unclickable or set()
        self.links = links if links is not None else [f"https://www.google.com/maps/place/{index}" for index in range(10)]
        self.reads = 0
        self.clicks: list[int] = []
        self.closed = False
        self.page = object()

    async def __aenter__(self) -> "FakeSession":
        return self

    async def __aexit__(self, *exc) -> None:
        self.closed = True

    async def navigate_to_search(self, query: str) -> bool:
        return self.search_ok

    async def has_results_container(self) -> bool:
        return True

    async def current_result_count(self) -> int:
        value = self.counts[min(self.reads, len(self.counts) - 1)]
        self.reads += 1
        return value

    async def scroll_results_container(self) -> None:
        return None

    async def result_links(self) -> list[str]:
        return list(self.links)

    async def activate_result_at_index(self, index: int) -> bool:
        self.clicks.append(index)
        return index not in self.unclickable

    def current_url(self) -> str:
        clicked = self.clicks[-1] if self.clicks else 0
        return f"https://www.google.com/maps/place/opened-{clicked}"


class FakeExtractor:
    def __init__(self, misses: dict[int, int] | None = None) -> None:
        self.misses = dict(misses or {})
        self.calls: list[tuple[str | None, int | None]] = []

    async def extract_one(self, expected_url=None, index=None):
        self.calls.append((expected_url, index))
        if self.misses.get(index, 0) > 0:
            self.misses[index] -= 1
            return None
        return BusinessRecord(name=f"Business {index}", source_url=expected_url)


async def _no_sleep(_: float) -> None:
    return None


def _config(tmp_path, **export) -> ExtractorConfig:
    return ExtractorConfig(
        retry=RetrySettings(click_attempts=2, click_delay_ms=0, extract_attempts=2, extract_delay_ms=0),
        timeouts=Timeouts(between_clicks_ms=0),
        export=ExportSettings(output_dir=tmp_path / "out", error_log=None, **export),
    )


def test_extract_batch_accounts_for_every_index(tmp_path) -> None:
    session = FakeSession(unclickable={1})
    extractor = FakeExtractor(misses={2: 1, 3: 5})
    recorder = ErrorRecorder()

    records, errors = asyncio.run(
        pipeline.extract_batch(
            session,
            extractor,
            4,
            config=_config(tmp_path),
            recorder=recorder,
            sleep=_no_sleep,
            show_progress=False,
        )
    )

    assert len(records) + len(errors) == 4
    assert [record.name for record in records] == ["Business 0", "Business 2"]
    assert [error.index for error in errors] == [1, 3]
    assert session.clicks == [0, 1, 1, 2, 3]
    assert records[1].source_url == "https://www.google.com/maps/place/2"
    contexts = [entry.context for entry in recorder.entries]
    assert contexts.count("Business 2") == 1
    assert contexts.count("Business 4") == 1
    assert contexts.count("Click business 2") == 2
    assert contexts.count("Extract business 3") == 1


def test_run_with_zero_results_writes_nothing(tmp_path) -> None:
    config = _config(tmp_path)
    sessions: list[FakeSession] = []

    def factory(cfg):
        session = FakeSession(cfg, counts=[0])
        sessions.append(session)
        return session

    result = asyncio.run(
        pipeline.run("coffee in nowhere", config, session_factory=factory, sleep=_no_sleep)
    )

    assert result.total_found == 0
    assert result.records == []
    assert sessions[0].closed is True
    assert not (tmp_path / "out").exists()


def test_run_raises_when_search_fails_and_closes_session(tmp_path) -> None:
    sessions: list[FakeSession] = []

    def factory(cfg):
        session = FakeSession(cfg, search_ok=False)
        sessions.append(session)
        return session

    with pytest.raises(SearchNavigationError):
        asyncio.run(pipeline.run("coffee", _config(tmp_path), session_factory=factory, sleep=_no_sleep))

    assert sessions[0].closed is True


def test_run_exports_csv_and_json_with_custom_name(tmp_path) -> None:
    config = _config(tmp_path, format="both", output_file=Path("cafes.csv"))
    extractor = FakeExtractor(misses={1: 5})

    result = asyncio.run(
        pipeline.run(
            "cafes",
            config,
            session_factory=lambda cfg: FakeSession(cfg, counts=[3]),
            extractor_factory=lambda page, cfg: extractor,
            sleep=_no_sleep,
        )
    )

    assert result.total_found == 3
    assert len(result.records) == 2
    assert len(result.errors) == 1

    out = tmp_path / "out"
    with (out / "cafes.csv").open(newline="", encoding="utf-8") as handle:
        rows = list(csv.reader(handle))
    assert len(rows) == 3
    assert rows[1][0] == "Business 0"

    payload = json.loads((out / "cafes.json").read_text(encoding="utf-8"))
    assert payload["query"] == "cafes"
    assert payload["totalResults"] == 2

    report = json.loads((out / "error_report.json").read_text(encoding="utf-8"))
    business_events = report["summary"]["errorsByContext"]["Business 2"]
    assert len(business_events) == 1
    assert business_events[0]["metadata"] == {"index": 1}


def test_run_respects_max_results(tmp_path) -> None:
    config = ExtractorConfig(
        retry=RetrySettings(click_attempts=1, click_delay_ms=0, extract_attempts=1, extract_delay_ms=0),
        timeouts=Timeouts(between_clicks_ms=0),
        export=ExportSettings(output_dir=tmp_path / "out", error_log=None),
        max_results=2,
    )
    extractor = FakeExtractor()

    result = asyncio.run(
        pipeline.run(
            "bakeries",
            config,
            session_factory=lambda cfg: FakeSession(cfg, counts=[5]),
            extractor_factory=lambda page, cfg: extractor,
            sleep=_no_sleep,
        )
    )

    assert result.total_found == 5
    assert [index for _, index in extractor.calls] == [0, 1]
    assert len(list((tmp_path / "out").glob("bakeries_*.csv"))) == 1


def test_click_and_extract_use_their_own_attempt_counts(tmp_path) -> None:
    config = ExtractorConfig(
        retry=RetrySettings(click_attempts=3, click_delay_ms=0, extract_attempts=1, extract_delay_ms=0),
        timeouts=Timeouts(between_clicks_ms=0),
        export=ExportSettings(output_dir=tmp_path / "out", error_log=None),
    )
    session = FakeSession(unclickable={0})
    extractor = FakeExtractor(misses={1: 1})
    recorder = ErrorRecorder()

    records, errors = asyncio.run(
        pipeline.extract_batch(
            session, extractor, 2, config=config, recorder=recorder, sleep=_no_sleep, show_progress=False
        )
    )

    assert records == []
    assert [error.index for error in errors] == [0, 1]
    assert session.clicks == [0, 0, 0, 1]
    assert [index for _, index in extractor.calls] == [1]
    contexts = [entry.context for entry in recorder.entries]
    assert contexts.count("Click business 1") == 3
    assert contexts.count("Extract business 2") == 1


def test_source_url_falls_back_to_opened_page_without_links(tmp_path) -> None:
    session = FakeSession(links=[])
    extractor = FakeExtractor()

    records, errors = asyncio.run(
        pipeline.extract_batch(
            session,
            extractor,
            2,
            config=_config(tmp_path),
            recorder=ErrorRecorder(),
            sleep=_no_sleep,
            show_progress=False,
        )
    )

    assert errors == []
    assert [record.source_url for record in records] == [
        "https://www.google.com/maps/place/opened-0",
        "https://www.google.com/maps/place/opened-1",
    ]
    assert extractor.calls[0] == ("https://www.google.com/maps/place/opened-0", 0)


@pytest.mark.parametrize(
    ("output_file", "csv_name", "json_name"),
    [
        (Path("report"), "report", "report.json"),
        (Path("cafes.csv"), "cafes.csv", "cafes.json"),
        (Path("cafes.json"), "cafes.csv", "cafes.json"),
    ],
)
def test_custom_output_name_never_shares_a_path(tmp_path, output_file, csv_name, json_name) -> None:
    config = _config(tmp_path, format="both", output_file=output_file)

    csv_path, json_path = pipeline._resolve_outputs(config, "cafes")

    assert csv_path == tmp_path / "out" / csv_name
    assert json_path == tmp_path / "out" / json_name
    assert csv_path != json_path


def test_run_with_extensionless_output_keeps_csv_and_json(tmp_path) -> None:
    config = _config(tmp_path, format="both", output_file=Path("report"))

    asyncio.run(
        pipeline.run(
            "cafes",
            config,
            session_factory=lambda cfg: FakeSession(cfg, counts=[2]),
            extractor_factory=lambda page, cfg: FakeExtractor(),
            sleep=_no_sleep,
        )
    )

    out = tmp_path / "out"
    with (out / "report").open(newline="", encoding="utf-8") as handle:
        rows = list(csv.reader(handle))
    assert rows[1][0] == "Business 0"
    payload = json.loads((out / "report.json").read_text(encoding="utf-8"))
    assert payload["totalResults"] == 2
