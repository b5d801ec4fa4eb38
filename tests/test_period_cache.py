"""Tests for the on-disk period cache."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

import pytest

from spendboard_persist import CachedPeriod, CacheWriteError, MalformedCacheError, PeriodCache


@pytest.fixture
def cache(tmp_path: Path) -> PeriodCache:
    return PeriodCache(tmp_path / "cache", root=tmp_path, logger=logging.getLogger("tests.period_cache"))


def test_missing_file_reads_as_none(cache: PeriodCache) -> None:
    assert cache.read("2024-01") is None


def test_write_then_read(cache: PeriodCache) -> None:
    fetched = datetime(2024, 2, 1, 8, 30, tzinfo=timezone.utc)

    path = cache.write("2024-01", {"2024-01-03": Decimal("5.4012"), "2024-01-02": Decimal("5.3875")}, fetched_at=fetched)

    assert path == cache.cache_dir / "ecb-rates-2024-01.json"
    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload == {
        "period": "2024-01",
        "fetchedAt": "2024-02-01T08:30:00+00:00",
        "rates": {"2024-01-02": 5.3875, "2024-01-03": 5.4012},
    }
    assert not (path.parent / (path.name + ".tmp")).exists()

    cached = cache.read("2024-01")
    assert cached is not None
    assert cached.fetched_at == fetched
    assert cached.rates == {"2024-01-02": Decimal("5.3875"), "2024-01-03": Decimal("5.4012")}


def test_legacy_year_key_is_accepted(cache: PeriodCache) -> None:
    cache.cache_dir.mkdir(parents=True, exist_ok=True)
    cache.path_for("2023").write_text(
        json.dumps({"year": 2023, "fetchedAt": "2024-01-01T00:00:00.000Z", "rates": {"2023-01": 5.6}}),
        encoding="utf-8",
    )

    cached = cache.read("2023")

    assert cached is not None
    assert cached.period == "2023"
    assert cached.rates == {"2023-01": Decimal("5.6")}


@pytest.mark.parametrize(
    "content",
    [
        "{not json",
        "[1, 2]",
        json.dumps({"period": "2024-01", "rates": {"2024-01-02": -1}}),
        json.dumps({"period": "2024-01", "rates": {"01/02/2024": 5.4}}),
        json.dumps({"period": "2024-01"}),
    ],
)
def test_malformed_files_raise(cache: PeriodCache, content: str) -> None:
    cache.cache_dir.mkdir(parents=True, exist_ok=True)
    cache.path_for("2024-01").write_text(content, encoding="utf-8")

    with pytest.raises(MalformedCacheError) as excinfo:
        cache.read("2024-01")

    assert excinfo.value.path == str(cache.path_for("2024-01"))


def test_write_failure_raises_cache_write_error(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    cache = PeriodCache(blocker / "cache", root=tmp_path, logger=logging.getLogger("tests.period_cache"))

    with pytest.raises(CacheWriteError):
        cache.write("2024-01", {"2024-01-02": Decimal("5.38")})


def test_default_location_uses_persistence_root(tmp_path: Path) -> None:
    cache = PeriodCache(root=tmp_path / "root", logger=logging.getLogger("tests.period_cache"))

    assert cache.cache_dir == (tmp_path / "root" / "cache").resolve()
    assert cache.cache_dir.is_dir()


def test_explicit_cache_dir_does_not_need_writable_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    home = tmp_path / "home-file"
    home.write_text("", encoding="utf-8")
    monkeypatch.setenv("HOME", str(home))

    cache = PeriodCache(tmp_path / "cache")
    cache.write("2024-01", {"2024-01-02": Decimal("5.38")})

    cached = cache.read("2024-01")
    assert cached is not None
    assert cached.rates == {"2024-01-02": Decimal("5.38")}
    assert cache.logger.name == "spendboard.period_cache"
    assert home.is_file()


def test_cached_period_populates_by_field_name() -> None:
    record = CachedPeriod(period="2024", rates={"2024-03": Decimal("5.36")})

    assert record.to_dict()["rates"] == {"2024-03": 5.36}
    assert record.fetched_at.tzinfo is not None
