import json
from datetime import timedelta

from data_acquisition.cache_store import CacheStore


def test_put_then_get_roundtrip(cache):
    cache.put("AAPL", "company_data", {"symbol": "AAPL", "peRatio": 28.5})
    assert cache.get("AAPL", "company_data") == {"symbol": "AAPL", "peRatio": 28.5}


def test_get_missing_key(cache):
    assert cache.get("NOPE", "company_data") is None


def test_entry_is_fresh_until_ttl(cache, clock):
    cache.put("AAPL", "company_data", {"symbol": "AAPL"})

    clock.now += timedelta(hours=23, minutes=59)
    assert cache.get("AAPL", "company_data") is not None

    clock.now += timedelta(minutes=1)
    assert cache.get("AAPL", "company_data") is None


def test_stale_entry_stays_on_disk_until_purged(cache, clock):
    cache.put("AAPL", "company_data", {"symbol": "AAPL"})
    clock.now += timedelta(hours=25)

    assert cache.get("AAPL", "company_data") is None
    assert len(list(cache.iter_entries("company_data", include_stale=True))) == 1

    assert cache.purge("company_data", stale_only=True) == 1
    assert list(cache.iter_entries("company_data", include_stale=True)) == []


def test_purge_stale_only_keeps_fresh_entries(cache, clock):
    cache.put("OLD", "company_data", {"symbol": "OLD"})
    clock.now += timedelta(hours=30)
    cache.put("NEW", "company_data", {"symbol": "NEW"})

    assert cache.purge(stale_only=True) == 1
    assert cache.get("NEW", "company_data") == {"symbol": "NEW"}


def test_put_overwrites_same_key(cache):
    cache.put("KO:s&p 500", "market_index_companies", {"symbol": "KO", "price": 60})
    cache.put("KO:s&p 500", "market_index_companies", {"symbol": "KO", "price": 61})

    entries = list(cache.iter_entries("market_index_companies"))
    assert len(entries) == 1
    assert entries[0].data["price"] == 61


def test_keys_with_special_characters_do_not_collide(cache):
    cache.put("BRK.B:s&p 500", "market_index_companies", {"symbol": "BRK.B"})
    cache.put("BRK.B:s_p 500", "market_index_companies", {"symbol": "other"})
    assert cache.get("BRK.B:s&p 500", "market_index_companies") == {"symbol": "BRK.B"}


def test_fresh_records_filters_by_field(cache):
    cache.put("KO:s&p 500", "market_index_companies", {"symbol": "KO", "indexName": "s&p 500"})
    cache.put("AAPL:nasdaq", "market_index_companies", {"symbol": "AAPL", "indexName": "nasdaq"})

    records = cache.fresh_records("market_index_companies", indexName="nasdaq")
    assert records == [{"symbol": "AAPL", "indexName": "nasdaq"}]


def test_corrupt_file_reads_as_absent(cache):
    cache.put("AAPL", "company_data", {"symbol": "AAPL"})
    path = next((cache.root / "company_data").glob("*.json"))
    path.write_text("{not json", encoding="utf-8")
    assert cache.get("AAPL", "company_data") is None


def test_file_layout(tmp_path, clock):
    store = CacheStore(tmp_path, clock=clock)
    store.put("AAPL", "company_data", {"symbol": "AAPL"})
    files = list((tmp_path / "company_data").glob("AAPL-*.json"))
    assert len(files) == 1
    saved = json.loads(files[0].read_text(encoding="utf-8"))
    assert saved["entity_key"] == "AAPL"
    assert saved["data"] == {"symbol": "AAPL"}
    assert "cached_at" in saved
