"""Normalizer/validator unit tests."""

from conftest import raw_record

from predrank.ingestion.normalize import derive_volume_24h, normalize, normalize_record, parse_outcome_prices
from predrank.models import Accepted, Rejected, RejectReason


def test_accepts_well_formed_record():
    item = normalize_record(raw_record("m1", 500.0, image="https://img/x.png"))
    assert isinstance(item, Accepted)
    m = item.market
    assert m.market_id == "m1"
    assert m.title == "Market m1?"
    assert m.category == "Politics"
    assert (m.yes_price, m.no_price) == (0.6, 0.4)
    assert m.volume_24h == 500.0
    assert m.total_volume == 12345.5
    assert m.end_date == "2026-12-31T00:00:00Z"
    assert m.image == "https://img/x.png"


def test_prices_as_list_or_json_string():
    assert parse_outcome_prices(["0.25", "0.75"]) == (0.25, 0.75)
    assert parse_outcome_prices('["0.1", "0.9", "0.0"]') == (0.1, 0.9)
    assert parse_outcome_prices([0.5, 0.5]) == (0.5, 0.5)


def test_not_json_prices_dropped_without_affecting_siblings():
    records = [
        raw_record("a", 100.0),
        raw_record("bad", 1000.0, outcomePrices="not-json"),
        raw_record("c", 50.0),
    ]
    result = normalize(records)
    assert [m.market_id for m in result.markets] == ["a", "c"]
    assert len(result.rejected) == 1
    assert result.rejected[0].market_id == "bad"
    assert result.rejected[0].reason == RejectReason.BAD_PRICES


def test_rejection_reasons():
    cases = {
        RejectReason.MISSING_ID: raw_record("", 10.0),
        RejectReason.MISSING_TITLE: raw_record("x", 10.0, question="  "),
        RejectReason.TOO_FEW_PRICES: raw_record("x", 10.0, outcomePrices='["1"]'),
        RejectReason.BAD_PRICES: raw_record("x", 10.0, outcomePrices=["yes", "0.5"]),
        RejectReason.NON_POSITIVE_VOLUME: raw_record("x", 0, volume24hrClob=0),
        RejectReason.INACTIVE: raw_record("x", 10.0, active=False),
        RejectReason.CLOSED: raw_record("x", 10.0, closed=True),
    }
    for reason, raw in cases.items():
        item = normalize_record(raw)
        assert isinstance(item, Rejected), reason
        assert item.reason == reason
    assert normalize_record("not a dict").reason == RejectReason.NOT_AN_OBJECT


def test_missing_prices_field_is_too_few():
    raw = raw_record("x", 10.0)
    del raw["outcomePrices"]
    assert normalize_record(raw).reason == RejectReason.TOO_FEW_PRICES


def test_volume_falls_back_to_sub_channels():
    assert derive_volume_24h({"volume24hr": "250.5"}) == 250.5
    assert derive_volume_24h({"volume24hrClob": 100, "volume24hrAmm": "20"}) == 120.0
    assert derive_volume_24h({"volume24hrClob": 30}) == 30.0
    assert derive_volume_24h({"volume24hr": "n/a", "volume24hrAmm": 5}) == 5.0
    assert derive_volume_24h({}) == 0.0
    item = normalize_record(raw_record("x", None, volume24hrClob=7, volume24hrAmm=3))
    assert item.market.volume_24h == 10.0


def test_defaults_for_optional_fields():
    raw = raw_record("x", 10.0, volume="abc")
    del raw["category"]
    m = normalize_record(raw).market
    assert m.category == "General"
    assert m.total_volume == 0.0
    assert m.image is None


def test_output_satisfies_validation_predicates():
    records = [
        raw_record("a", 10.0),
        raw_record("b", -5.0),
        raw_record("c", 3.0, closed=True),
        raw_record(None, 3.0),
        raw_record("e", 1.0, outcomePrices="[]"),
        raw_record("f", 2.0, outcomePrices=["0.3", "0.7"]),
    ]
    result = normalize(records)
    assert len(result.markets) + len(result.rejected) == len(records)
    assert len(result.markets) <= len(records)
    for m in result.markets:
        assert m.market_id and m.title
        assert m.volume_24h > 0
    assert result.rejected_by_reason == {"non_positive_volume": 1, "closed": 1, "missing_id": 1, "too_few_prices": 1}


def test_duplicate_ids_keep_first_occurrence():
    result = normalize([raw_record("A", 100.0), raw_record("A", 90.0), raw_record("B", 50.0)])
    assert [(m.market_id, m.volume_24h) for m in result.markets] == [("A", 100.0), ("B", 50.0)]
    assert [(r.market_id, r.reason) for r in result.rejected] == [("A", RejectReason.DUPLICATE_ID)]
    assert result.rejected_by_reason == {"duplicate_id": 1}


def test_duplicate_of_rejected_record_is_accepted():
    result = normalize([raw_record("A", 100.0, active=False), raw_record("A", 90.0)])
    assert [m.volume_24h for m in result.markets] == [90.0]
    assert [r.reason for r in result.rejected] == [RejectReason.INACTIVE]


def test_missing_closed_flag_is_accepted():
    raw = raw_record("x", 10.0)
    del raw["closed"]
    assert isinstance(normalize_record(raw), Accepted)
    assert isinstance(normalize_record(raw_record("x", 10.0, closed=None)), Accepted)
