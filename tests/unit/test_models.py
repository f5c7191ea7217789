from datetime import datetime

from wme.db.models import (
    SignalType, MatchRow, MatchStatus, SuperLikeMeta, FreezeMeta, DislikeMeta, ReportMeta,
    encode_meta, decode_meta,
)

NOW = datetime(2026, 6, 14, 12, 0, 0)


def test_signal_type_parse_is_lenient():
    assert SignalType.parse("like") is SignalType.LIKE
    assert SignalType.parse("Block") is SignalType.BLOCK
    assert SignalType.parse("SUPER") is SignalType.UNKNOWN
    assert SignalType.parse(None) is SignalType.UNKNOWN


def test_meta_encoding_is_tagged():
    text = encode_meta(FreezeMeta(days=14, until=datetime(2026, 6, 28, 12, 0)))
    assert '"kind": "freeze"' in text
    decoded = decode_meta(text)
    assert isinstance(decoded, FreezeMeta)
    assert decoded.until == datetime(2026, 6, 28, 12, 0)
    assert decoded.days == 14


def test_each_meta_kind_decodes_to_its_class():
    for meta in (SuperLikeMeta(daily_cap=5), DislikeMeta(undo_minutes=10),
                 ReportMeta(report_type="spam", details="sent links")):
        assert decode_meta(encode_meta(meta)) == meta


def test_decode_meta_tolerates_bad_input():
    assert encode_meta(None) is None
    assert decode_meta(None) is None
    assert decode_meta("") is None
    assert decode_meta("{broken") is None
    assert decode_meta('{"kind": "mystery"}') is None


def _match(**flags) -> MatchRow:
    return MatchRow(user_low_id=1, user_high_id=2, created_at=NOW, updated_at=NOW, **flags)


def test_status_precedence():
    assert _match().status is MatchStatus.NEW
    assert _match(user2_approved=True).status is MatchStatus.ONE_SIDED
    assert _match(user1_approved=True, user2_approved=True, mutual_approved=True).status is MatchStatus.MUTUAL
    assert _match(mutual_approved=True, frozen=True).status is MatchStatus.FROZEN
    assert _match(archived=True, frozen=True, mutual_approved=True).status is MatchStatus.ARCHIVED
    assert _match(archived=True, blocked=True, active=False).status is MatchStatus.BLOCKED
    assert _match(frozen=True, blocked=True, active=False).status is MatchStatus.BLOCKED
    assert _match(active=False, frozen=True).status is MatchStatus.CLOSED


def test_match_row_helpers():
    match = _match(id=9)
    assert match.involves(1) and match.involves(2) and not match.involves(3)
    assert match.other(1) == 2 and match.other(2) == 1
    data = match.to_dict()
    assert data["status"] == "NEW"
    assert data["id"] == 9
