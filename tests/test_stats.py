"""Tests for daily stats and export encoding."""

import json
from datetime import date, datetime, timedelta
from unittest.mock import patch

import pytest

from earntime.exceptions import SerializationError
from earntime.stats import (
    CSV_HEADER,
    DailyStat,
    ExportFormat,
    RangeOption,
    daily_series,
    export_filename,
    make_export_document,
    parse_csv,
    to_csv,
    to_json,
)

from helpers import REFERENCE, make_log, make_session


class TestRangeOption:
    def test_last_7_days_cutoff(self):
        assert RangeOption.LAST_7_DAYS.cutoff_date(REFERENCE) == datetime(2025, 3, 9)

    def test_last_30_days_cutoff(self):
        assert RangeOption.LAST_30_DAYS.cutoff_date(REFERENCE) == datetime(2025, 2, 14)

    def test_all_time_has_no_cutoff(self):
        assert RangeOption.ALL_TIME.cutoff_date(REFERENCE) is None

    def test_labels_and_slugs(self):
        assert RangeOption.LAST_7_DAYS.label == "7 Days"
        assert RangeOption.LAST_30_DAYS.slug == "30-days"
        assert RangeOption.ALL_TIME.slug == "all-time"

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("7d", RangeOption.LAST_7_DAYS),
            ("30D", RangeOption.LAST_30_DAYS),
            ("all", RangeOption.ALL_TIME),
            ("last7Days", RangeOption.LAST_7_DAYS),
            ("all-time", RangeOption.ALL_TIME),
        ],
    )
    def test_parse(self, raw, expected):
        assert RangeOption.parse(raw) == expected

    def test_parse_unknown(self):
        with pytest.raises(ValueError):
            RangeOption.parse("fortnight")


class TestDailySeries:
    def test_sparse_and_sorted(self):
        sessions = [
            make_session(datetime(2025, 3, 14, 9, 0), 25),
            make_session(datetime(2025, 3, 10, 9, 0), 10),
        ]
        logs = [make_log(datetime(2025, 3, 12, 20, 0), 15)]
        series = daily_series(sessions, logs, RangeOption.LAST_7_DAYS, REFERENCE)
        assert series == [
            DailyStat(date(2025, 3, 10), 10, 0),
            DailyStat(date(2025, 3, 12), 0, 15),
            DailyStat(date(2025, 3, 14), 25, 0),
        ]

    def test_same_day_merged_without_double_counting(self):
        sessions = [make_session(REFERENCE, 25), make_session(REFERENCE - timedelta(hours=2), 5)]
        logs = [make_log(REFERENCE, 10)]
        series = daily_series(sessions, logs, RangeOption.LAST_7_DAYS, REFERENCE)
        assert series == [DailyStat(date(2025, 3, 15), 30, 10)]

    def test_range_filters_old_records(self):
        sessions = [
            make_session(datetime(2025, 3, 9, 0, 0), 10),
            make_session(datetime(2025, 3, 8, 23, 59), 20),
        ]
        series = daily_series(sessions, [], RangeOption.LAST_7_DAYS, REFERENCE)
        assert [stat.day for stat in series] == [date(2025, 3, 9)]

    def test_all_time_keeps_everything(self):
        sessions = [make_session(datetime(2024, 1, 1, 10, 0), 10)]
        assert len(daily_series(sessions, [], RangeOption.ALL_TIME, REFERENCE)) == 1

    def test_empty(self):
        assert daily_series([], [], RangeOption.LAST_30_DAYS, REFERENCE) == []


class TestCsv:
    def test_format(self):
        series = [DailyStat(date(2025, 3, 14), 25, 15)]
        assert to_csv(series) == "date,earned_minutes,spent_minutes\n2025-03-14,25,15"

    def test_empty_is_header_only(self):
        assert to_csv([]) == CSV_HEADER

    def test_parse_back(self):
        series = [DailyStat(date(2025, 3, 10), 10, 0), DailyStat(date(2025, 3, 14), 25, 15)]
        assert parse_csv(to_csv(series)) == series

    def test_parse_bad_header(self):
        with pytest.raises(ValueError):
            parse_csv("day,earned,spent\n2025-03-14,1,2")

    def test_parse_bad_row(self):
        with pytest.raises(ValueError):
            parse_csv(f"{CSV_HEADER}\n2025-03-14,1")


class TestJson:
    def test_record_shape(self):
        payload = json.loads(to_json([DailyStat(date(2025, 3, 14), 25, 15)]))
        assert payload == [{"date": "2025-03-14", "earnedMinutes": 25, "spentMinutes": 15}]

    def test_empty_array(self):
        assert json.loads(to_json([])) == []


class TestExportDocument:
    def test_filenames(self):
        assert export_filename(RangeOption.LAST_7_DAYS, ExportFormat.CSV) == "earn-time-stats-7-days.csv"
        assert export_filename(RangeOption.ALL_TIME, ExportFormat.JSON) == "earn-time-stats-all-time.json"

    def test_csv_document(self):
        doc = make_export_document([], RangeOption.LAST_30_DAYS, ExportFormat.CSV)
        assert doc.data == CSV_HEADER.encode("utf-8")
        assert doc.filename == "earn-time-stats-30-days.csv"
        assert doc.content_type == "text/csv"

    def test_json_document(self):
        doc = make_export_document(
            [DailyStat(date(2025, 3, 14), 5, 0)], RangeOption.ALL_TIME, ExportFormat.JSON
        )
        assert doc.content_type == "application/json"
        assert json.loads(doc.data)[0]["earnedMinutes"] == 5

    def test_write_to(self, tmp_path):
        doc = make_export_document([], RangeOption.LAST_7_DAYS, ExportFormat.CSV)
        path = doc.write_to(tmp_path / "exports")
        assert path.name == "earn-time-stats-7-days.csv"
        assert path.read_text() == CSV_HEADER

    def test_encoding_failure_raises_serialization_error(self):
        with patch("earntime.stats.to_json", side_effect=TypeError("not serializable")):
            with pytest.raises(SerializationError) as exc_info:
                make_export_document([], RangeOption.LAST_7_DAYS, ExportFormat.JSON)
        assert exc_info.value.export_format == "json"
