"""
Unit tests for log_events.py event helper functions.

Tests the evt() function and StageTimer context manager for:
- Consistent event emission
- Duration reporting
- Exception handling and error classification
"""

import unittest
import logging
import time
import json
from io import StringIO

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import requests

import log_events
from logging_setup import JsonFormatter
from transcript_errors import TooManyRequestsError, TranscriptParseError, VideoUnavailableError


class _CapturingTestCase(unittest.TestCase):
    """Routes root logging into a buffer with the JSON formatter."""

    def setUp(self):
        self.log_buffer = StringIO()
        self.handler = logging.StreamHandler(self.log_buffer)
        self.handler.setFormatter(JsonFormatter())

        self.logger = logging.getLogger()
        self._saved_handlers = self.logger.handlers[:]
        self._saved_level = self.logger.level
        for handler in self.logger.handlers[:]:
            self.logger.removeHandler(handler)
        self.logger.addHandler(self.handler)
        self.logger.setLevel(logging.INFO)

    def tearDown(self):
        self.logger.removeHandler(self.handler)
        self.handler.close()
        for handler in self._saved_handlers:
            self.logger.addHandler(handler)
        self.logger.setLevel(self._saved_level)

    def records(self):
        return [json.loads(line) for line in self.log_buffer.getvalue().splitlines() if line.strip()]


class TestEvtFunction(_CapturingTestCase):
    """Test the evt() function for consistent event emission."""

    def test_evt_basic_event_emission(self):
        log_events.evt("test_event", field1="value1", field2=42)

        records = self.records()
        self.assertEqual(len(records), 1)
        self.assertEqual(records[0]["event"], "test_event")
        self.assertEqual(records[0]["field1"], "value1")
        self.assertEqual(records[0]["field2"], 42)

    def test_evt_with_pipeline_fields(self):
        log_events.evt("catalog_parsed", video_id="dQw4w9WgXcQ", track_count=3, languages="en,de")

        record = self.records()[0]
        self.assertEqual(record["video_id"], "dQw4w9WgXcQ")
        self.assertEqual(record["track_count"], 3)

    def test_evt_with_no_additional_fields(self):
        log_events.evt("simple_event")

        record = self.records()[0]
        self.assertEqual(record["event"], "simple_event")
        self.assertNotIn("detail", record)


class TestStageTimer(_CapturingTestCase):
    """Test the StageTimer context manager."""

    def test_stage_timer_success_case(self):
        with log_events.StageTimer("watch_page", video_id="dQw4w9WgXcQ"):
            time.sleep(0.01)

        start, result = self.records()
        self.assertEqual(start["event"], "stage_start")
        self.assertEqual(start["stage"], "watch_page")
        self.assertEqual(result["event"], "stage_result")
        self.assertEqual(result["outcome"], "success")
        self.assertEqual(result["video_id"], "dQw4w9WgXcQ")
        self.assertNotIn("error_type", result)

    def test_stage_timer_duration(self):
        with log_events.StageTimer("timedtext_fetch"):
            time.sleep(0.05)

        result = self.records()[-1]
        self.assertGreaterEqual(result["dur_ms"], 40)

    def test_stage_timer_exception_handling(self):
        with self.assertRaises(TooManyRequestsError):
            with log_events.StageTimer("innertube", attempt=2):
                raise TooManyRequestsError("dQw4w9WgXcQ")

        result = self.records()[-1]
        self.assertEqual(result["outcome"], "error")
        self.assertEqual(result["error_type"], "rate_limited")
        self.assertIn("TooManyRequestsError", result["detail"])
        self.assertEqual(result["attempt"], 2)

    def test_time_stage_returns_stage_timer(self):
        timer = log_events.time_stage("catalog_parse", video_id="abc")
        self.assertIsInstance(timer, log_events.StageTimer)
        self.assertEqual(timer.stage, "catalog_parse")


class TestClassifyErrorType(unittest.TestCase):

    def test_domain_errors_report_their_code(self):
        self.assertEqual(log_events.classify_error_type(VideoUnavailableError("abc")), "video_unavailable")
        self.assertEqual(log_events.classify_error_type(TranscriptParseError("bad xml")), "parse_failed")

    def test_network_errors(self):
        exc = requests.ConnectionError("Connection refused")
        self.assertEqual(log_events.classify_error_type(exc), "network_error")
        self.assertEqual(log_events.classify_error_type(Exception("Read timed out")), "network_error")

    def test_parse_errors(self):
        self.assertEqual(log_events.classify_error_type(ValueError("Expecting value: json")), "parse_error")

    def test_fallback(self):
        self.assertEqual(log_events.classify_error_type(RuntimeError("something odd")), "service_error")


if __name__ == '__main__':
    unittest.main()
