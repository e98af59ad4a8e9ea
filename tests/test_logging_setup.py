"""
Unit tests for logging_setup.py core logging infrastructure.

Tests JsonFormatter field order, timestamp format, context management,
rate limiting, URL masking and library noise suppression.
"""

import json
import logging
import threading
import time
import unittest
from datetime import datetime, timezone

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from logging_setup import (
    JsonFormatter, RateLimitFilter, set_request_ctx, clear_request_ctx, get_request_ctx,
    configure_logging, get_logger, mask_url_for_logging
)


def _record(msg='test message', level=logging.INFO):
    return logging.LogRecord(
        name='test', level=level, pathname='', lineno=0,
        msg=msg, args=(), exc_info=None
    )


class TestJsonFormatter(unittest.TestCase):
    """Test JsonFormatter field order and timestamp format."""

    def setUp(self):
        self.formatter = JsonFormatter()
        clear_request_ctx()

    def tearDown(self):
        clear_request_ctx()

    def test_field_order_consistency(self):
        """Test that JSON fields are in the expected order."""
        record = _record()
        record.stage = 'innertube'
        record.event = 'stage_result'
        record.outcome = 'success'
        record.dur_ms = 1500
        record.detail = 'test detail'
        record.language_code = 'en'
        record.track_count = 3

        parsed = json.loads(self.formatter.format(record))

        expected_order = ['ts', 'lvl', 'stage', 'event', 'outcome', 'dur_ms', 'detail', 'language_code', 'track_count']
        self.assertEqual(list(parsed.keys()), expected_order)

    def test_timestamp_format(self):
        """Test ISO 8601 timestamp format with millisecond precision."""
        parsed = json.loads(self.formatter.format(_record()))

        timestamp = parsed['ts']
        self.assertRegex(timestamp, r'^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$')

        parsed_time = datetime.fromisoformat(timestamp.replace('Z', '+00:00'))
        self.assertEqual(parsed_time.tzinfo, timezone.utc)

    def test_context_injection(self):
        """Test automatic context injection from thread-local storage."""
        set_request_ctx(request_id='r-test-123', video_id='dQw4w9WgXcQ')

        parsed = json.loads(self.formatter.format(_record()))

        self.assertEqual(parsed['request_id'], 'r-test-123')
        self.assertEqual(parsed['video_id'], 'dQw4w9WgXcQ')

    def test_record_video_id_overrides_context(self):
        set_request_ctx(video_id='aaaaaaaaaaa')
        record = _record()
        record.video_id = 'bbbbbbbbbbb'

        parsed = json.loads(self.formatter.format(record))

        self.assertEqual(parsed['video_id'], 'bbbbbbbbbbb')

    def test_null_value_omission(self):
        """Test that null/None values are omitted from JSON output."""
        record = _record()
        record.stage = None
        record.event = 'test_event'
        record.outcome = None

        parsed = json.loads(self.formatter.format(record))

        self.assertNotIn('stage', parsed)
        self.assertNotIn('outcome', parsed)
        self.assertEqual(parsed['event'], 'test_event')

    def test_message_becomes_detail(self):
        parsed = json.loads(self.formatter.format(_record('hello')))
        self.assertEqual(parsed['detail'], 'hello')

    def test_non_serializable_extra_is_stringified(self):
        record = _record()
        record.problematic = object()

        parsed = json.loads(self.formatter.format(record))

        self.assertIn('problematic', parsed)
        self.assertIsInstance(parsed['problematic'], str)

    def test_exception_included(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = logging.LogRecord(
                name='test', level=logging.ERROR, pathname='', lineno=0,
                msg='failed', args=(), exc_info=sys.exc_info()
            )

        parsed = json.loads(self.formatter.format(record))

        self.assertIn('ValueError: boom', parsed['exc'])

    def test_single_line_output(self):
        formatted = self.formatter.format(_record('line one\nline two'))
        self.assertNotIn('\n', formatted)


class TestRateLimitFilter(unittest.TestCase):
    """Test RateLimitFilter rate limiting and suppression behavior."""

    def setUp(self):
        self.filter = RateLimitFilter(per_key=3, window_sec=1)

    def test_allows_messages_within_limit(self):
        record = _record()
        for _ in range(3):
            self.assertTrue(self.filter.filter(record))

    def test_suppresses_messages_over_limit(self):
        record = _record()
        for _ in range(3):
            self.assertTrue(self.filter.filter(record))

        # 4th message is let through with a suppression marker
        self.assertTrue(self.filter.filter(record))
        self.assertIn('[suppressed]', record.getMessage())

        self.assertFalse(self.filter.filter(_record()))

    def test_window_reset(self):
        for _ in range(4):
            self.assertTrue(self.filter.filter(_record()))

        time.sleep(1.1)

        self.assertTrue(self.filter.filter(_record()))

    def test_different_keys_separate_limits(self):
        for _ in range(3):
            self.assertTrue(self.filter.filter(_record('message type 1')))

        self.assertTrue(self.filter.filter(_record('message type 2')))

    def test_events_keyed_by_event_name(self):
        for i in range(3):
            record = _record('')
            record.event = 'stage_start'
            self.assertTrue(self.filter.filter(record))

        other = _record('')
        other.event = 'stage_result'
        self.assertTrue(self.filter.filter(other))

    def test_thread_safety(self):
        results = []

        def worker():
            for _ in range(5):
                results.append(self.filter.filter(_record('concurrent message')))

        threads = [threading.Thread(target=worker) for _ in range(3)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        allowed_count = sum(1 for r in results if r)
        self.assertGreater(allowed_count, 0)
        self.assertLessEqual(allowed_count, 4)  # 3 regular + 1 suppression marker


class TestContextManagement(unittest.TestCase):
    """Test thread-local context management."""

    def setUp(self):
        clear_request_ctx()

    def tearDown(self):
        clear_request_ctx()

    def test_set_and_get_context(self):
        set_request_ctx(request_id='r-123', video_id='vid-456')

        context = get_request_ctx()
        self.assertEqual(context['request_id'], 'r-123')
        self.assertEqual(context['video_id'], 'vid-456')

    def test_partial_context_setting(self):
        set_request_ctx(request_id='r-123')
        context = get_request_ctx()

        self.assertEqual(context['request_id'], 'r-123')
        self.assertNotIn('video_id', context)

        set_request_ctx(video_id='vid-456')
        context = get_request_ctx()

        self.assertEqual(context['request_id'], 'r-123')
        self.assertEqual(context['video_id'], 'vid-456')

    def test_context_clearing(self):
        set_request_ctx(request_id='r-123', video_id='vid-456')
        clear_request_ctx()

        self.assertEqual(get_request_ctx(), {})

    def test_thread_isolation(self):
        results = {}

        def worker(thread_id):
            set_request_ctx(request_id=f'r-{thread_id}', video_id=f'vid-{thread_id}')
            time.sleep(0.1)
            results[thread_id] = get_request_ctx()

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(3)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        for i in range(3):
            self.assertEqual(results[i]['request_id'], f'r-{i}')
            self.assertEqual(results[i]['video_id'], f'vid-{i}')


class TestMaskUrlForLogging(unittest.TestCase):

    def test_masks_api_key(self):
        masked = mask_url_for_logging("https://www.youtube.com/youtubei/v1/player?key=AIzaSySecret")
        self.assertNotIn("AIzaSySecret", masked)
        self.assertIn("key=", masked)

    def test_masks_signature_keeps_other_params(self):
        masked = mask_url_for_logging("https://www.youtube.com/api/timedtext?v=abc&lang=en&signature=XYZ123")
        self.assertNotIn("XYZ123", masked)
        self.assertIn("lang=en", masked)
        self.assertIn("v=abc", masked)

    def test_url_without_query_unchanged(self):
        url = "https://www.youtube.com/watch"
        self.assertEqual(mask_url_for_logging(url), url)


class TestLoggingConfiguration(unittest.TestCase):
    """Test logging configuration and library noise suppression."""

    def setUp(self):
        root = logging.getLogger()
        self._saved_handlers = root.handlers[:]
        self._saved_level = root.level

    def tearDown(self):
        root = logging.getLogger()
        for handler in root.handlers[:]:
            root.removeHandler(handler)
        for handler in self._saved_handlers:
            root.addHandler(handler)
        root.setLevel(self._saved_level)

    def test_configure_logging_json(self):
        logger = configure_logging(log_level='INFO', use_json=True)

        self.assertIsInstance(logger, logging.Logger)
        self.assertEqual(logger.level, logging.INFO)
        self.assertEqual(len(logger.handlers), 1)
        handler = logger.handlers[0]
        self.assertIsInstance(handler.formatter, JsonFormatter)
        self.assertTrue(any(isinstance(f, RateLimitFilter) for f in handler.filters))

    def test_configure_logging_basic(self):
        logger = configure_logging(log_level='DEBUG', use_json=False)

        self.assertEqual(logger.level, logging.DEBUG)
        self.assertNotIsInstance(logger.handlers[0].formatter, JsonFormatter)

    def test_library_noise_suppression(self):
        configure_logging()

        for lib in ['urllib3', 'requests', 'charset_normalizer', 'bs4']:
            self.assertGreaterEqual(logging.getLogger(lib).level, logging.WARNING)

    def test_get_logger(self):
        self.assertEqual(get_logger('transcript_service').name, 'transcript_service')


if __name__ == '__main__':
    unittest.main()
