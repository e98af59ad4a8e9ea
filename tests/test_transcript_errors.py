#!/usr/bin/env python3
"""
Tests for error messages, codes and structured fields.
"""

import os
import sys
import unittest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import transcript_errors as errors


class TestErrorRendering(unittest.TestCase):

    def test_video_id_in_message(self):
        self.assertEqual(
            str(errors.TranscriptsDisabledError("abc")),
            "Subtitles are disabled for this video (video_id: abc)",
        )

    def test_message_without_video_id(self):
        self.assertEqual(str(errors.TranscriptParseError("bad payload")), "bad payload")

    def test_cause_appended(self):
        cause = ConnectionError("refused")
        err = errors.TranscriptFetchError("Request to YouTube failed", video_id="abc", cause=cause)
        self.assertIn("(video_id: abc)", str(err))
        self.assertIn("caused by: ConnectionError('refused')", str(err))
        self.assertIs(err.cause, cause)

    def test_block_errors_carry_proxy_hint(self):
        for err in (errors.TooManyRequestsError("abc"), errors.RequestBlockedError("abc"), errors.IpBlockedError("abc")):
            self.assertIn(errors.PROXY_HINT, str(err))

    def test_status_code_rendered(self):
        self.assertIn("(HTTP 418)", str(errors.RequestBlockedError("abc", status_code=418)))
        self.assertNotIn("HTTP", str(errors.RequestBlockedError("abc")))

    def test_invalid_id_hint_only_for_urls(self):
        self.assertIn("bare video id", str(errors.InvalidVideoIdError("https://youtu.be/x")))
        self.assertNotIn("bare video id", str(errors.InvalidVideoIdError("short")))


class TestErrorHierarchy(unittest.TestCase):

    def test_all_errors_share_base(self):
        classes = [
            errors.InvalidVideoIdError, errors.VideoUnavailableError, errors.TranscriptsDisabledError,
            errors.NoTranscriptFoundError, errors.NoManualTranscriptFoundError,
            errors.NoGeneratedTranscriptFoundError, errors.TranslationUnavailableError,
            errors.TooManyRequestsError, errors.RequestBlockedError, errors.IpBlockedError,
            errors.PoTokenRequiredError, errors.TranscriptFetchError, errors.TranscriptParseError,
        ]
        for cls in classes:
            self.assertTrue(issubclass(cls, errors.TranscriptError), cls)
        self.assertEqual(len({cls.error_code for cls in classes}), len(classes))

    def test_ip_blocked_is_request_blocked(self):
        self.assertTrue(issubclass(errors.IpBlockedError, errors.RequestBlockedError))


class TestToDict(unittest.TestCase):

    def test_no_transcript_fields(self):
        data = errors.NoTranscriptFoundError("abc", ["fr"], ["en", "de"]).to_dict()
        self.assertEqual(data["error_code"], "no_transcript")
        self.assertEqual(data["requested_languages"], ["fr"])
        self.assertEqual(data["available_languages"], ["en", "de"])
        self.assertEqual(data["video_id"], "abc")

    def test_status_code_field(self):
        data = errors.IpBlockedError("abc", status_code=403).to_dict()
        self.assertEqual(data["error_type"], "IpBlockedError")
        self.assertEqual(data["status_code"], 403)

    def test_cause_field(self):
        data = errors.TranscriptParseError("bad", cause=ValueError("x")).to_dict()
        self.assertEqual(data["cause"], "ValueError('x')")


if __name__ == '__main__':
    unittest.main()
