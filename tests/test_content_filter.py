"""
Profanity blocklist: matching rules and word-list loading
"""

import unittest
from unittest import mock

import requests

import helpers

from relay import content_filter


class MatchingTest(unittest.TestCase):

    def setUp(self):
        helpers.reset_all()
        content_filter.set_words({"hello", "Darn"})

    def tearDown(self):
        content_filter.set_words(())

    def test_case_insensitive_whole_word(self):
        self.assertTrue(content_filter.contains_profanity("HELLO world"))
        self.assertTrue(content_filter.contains_profanity("well darn"))

    def test_no_match_inside_words(self):
        self.assertFalse(content_filter.contains_profanity("helloworld"))
        self.assertFalse(content_filter.contains_profanity("hello, world"))

    def test_empty_blocklist_allows_everything(self):
        content_filter.set_words(())
        self.assertFalse(content_filter.contains_profanity("hello"))


def _response(text=None, json_data=None):
    r = mock.Mock()
    r.text = text
    r.json.return_value = json_data
    r.raise_for_status.return_value = None
    return r


class LoadListsTest(unittest.TestCase):

    def tearDown(self):
        content_filter.set_words(())

    def test_union_of_text_and_json_sources(self):
        responses = {
            "https://example.test/words.txt": _response(text="Foo\n bar \n\n"),
            "https://example.test/words.json": _response(json_data=["BAZ", "foo", 3]),
        }
        with mock.patch("relay.content_filter.requests.get", side_effect=lambda url, timeout: responses[url]):
            count = content_filter.load_profanity_lists(list(responses))

        self.assertEqual(count, 3)
        self.assertTrue(content_filter.contains_profanity("baz"))
        self.assertTrue(content_filter.contains_profanity("BAR"))

    def test_unreachable_sources_degrade_to_empty(self):
        content_filter.set_words({"stale"})
        with mock.patch(
            "relay.content_filter.requests.get",
            side_effect=requests.ConnectionError("offline"),
        ):
            count = content_filter.load_profanity_lists(["https://example.test/words.txt"])

        self.assertEqual(count, 0)
        self.assertEqual(content_filter.word_count(), 0)
        self.assertFalse(content_filter.contains_profanity("stale"))

    def test_one_failing_source_keeps_the_other(self):
        def fake_get(url, timeout):
            if url.endswith(".json"):
                raise requests.Timeout("slow")
            return _response(text="heck")

        with mock.patch("relay.content_filter.requests.get", side_effect=fake_get):
            count = content_filter.load_profanity_lists(
                ["https://example.test/a.txt", "https://example.test/b.json"]
            )

        self.assertEqual(count, 1)
        self.assertTrue(content_filter.contains_profanity("HECK"))


if __name__ == "__main__":
    unittest.main()
