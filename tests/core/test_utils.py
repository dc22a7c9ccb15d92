import re

import pytest

from course_batch_toolkit.core.utils import (
    dig,
    get_course_name,
    html_to_text,
    sec_to_hms,
    truncate,
    utc_timestamp,
)


class TestGetCourseName:
    def test_unsafe_characters_replaced(self):
        assert get_course_name({"name": "Intro: Safety/Health (v2)"}) == "Intro__Safety_Health__v2_"

    def test_non_ascii_replaced(self):
        assert get_course_name({"name": "Café"}) == "Caf_"

    def test_fallback_when_missing(self):
        assert get_course_name({}) == "processed_course"
        assert get_course_name(None) == "processed_course"


class TestSecToHms:
    @pytest.mark.parametrize("seconds, expected", [
        (0, "0:00:00"),
        (59, "0:00:59"),
        (185, "0:03:05"),
        (3725.9, "1:02:05"),
    ])
    def test_formatting(self, seconds, expected):
        assert sec_to_hms(seconds) == expected

    def test_unknown(self):
        assert sec_to_hms(None) == "(unknown)"
        assert sec_to_hms("abc") == "(unknown)"


class TestHtmlToText:
    def test_tags_stripped_and_whitespace_collapsed(self):
        assert html_to_text("<p>Hello <b>world</b></p>\n<p>again</p>") == "Hello world again"
        assert html_to_text("<p>Hello</p> <p>there</p>") == "Hello there"

    def test_plain_text(self):
        assert html_to_text("just text") == "just text"

    def test_empty(self):
        assert html_to_text("") == ""
        assert html_to_text(None) == ""


def test_truncate():
    assert truncate("abcdef", 3) == "abc..."
    assert truncate("abc", 3) == "abc"
    assert truncate("abc", 0) == "abc"


def test_dig():
    payload = {"prompt": {"content": "Why?"}, "empty": None}
    assert dig(payload, "prompt", "content") == "Why?"
    assert dig(payload, "prompt", "missing", default="x") == "x"
    assert dig(payload, "empty", default="fallback") == "fallback"
    assert dig("not a dict", "a") is None


def test_utc_timestamp_shape():
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z", utc_timestamp())
