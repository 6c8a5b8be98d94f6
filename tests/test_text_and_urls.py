from __future__ import annotations

import pytest

from list_scout.textutil import clean_title_text, strip_symbols
from list_scout.urls import is_valid_url, make_absolute_url


SAMPLES = [
    "2024-01-05 Annual budget report published today",
    "通知公告 关于开展2024年度申报工作的通知 政务动态",
    "  Spaced    out\n title   text ",
    "甲" * 80 + "。" + "乙" * 170,
    "x" * 250,
    "2024-01-05 报告",
    "short",
]


def test_clean_title_strips_dates_and_category_tags():
    assert clean_title_text("2024-01-05 Annual budget report published today") == "Annual budget report published today"
    assert clean_title_text("通知公告 关于开展2024年度申报工作的通知 政务动态") == "关于开展2024年度申报工作的通知"
    assert clean_title_text("  Spaced    out\n title   text ") == "Spaced out title text"


def test_clean_title_cuts_long_titles():
    assert clean_title_text("甲" * 80 + "。" + "乙" * 170) == "甲" * 80
    assert clean_title_text("x" * 250) == "x" * 100


def test_clean_title_keeps_original_when_cleaning_removes_too_much():
    assert clean_title_text("2024-01-05 报告") == "2024-01-05 报告"


@pytest.mark.parametrize("raw", SAMPLES)
def test_clean_title_is_idempotent_and_respects_floor(raw):
    once = clean_title_text(raw)
    assert clean_title_text(once) == once
    original = " ".join(raw.split())
    assert len(once) >= min(len(original), max(5, 0.3 * len(original)))


def test_clean_title_empty():
    assert clean_title_text("") == ""
    assert clean_title_text(None) == ""


def test_strip_symbols_keeps_brackets_and_words():
    assert strip_symbols("【通知】关于项目申报的通知！★") == "【通知】关于项目申报的通知"


def test_redirect_links_are_unwrapped():
    assert make_absolute_url("https://x.com/redirect?url=https%3A%2F%2Freal.com%2Fa") == "https://real.com/a"
    assert (
        make_absolute_url("/visit/link.do?url=http%3A%2F%2Fgov.example.cn%2Fdoc%2F1.html", "https://search.example.cn/s?q=1")
        == "http://gov.example.cn/doc/1.html"
    )


def test_relative_and_protocol_relative_links():
    assert make_absolute_url("../b/c.html", "https://ex.com/a/x/index.html") == "https://ex.com/a/b/c.html"
    assert make_absolute_url("//cdn.ex.com/p", "https://ex.com/") == "https://cdn.ex.com/p"
    assert make_absolute_url("https://ex.com/keep?x=1", "https://other.com/") == "https://ex.com/keep?x=1"


@pytest.mark.parametrize(
    "href,base",
    [
        ("javascript:void(0)", "https://ex.com/"),
        ("mailto:a@b.c", "https://ex.com/"),
        ("", "https://ex.com/"),
        (None, "https://ex.com/"),
        ("ftp://files.ex.com/a", None),
        ("/relative/without/base", None),
        ("http://[bad", None),
    ],
)
def test_unusable_links_give_none(href, base):
    assert make_absolute_url(href, base) is None


def test_is_valid_url():
    assert is_valid_url("https://a.example/c")
    assert is_valid_url("http://a.example")
    assert not is_valid_url("...")
    assert not is_valid_url("https://a.example/long...")
    assert not is_valid_url("")
    assert not is_valid_url("   ")
    assert not is_valid_url(5)
    assert not is_valid_url(None)
    assert not is_valid_url("ftp://a.example/x")
    assert not is_valid_url("/just/a/path")
