from __future__ import annotations

from list_scout.candidates import collect_candidates
from list_scout.dom import Document
from list_scout.noise import in_chrome, is_navigation_list, is_pagination_list


def _nav_links(n: int) -> str:
    return "".join(f'<li><a href="/p{i}">Link {i}</a></li>' for i in range(n))


def test_list_inside_nav_is_navigation_and_never_a_candidate():
    doc = Document.from_html(f'<html><body><nav><ul id="top">{_nav_links(10)}</ul></nav></body></html>')
    ul = doc.select_one("#top")
    assert in_chrome(ul)
    assert is_navigation_list(ul)
    assert collect_candidates(doc) == []


def test_short_link_menu_outside_chrome_is_navigation():
    items = "".join(f'<li><a href="/{w}">{w}</a></li>' for w in ["Home", "News", "Events", "Shop", "Help", "Jobs"])
    doc = Document.from_html(f'<ul class="links">{items}</ul>')
    assert is_navigation_list(doc.select_one("ul"))


def test_long_first_link_means_content():
    long_title = "A remarkably long headline that clearly belongs to an article listing"
    doc = Document.from_html(
        f'<ul class="links"><li><a href="/a">{long_title}</a></li><li><a href="/b">b</a></li><li><a href="/c">c</a></li></ul>'
    )
    assert not is_navigation_list(doc.select_one("ul"))


def test_keyword_heavy_block_is_navigation():
    doc = Document.from_html("<div id='bar'>首页 关于我们 联系我们 登录 注册</div>")
    assert is_navigation_list(doc.select_one("#bar"))


def test_class_and_id_markers():
    doc = Document.from_html(
        '<ul id="headBanner"><li><a href="/x">A long enough link text here</a></li></ul>'
        '<ul class="side-menu"><li><a href="/y">A long enough link text here</a></li></ul>'
    )
    for ul in doc.select("ul"):
        assert is_navigation_list(ul)


def test_pagination_detection():
    doc = Document.from_html(
        '<div id="p1">共 12 页 <a href="?p=2">下一页</a></div>'
        '<ul id="p2"><li><a href="?p=1">1</a></li><li><a>Next</a></li></ul>'
        '<div id="p3">Page 2 of 9</div>'
        '<ul id="content"><li><a href="/a">Quarterly results for the northern region</a></li></ul>'
    )
    assert is_pagination_list(doc.select_one("#p1"))
    assert is_pagination_list(doc.select_one("#p2"))
    assert is_pagination_list(doc.select_one("#p3"))
    assert not is_pagination_list(doc.select_one("#content"))


def test_english_menu_words_inside_result_titles_do_not_make_a_menu():
    titles = [
        "Subsidy for home insulation grants opens in March",
        "Questions about farm grants answered by the ministry",
        "How to contact the rural development office online",
        "New login portal for grant applicants launched",
        "Register your cooperative before the June deadline",
        "Sign in changes for the tax service explained",
    ]
    items = "".join(f'<li><a href="/n/{i}">{t}</a></li>' for i, t in enumerate(titles))
    doc = Document.from_html(f'<ul id="result-list">{items}</ul>')
    assert not is_navigation_list(doc.select_one("ul"))
    cands = collect_candidates(doc)
    assert [c.selector for c in cands] == ["ul#result-list"]


def test_english_menu_words_in_short_links_still_count():
    doc = Document.from_html(
        '<div id="m"><a href="/w">Welcome to the county portal</a> <a href="/">Home</a> '
        '<a href="/about">About us</a> <a href="/c">Contact</a> <a href="/l">Login</a></div>'
    )
    assert is_navigation_list(doc.select_one("#m"))


def test_nested_pager_only_ignored_when_asked():
    doc = Document.from_html(
        '<div id="box"><div class="item"><a href="/a">A long enough entry title</a></div>'
        '<div class="pagination"><a href="?p=2">Next</a> 共 3 页</div></div>'
    )
    box = doc.select_one("#box")
    assert is_pagination_list(box)
    assert not is_pagination_list(box, ignore_pagers=True)
    assert is_pagination_list(doc.select_one(".pagination"), ignore_pagers=True)
