from __future__ import annotations

from list_scout.candidates import MARKER_CONTAINER, collect_candidates, estimate_item_count
from list_scout.dom import Document
from list_scout.resolver import find_list_container
from list_scout.segmenter import get_list_items


def result_list_page() -> str:
    items = "".join(
        f'<li><a href="/doc/{i}.html">Title {i} is long enough</a> <span>2024-01-0{i}</span></li>' for i in range(1, 9)
    )
    return (
        "<html><head><title>Results</title></head><body>"
        "<nav><ul class='menu-list'>" + "".join(f"<li><a href='/m{i}'>Menu {i}</a></li>" for i in range(10)) + "</ul></nav>"
        f'<h1>Archive</h1><ul id="result-list">{items}</ul>'
        "</body></html>"
    )


def test_keyword_list_wins_and_nav_list_is_ignored():
    doc = Document.from_html(result_list_page(), url="https://example.com/search")
    cands = collect_candidates(doc)
    assert len(cands) == 1
    best = cands[0]
    assert best.tier == "B"
    assert best.item_count == 8
    assert best.selector == "ul#result-list"
    assert best.preview.startswith("Title 1 is long enough")
    assert best.to_dict()["itemCount"] == 8


SEARCH_PAGE = """
<html><body>
<header><a href="/">首页</a></header>
<div class="main">
  <p class="summary">Search results for "budget"</p>
  <div class="hits">
    <a href="/doc/1">Budget report for fiscal year 2021</a><br>
    <a href="/doc/2">Budget report for fiscal year 2022</a><br>
    <a href="/doc/3">Budget report for fiscal year 2023</a><br>
    <a href="/doc/4">Budget committee meeting minutes</a><br>
    <a href="/doc/5">Budget amendments approved by council</a><br>
    <a href="/doc/6">Budget hearing schedule announced</a><br>
  </div>
  <div class="pages"><a href="?p=2">下一页</a></div>
</div>
</body></html>
"""


def test_search_region_link_wrapper_is_found_and_resolves_idempotently():
    doc = Document.from_html(SEARCH_PAGE, url="https://example.com/s")
    cands = collect_candidates(doc)
    assert len(cands) == 1
    best = cands[0]
    assert best.tier == "A"
    assert best.priority == -1
    assert best.item_count == 6
    assert best.selector.endswith("div.hits:nth-of-type(1) a[href]")

    again = find_list_container(doc, best.selector)
    assert again == best.container
    assert find_list_container(doc, best.selector) == again

    items = get_list_items(again)
    assert [a.get("href") for a in items] == [f"/doc/{i}" for i in range(1, 7)]


def test_repeated_sibling_blocks():
    cards = "".join(
        f'<div class="card"><h3><a href="/p/{i}">Product number {i} is here</a></h3><p>Some details</p></div>'
        for i in range(5)
    )
    doc = Document.from_html(f'<div id="cards">{cards}<div class="promo">x</div></div>')
    cands = collect_candidates(doc)
    assert [c.tier for c in cands] == ["C"]
    assert cands[0].item_count == 5
    assert cands[0].selector == "div#cards"


MARKER_PAGE = """
<table class="res">
<tr><td><a name="docpuburl" href="/a/1.html">【通知】关于2024年度项目申报的通知！</a></td><td>2024-03-01</td></tr>
<tr><td><a name="docpuburl" href="/a/2.html">【公告】关于调整办事窗口时间的公告</a></td><td>2024-03-02</td></tr>
<tr><td><a name="docpuburl" href="/a/3.html">【通知】关于开展年度安全检查的通知</a></td><td>2024-03-03</td></tr>
</table>
"""


def test_marker_links_group_under_sentinel():
    doc = Document.from_html(MARKER_PAGE, url="https://gov.example.cn/list")
    cands = collect_candidates(doc)
    assert len(cands) == 1
    assert cands[0].tier == "D"
    assert cands[0].selector == MARKER_CONTAINER
    assert cands[0].item_count == 3

    container = find_list_container(doc, MARKER_CONTAINER)
    assert container == cands[0].container
    assert container.element.tag == "table"
    assert [it.tag for it in get_list_items(container)] == ["tr", "tr", "tr"]


def table_page() -> str:
    rows = "".join(
        f'<tr><td><a href="/r/{i}">Regulation document number {i}</a></td><td>2023-0{i}-15</td></tr>' for i in range(1, 6)
    )
    return f'<table class="grid"><tr><th>Name</th><th>Date</th></tr>{rows}</table>'


def test_fallback_table_and_header_row_is_dropped():
    doc = Document.from_html(table_page())
    cands = collect_candidates(doc)
    assert len(cands) == 1
    best = cands[0]
    assert best.tier == "E"
    assert best.type_label == "table"
    assert best.item_count == 5
    assert best.preview == "Name Date"
    assert len(get_list_items(best.container)) == 5


def test_small_detail_tables_are_skipped():
    rows = "".join(f"<tr><td>Field {i}</td><td>Value {i}</td></tr>" for i in range(3))
    doc = Document.from_html(f'<table class="detail-info">{rows}</table>')
    assert collect_candidates(doc) == []


def test_estimate_item_count_variants():
    doc = Document.from_html(
        '<ul id="u"><li>short</li><li>long enough entry</li><li>another long entry</li></ul>'
        '<div id="d"><div><a href="/1">x</a> with plenty of description text</div><div>tiny</div></div>'
    )
    assert estimate_item_count(doc.select_one("#u")) == 2
    assert estimate_item_count(doc.select_one("#d")) == 1


def test_empty_page_has_no_candidates():
    assert collect_candidates(Document.from_html("<p>nothing to see</p>")) == []


def test_estimate_counts_each_child_once():
    doc = Document.from_html('<div id="d"><div><a href="/1">x</a> with a thirty char description</div></div>')
    assert estimate_item_count(doc.select_one("#d")) == 1


def test_results_wrapper_with_its_own_pager_is_still_a_candidate():
    entries = "".join(
        f'<div class="entry"><a href="/e/{i}">Entry headline number {i} for the week</a><p>Short description</p></div>'
        for i in range(6)
    )
    doc = Document.from_html(
        f'<div class="content">{entries}<div class="pager"><a href="?p=2">下一页</a> <a href="?p=9">尾页</a></div></div>'
    )
    cands = collect_candidates(doc)
    assert [c.tier for c in cands] == ["C"]
    assert cands[0].item_count == 6
    assert cands[0].container.element.classes == ("content",)
    assert len(get_list_items(cands[0].container)) == 6


def _result_list_div(n: int, start: int) -> str:
    lis = "".join(
        f'<li><a href="/x/{i}">Provincial notice number {i} on grain subsidies</a> 2024-02-0{i % 10}</li>'
        for i in range(start, start + n)
    )
    return f'<div class="result-list"><ul>{lis}</ul></div>'


def test_result_list_wrappers_pick_the_richest_inner_list():
    doc = Document.from_html(_result_list_div(3, 0) + _result_list_div(5, 10))
    cands = collect_candidates(doc)
    assert [c.tier for c in cands] == ["C", "C"]
    best = cands[0]
    assert best.priority == 1
    assert best.item_count == 5
    assert best.container.element.tag == "ul"
    assert best.preview.startswith("Provincial notice number 10")
    assert find_list_container(doc, best.selector) == best.container
    assert len(get_list_items(best.container)) == 5

    # both wrappers also share a class, which is the weaker second option
    assert cands[1].selector == ".result-list"
    assert cands[1].item_count == 2


def test_news_divs_grouped_by_first_class():
    items = "".join(
        f'<div class="news-entry"><a href="/n/{i}">Council approves new budget line {i}</a><span>2024-01-0{i}</span></div>'
        for i in range(1, 4)
    )
    doc = Document.from_html(f'<div id="wrap">{items}</div>')
    cands = collect_candidates(doc)
    assert len(cands) == 1
    best = cands[0]
    assert (best.tier, best.selector, best.item_count) == ("C", ".news-entry", 3)
    assert best.container.is_handle
    assert best.preview == "Council approves new budget line 1"
    assert find_list_container(doc, ".news-entry") == best.container
    assert len(get_list_items(best.container)) == 3


def test_html_title_links_grouped_by_grandparent_class():
    rows = "".join(
        f'<div class="row"><div><a href="/art/{i}.html">Annual report on water quality {i}</a></div></div>'
        for i in range(1, 4)
    )
    doc = Document.from_html(f'<section>{rows}<div class="pages"><a href="/search.html?p=2">下页</a></div></section>')
    cands = collect_candidates(doc)
    assert len(cands) == 1
    assert (cands[0].tier, cands[0].selector, cands[0].item_count) == ("C", ".row", 3)
    assert [it.classes[0] for it in get_list_items(cands[0].container)] == ["row", "row", "row"]


def test_boilerplate_items_are_dropped_but_plain_next_is_kept():
    lis = "".join(f'<li><a href="/d/{i}">Title {i} is long enough</a></li>' for i in range(5))
    lis += '<li><a href="/all">View all announcements from 2024</a></li>'
    lis += '<li><a href="?p=2">Next page of search results</a></li>'
    lis += '<li><a href="/d/nx">Next generation broadband rollout plan</a></li>'
    doc = Document.from_html(f'<ul id="result-list">{lis}</ul>')
    texts = [it.text for it in get_list_items(find_list_container(doc))]
    assert texts == [f"Title {i} is long enough" for i in range(5)] + ["Next generation broadband rollout plan"]
