from __future__ import annotations

import json

from list_scout.cli import main

from test_candidates import result_list_page


def _page(tmp_path, html: str = "") -> str:
    p = tmp_path / "page.html"
    p.write_text(html or result_list_page(), encoding="utf-8")
    return str(p)


def test_options_command(tmp_path, capsys):
    rc = main(["options", "--html", _page(tmp_path)])
    assert rc == 0
    out = json.loads(capsys.readouterr().out)
    assert out["success"] is True
    assert [o["selector"] for o in out["options"]] == ["ul#result-list"]
    assert out["options"][0]["tier"] == "B"


def test_scrape_command_with_base_url_and_cap(tmp_path, capsys):
    rc = main(
        ["--pretty", "scrape", "--html", _page(tmp_path), "--base-url", "https://example.com/s", "--max-items", "2"]
    )
    assert rc == 0
    out = json.loads(capsys.readouterr().out)
    assert out["count"] == 2
    assert out["stopped"] is False
    assert out["data"][0]["href"] == "https://example.com/doc/1.html"
    assert out["data"][1]["title"] == "Title 2 is long enough"


def test_scrape_full_mode_keeps_extra_fields(tmp_path, capsys):
    html = (
        '<ul id="result-list">'
        + "".join(
            f'<li><span>{i}</span><a href="/doc/{i}">Annual statistics bulletin part {i}</a>(2024-05-0{i})</li>'
            for i in range(1, 4)
        )
        + "</ul>"
    )
    rc = main(["scrape", "--full", "--html", _page(tmp_path, html), "--base-url", "https://example.com/"])
    assert rc == 0
    first = json.loads(capsys.readouterr().out)["data"][0]
    assert first["seq"] == "1"
    assert first["date"] == "2024-05-01"
    assert "location" not in first


def test_page_info_command(tmp_path, capsys):
    rc = main(["page-info", "--html", _page(tmp_path), "--base-url", "https://example.com/s"])
    assert rc == 0
    out = json.loads(capsys.readouterr().out)
    assert out["domain"] == "example.com"
    assert out["has_list"] is True
    assert out["list_items_count"] == 8


def test_not_found_page_exits_with_2(tmp_path, capsys):
    rc = main(["scrape", "--html", _page(tmp_path, "<p>nothing here</p>")])
    assert rc == 2
    assert "No list container found" in capsys.readouterr().err


def test_missing_html_file_exits_with_2(tmp_path, capsys):
    rc = main(["options", "--html", str(tmp_path / "nope.html")])
    assert rc == 2
    assert "cannot read" in capsys.readouterr().err


def test_offline_test_over_fixture_dir(tmp_path, capsys):
    fx = tmp_path / "fixtures"
    fx.mkdir()
    (fx / "results.html").write_text(result_list_page(), encoding="utf-8")
    rc = main(["offline-test", "--fixtures-dir", str(fx), "--json"])
    assert rc == 0
    rep = json.loads(capsys.readouterr().out)
    assert rep["ok"] is True
    assert rep["cases"][0]["name"] == "results"
    assert rep["cases"][0]["records"] == 8


def test_offline_test_cases_file_reports_failures(tmp_path, capsys):
    fx = tmp_path / "fixtures"
    fx.mkdir()
    (fx / "results.html").write_text(result_list_page(), encoding="utf-8")
    cases = {
        "fixtures_dir": str(fx),
        "cases": [
            {
                "name": "good",
                "file": "results.html",
                "url": "https://example.com/s",
                "assert": {"records_min": 8, "href_valid_ratio_min": 1.0, "first_title_contains": "Title 1"},
            },
            {"name": "greedy", "file": "results.html", "assert": {"records_min": 50}},
        ],
    }
    cases_file = tmp_path / "cases.json"
    cases_file.write_text(json.dumps(cases), encoding="utf-8")

    rc = main(["offline-test", "--cases", str(cases_file), "--case", "good"])
    assert rc == 0
    assert "offline-test: OK" in capsys.readouterr().out

    rc = main(["offline-test", "--cases", str(cases_file)])
    assert rc == 1
    text = capsys.readouterr().out
    assert "offline-test: FAIL" in text
    assert "case=greedy" in text


def test_offline_test_needs_a_source(capsys):
    assert main(["offline-test"]) == 2
    assert "--cases or --fixtures-dir" in capsys.readouterr().err
