from __future__ import annotations

from newspulse.core.text import (
    DEFAULT_AGGREGATOR_OUTLET,
    sanitize_summary,
    split_aggregator_title,
    strip_html,
    truncate,
)


def test_strip_html_removes_tags_and_decodes_entities() -> None:
    raw = "<p>Gold&nbsp;&amp; silver <b>rise</b> &lt;again&gt; &#39;today&#39; &quot;ok&quot;</p>"
    assert strip_html(raw) == "Gold & silver rise <again> 'today' \"ok\""


def test_truncate_marks_cut_text() -> None:
    assert truncate("short", 10) == "short"
    cut = truncate("x" * 250, 200)
    assert len(cut) == 200
    assert cut.endswith("...")


def test_sanitize_summary_handles_missing_values() -> None:
    assert sanitize_summary(None) == ""
    assert sanitize_summary("<div>Hello</div>") == "Hello"
    assert len(sanitize_summary("<p>" + "a" * 500 + "</p>")) == 200


def test_split_aggregator_title_with_outlet() -> None:
    assert split_aggregator_title("Sensex ends higher - Economic Times") == (
        "Sensex ends higher",
        "Economic Times",
    )


def test_split_aggregator_title_keeps_inner_dashes() -> None:
    title, source = split_aggregator_title("US-China talks - resume in Geneva - Reuters")
    assert title == "US-China talks - resume in Geneva"
    assert source == "Reuters"


def test_split_aggregator_title_without_outlet() -> None:
    assert split_aggregator_title("No outlet here") == ("No outlet here", DEFAULT_AGGREGATOR_OUTLET)
