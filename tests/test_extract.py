import re

from notify_ledger.extract import MessageViews, html_to_text, parse_amount, pick, pick_span


def test_html_to_text_keeps_line_breaks_and_drops_markup():
    html = (
        "<style>td{color:red}</style><p>授權金額：NT$&nbsp;1,250</p>"
        "交易內容<br/>AT&amp;T<script>x()</script>"
    )
    assert html_to_text(html) == "授權金額：NT$ 1,250\n交易內容\nAT&T"


def test_html_to_text_normalizes_ideographic_space():
    assert html_to_text("<b>卡號末四碼：</b>　1234") == "卡號末四碼： 1234"


def test_html_to_text_decodes_character_references():
    assert html_to_text("<td>授權金額&#65306;NT$1,250</td>") == "授權金額：NT$1,250"
    assert html_to_text("<p>&lt;特店&gt; 7-ELEVEN</p>") == "<特店> 7-ELEVEN"


def test_html_to_text_of_missing_body():
    assert html_to_text(None) == ""
    assert html_to_text("") == ""


def test_pick_follows_rule_order_before_view_order():
    rules = (re.compile(r"金額：(\d+)"), re.compile(r"總額：(\d+)"))
    views = MessageViews.build("<p>總額：9</p>", "金額：5")
    # The first rule wins even though it only matches the last view.
    assert pick(rules, views) == "5"


def test_pick_prefers_stripped_view_over_markup_and_plain():
    rules = (re.compile(r"特店[:：]?\s*([^<\n]+)"),)
    views = MessageViews.build("<td>特店：</td><td>星巴克</td>", "特店：全家")
    assert pick(rules, views) == "星巴克"


def test_pick_returns_second_group_when_present():
    rules = (re.compile(r"(消費類別|類別)[:：]?\s*([^<\n]+)"),)
    views = MessageViews.build("", "消費類別： 餐飲 ")
    assert pick(rules, views) == "餐飲"


def test_pick_falls_back_to_first_group_and_trims():
    rules = (re.compile(r"末四碼：\s*(\d{4})( 附卡)?"),)
    views = MessageViews.build("", "末四碼： 4321")
    assert pick(rules, views) == "4321"


def test_pick_no_match_is_empty_not_error():
    rules = (re.compile(r"授權金額：(\d+)"),)
    assert pick(rules, MessageViews.build(None, None)) == ""
    assert pick_span(rules, MessageViews.build("<p>nothing</p>", "")) == ""


def test_pick_span_returns_whole_match():
    rules = (re.compile(r"授權日期：\s*(\d{3})\s*年\s*(\d{1,2})\s*月\s*(\d{1,2})\s*日"),)
    views = MessageViews.build("<td>授權日期：113年3月5日</td>", "")
    assert pick_span(rules, views) == "授權日期：113年3月5日"


def test_parse_amount_strips_separators():
    assert str(parse_amount("1,234,567")) == "1234567"
    assert parse_amount("") is None
    assert parse_amount(None) is None
    assert parse_amount(",") is None
