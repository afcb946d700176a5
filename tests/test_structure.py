# tests/test_structure.py
from modules.job_harvest.lib.models import FIELD_CAPS, StructuredFields
from modules.job_harvest.lib.scrapers.base import RawDetail
from modules.job_harvest.lib.structure import classify_header, render_sections, structure_text


def test_empty_text_gives_empty_fields():
    assert structure_text("") == StructuredFields()
    assert structure_text(None).is_empty()


def test_text_without_markers_goes_to_detail():
    fields = structure_text("  ただの説明文です  ")
    assert fields.detail == "ただの説明文です"
    assert fields.price == fields.period == fields.skills == fields.other == ""


def test_headers_route_by_keyword():
    text = "\n\n".join([
        "--- 報酬 ---\n30万円",
        "--- 稼働時間 ---\n週3日",
        "--- 歓迎条件 ---\nAWS",
        "--- 職務概要 ---\nバックエンド",
        "--- 勤務地 ---\nリモート",
    ])
    fields = structure_text(text)

    assert fields.price == "報酬\n30万円"
    assert fields.period == "稼働時間\n週3日"
    assert fields.skills == "歓迎条件\nAWS"
    assert fields.detail == "職務概要\nバックエンド"
    assert fields.other == "勤務地\nリモート"


def test_first_matching_field_wins():
    # Mentions both a period and a price keyword; price comes first in the table
    assert classify_header("稼働時間と単価") == "price"
    assert classify_header("必要な経験と業務内容") == "skills"
    assert classify_header("備考") == "other"


def test_same_field_sections_are_joined_with_blank_line():
    fields = structure_text("--- 予算 ---\nA案\n--- 単価 ---\nB案")
    assert fields.price == "予算\nA案\n\n単価\nB案"


def test_section_with_empty_content_is_ignored():
    fields = structure_text("--- 単価 ---\n   \n--- 期間 ---\n3ヶ月")
    assert fields.price == ""
    assert fields.period == "期間\n3ヶ月"


def test_leading_text_fills_detail_when_free():
    fields = structure_text("前書き\n--- 単価 ---\n100円")
    assert fields.detail == "前書き"
    assert fields.price == "単価\n100円"


def test_leading_text_goes_before_other_when_detail_taken():
    fields = structure_text("前書き\n--- 業務内容 ---\nAPI開発\n--- 勤務地 ---\n東京")
    assert fields.detail == "業務内容\nAPI開発"
    assert fields.other == "前書き\n\n勤務地\n東京"


def test_caps_are_applied_after_joining():
    long_price = "\n\n".join(f"--- 単価 {n} ---\n" + "円" * 400 for n in range(4))
    fields = structure_text(long_price)
    assert len(fields.price) == FIELD_CAPS["price"]

    fields = structure_text("あ" * 5000)
    assert len(fields.detail) == FIELD_CAPS["detail"]
    assert fields.reserved == ""


def test_render_sections_prefers_sections_then_body():
    raw = RawDetail(body="本文", meta_description="説明")
    assert render_sections(raw) == "本文"

    raw.add(" 単価 ", "  80万円   /月 ")
    raw.add("空", "   ")
    assert raw.sections == [("単価", "80万円 /月")]
    assert render_sections(raw) == "--- 単価 ---\n80万円 /月"

    assert render_sections(RawDetail(meta_description="説明")) == "説明"
