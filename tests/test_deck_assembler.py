import pytest

from deck_assembler import (
    DEGRADED_DESCRIPTION,
    assemble,
    build_degraded_presentation,
    normalize_bullets,
    strip_bullet,
)


def test_single_string_content_is_split_into_bullets():
    assert normalize_bullets("- First point\n- Second point") == ["First point", "Second point"]


@pytest.mark.parametrize("line,expected", [
    ("• Bullet glyph", "Bullet glyph"),
    ("* Asterisk", "Asterisk"),
    ("1. Numbered", "Numbered"),
    ("  2) Indented number", "Indented number"),
    ("**Bold** start stays", "**Bold** start stays"),
    ("3.5 million homes", "3.5 million homes"),
])
def test_strip_bullet(line, expected):
    assert strip_bullet(line) == expected


def test_list_content_is_trimmed_and_blank_entries_dropped():
    assert normalize_bullets(["  one ", "", "- two", None, {"x": 1}, 3]) == ["one", "two", "3"]


def test_unusable_content_gives_no_bullets():
    assert normalize_bullets(None) == []
    assert normalize_bullets({"text": "nope"}) == []


def test_assemble_assigns_ids_order_and_layout(solar_presentation):
    deck = solar_presentation
    assert deck.id and deck.created_at
    assert deck.title == "Solar Energy"
    assert deck.description == "How sunlight becomes electricity"
    assert len(deck.slides) == 6
    assert [slide.order for slide in deck.slides] == list(range(6))
    assert len({slide.id for slide in deck.slides}) == 6
    assert all(slide.presentation_id == deck.id for slide in deck.slides)
    # Unknown and missing layouts fall back to "content"
    assert deck.slides[4].layout == "content"
    assert deck.slides[3].layout == "content"
    assert deck.slides[2].layout == "two-column"
    assert deck.slides[2].content == [
        "Panel prices fell sharply",
        "Installation dominates cost",
        "Incentives vary by region",
    ]


def test_model_supplied_order_is_ignored(solar_presentation):
    assert solar_presentation.slides[0].order == 0


@pytest.mark.parametrize("parsed", [None, {}, {"slides": []}, {"slides": "nope"}, {"slides": [1, "two"]}])
def test_assemble_never_fails(parsed):
    deck = assemble(parsed, "Solar energy", "Solar power basics\n\n- Cheap\n- Clean")
    assert len(deck.slides) >= 1
    assert deck.slides[0].title
    assert deck.slides[0].content
    assert deck.slides[0].order == 0


def test_degraded_presentation_uses_first_lines_of_raw_text():
    raw = "Here is some info\n\n- Solar is clean\n- Solar is cheap\nIt scales\nIt is growing\nSixth line"
    deck = build_degraded_presentation("Solar energy", raw)
    assert deck.title == "Solar energy"
    assert deck.description == DEGRADED_DESCRIPTION
    assert len(deck.slides) == 1
    assert deck.slides[0].title == "Solar energy"
    assert deck.slides[0].content == [
        "Here is some info",
        "Solar is clean",
        "Solar is cheap",
        "It scales",
        "It is growing",
    ]


def test_degraded_presentation_without_text_still_has_a_bullet():
    deck = assemble(None, "Solar energy", "")
    assert deck.slides[0].content == ["Solar energy"]


def test_slides_without_bullets_are_skipped_and_order_stays_dense():
    parsed = {
        "title": "Deck",
        "slides": [
            {"title": "Empty", "content": []},
            {"title": "Kept", "content": ["a"]},
            "garbage",
            {"content": ["b"]},
        ],
    }
    deck = assemble(parsed, "topic")
    assert [s.title for s in deck.slides] == ["Kept", "Slide 2"]
    assert [s.order for s in deck.slides] == [0, 1]


def test_missing_deck_title_falls_back_to_topic():
    deck = assemble({"slides": [{"title": "One", "content": ["x"]}]}, "Solar energy")
    assert deck.title == "Solar energy"
    assert deck.description is None
