from ledgerdesk.accounting_models import Item, MatchStatus
from ledgerdesk.item_matcher import ItemMatcher, normalize, split_keywords

CATALOG = [
    Item(id="i1", code="ITM-001", name="Cabe Merah Tanjung", keywords="cabe,merah,tanjung"),
    Item(id="i2", code="ITM-002", name="Cabe Merah Keriting", keywords="cabe,merah,keriting"),
    Item(id="i3", code="ITM-003", name="Cabe Hijau", keywords="cabe,hijau"),
    Item(id="i4", code="ITM-004", name="Bawang Merah", keywords="bawang,merah"),
    Item(id="i5", code="ITM-005", name="Beras Sania", keywords="Beras, Sania"),
]


def test_normalize_and_keywords():
    assert normalize("Cabe-Merah,  TANJUNG!") == "cabe merah tanjung"
    assert split_keywords(" Beras, Sania ,,") == ["beras", "sania"]


def test_variant_keyword_picks_single_item():
    result = ItemMatcher(CATALOG).match("cabe merah tanjung")
    assert result.status == MatchStatus.MATCHED
    assert result.item.id == "i1"


def test_quantity_tokens_are_ignored():
    result = ItemMatcher(CATALOG).match("cabe hijau 2kg")
    assert result.status == MatchStatus.MATCHED
    assert result.item.name == "Cabe Hijau"


def test_any_number_word_token_is_a_quantity():
    bags = [
        Item(id="p1", code="ITM-101", name="Plastik Kecil", keywords="plastik"),
        Item(id="p2", code="ITM-102", name="Plastik Kantong", keywords="plastik,2kantong"),
    ]
    result = ItemMatcher(bags).match("plastik 2kantong")
    assert result.status == MatchStatus.AMBIGUOUS
    assert [c.id for c in result.candidates] == ["p1", "p2"]


def test_tie_at_top_score_is_ambiguous_in_catalog_order():
    result = ItemMatcher(CATALOG).match("cabe merah")
    assert result.status == MatchStatus.AMBIGUOUS
    assert result.item is None
    assert [c.id for c in result.candidates] == ["i1", "i2"]


def test_variant_filter_excludes_items_without_the_variant():
    # "kuning" is a variant nobody carries, so "cabe" alone cannot rescue the match.
    assert ItemMatcher(CATALOG).match("cabe kuning").status == MatchStatus.UNMATCHED


def test_no_shared_keyword_is_unmatched():
    result = ItemMatcher(CATALOG).match("sabun cuci piring")
    assert result.status == MatchStatus.UNMATCHED
    assert result.candidates == []


def test_empty_catalog_never_matches():
    matcher = ItemMatcher([])
    assert len(matcher) == 0
    assert matcher.match("cabe merah tanjung").status == MatchStatus.UNMATCHED


def test_matching_does_not_touch_catalog():
    matcher = ItemMatcher(CATALOG)
    for text in ("cabe merah", "beras sania 20kg", "gas elpiji"):
        matcher.match(text)
    assert list(matcher.items) == CATALOG
    assert CATALOG[0].keywords == "cabe,merah,tanjung"
    assert matcher.match("beras").item.id == "i5"
