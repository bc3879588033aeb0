import pytest

from pulse_recs.models import TagCategory
from pulse_recs.recommend.vocabulary import (
    DEFAULT_VOCABULARY,
    GenreVocabulary,
    map_streaming_genres,
    map_streaming_styles,
)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("Dancehall", "reggae"),
        ("roots reggae", "reggae"),
        ("deep house", "house"),
        ("R&B", "rnb"),
        ("k-pop", "pop"),
        ("dubstep", "dubstep"),
        ("electronic", "electronic"),
        ("reggaeton", None),
        ("polka", None),
        ("", None),
    ],
)
def test_match_genre(raw, expected):
    assert DEFAULT_VOCABULARY.match_genre(raw) == expected


def test_longest_keyword_wins():
    assert DEFAULT_VOCABULARY.match_genre("rocksteady") == "reggae"


def test_classify():
    assert DEFAULT_VOCABULARY.classify("Hip Hop") == TagCategory.GENRE
    assert DEFAULT_VOCABULARY.classify("deep_house") == TagCategory.GENRE
    assert DEFAULT_VOCABULARY.classify("dancehall") == TagCategory.GENRE
    assert DEFAULT_VOCABULARY.classify("amapiano") == TagCategory.STYLE
    assert DEFAULT_VOCABULARY.classify("neurofunk") == TagCategory.STYLE


def test_map_streaming_genres_counts():
    counts = map_streaming_genres(["dub", "roots reggae", "deep house", "polka"])
    assert counts == {"reggae": 2, "house": 1}


def test_map_streaming_styles_in_vocabulary_order():
    found = map_streaming_styles(["roots reggae", "dub", "deep house"], "reggae")
    assert found == ["dub", "roots_reggae"]


def test_custom_vocabulary():
    vocab = GenreVocabulary(
        genres=frozenset({"kompa"}), keywords=(("konpa", "kompa"),), styles={}
    )
    assert vocab.match_genre("Konpa Dirèk") == "kompa"
    assert vocab.match_genre("reggae") is None
    assert vocab.styles_for("kompa") == ()
