"""Genre vocabulary used to classify free-form tags.

Streaming services and taste snapshots produce free-form strings
("reggae fusion", "deep house"). This table maps them onto the closed
set of platform genres, and tells genre tags apart from style tags.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from pulse_recs.models import TagCategory
from pulse_recs.normalize import normalize, normalize_tag_value

GENRES: tuple[str, ...] = (
    "reggae",
    "hip_hop",
    "pop",
    "rnb",
    "rock",
    "heavy_metal",
    "punk",
    "jazz",
    "soul",
    "funk",
    "blues",
    "techno",
    "house",
    "trance",
    "drum_and_bass",
    "electronic",
    "latin",
    "afrobeat",
    "experimental",
    "world",
    "classique",
    "disco",
    "country",
    "folk",
    "indie",
    "alternative",
    "dubstep",
)

MUSIC_STYLES: dict[str, tuple[str, ...]] = {
    "reggae": ("dub", "dancehall", "roots_reggae", "lovers_rock", "rocksteady", "ska"),
    "hip_hop": ("rap", "trap", "drill", "grime", "boom_bap"),
    "pop": ("indie_pop", "synth_pop", "k_pop", "dream_pop"),
    "rnb": ("neo_soul", "contemporary_rnb"),
    "rock": ("indie_rock", "alternative_rock", "garage_rock", "psychedelic_rock"),
    "jazz": ("bebop", "fusion", "free_jazz", "swing"),
    "techno": ("minimal_techno", "industrial_techno", "acid_techno"),
    "house": ("deep_house", "tech_house", "afro_house", "acid_house"),
    "drum_and_bass": ("jungle", "liquid_dnb", "neurofunk"),
    "electronic": ("ambient", "idm", "synthwave", "breakbeat"),
    "latin": ("salsa", "bachata", "cumbia", "reggaeton"),
    "afrobeat": ("afrobeats", "amapiano", "highlife"),
    "disco": ("nu_disco", "italo_disco"),
}

# Longer keywords first so "rocksteady" wins over "rock".
KEYWORD_TO_GENRE: tuple[tuple[str, str], ...] = (
    ("rocksteady", "reggae"),
    ("dancehall", "reggae"),
    ("drum and bass", "drum_and_bass"),
    ("hip hop", "hip_hop"),
    ("hip-hop", "hip_hop"),
    ("reggae", "reggae"),
    ("dub", "reggae"),
    ("ska", "reggae"),
    ("techno", "techno"),
    ("house", "house"),
    ("electro", "electronic"),
    ("edm", "electronic"),
    ("dnb", "drum_and_bass"),
    ("rap", "hip_hop"),
    ("trap", "hip_hop"),
    ("jazz", "jazz"),
    ("blues", "blues"),
    ("rock", "rock"),
    ("metal", "heavy_metal"),
    ("punk", "punk"),
    ("indie", "indie"),
    ("pop", "pop"),
    ("r&b", "rnb"),
    ("soul", "soul"),
    ("funk", "funk"),
    ("latin", "latin"),
    ("salsa", "latin"),
    ("afrobeats", "afrobeat"),
    ("afro", "afrobeat"),
    ("classical", "classique"),
    ("orchestra", "classique"),
    ("disco", "disco"),
    ("country", "country"),
    ("folk", "folk"),
    ("trance", "trance"),
    ("dubstep", "dubstep"),
)


@dataclass(frozen=True)
class GenreVocabulary:
    genres: frozenset[str] = field(default_factory=lambda: frozenset(GENRES))
    keywords: tuple[tuple[str, str], ...] = KEYWORD_TO_GENRE
    styles: dict[str, tuple[str, ...]] = field(default_factory=lambda: dict(MUSIC_STYLES))

    def __post_init__(self) -> None:
        ordered = sorted(self.keywords, key=lambda kw: -len(kw[0]))
        patterns = tuple(
            (re.compile(rf"(^|[-_\s]){re.escape(kw)}([-_\s]|$)"), genre)
            for kw, genre in ordered
        )
        object.__setattr__(self, "_patterns", patterns)

    def match_genre(self, raw: str) -> str | None:
        """Map a free-form genre string to a platform genre, or None."""
        text = normalize(raw)
        if not text:
            return None
        for pattern, genre in self._patterns:
            if pattern.search(text):
                return genre
        candidate = normalize_tag_value(raw)
        return candidate if candidate in self.genres else None

    def classify(self, value: str) -> TagCategory:
        """Genre when the value names a platform genre, exactly or by keyword
        ("deep_house" contains "house"). Style otherwise."""
        if self.match_genre(value) is not None:
            return TagCategory.GENRE
        return TagCategory.STYLE

    def styles_for(self, genre: str) -> tuple[str, ...]:
        return self.styles.get(genre, ())


DEFAULT_VOCABULARY = GenreVocabulary()


def map_streaming_genres(
    streaming_genres: list[str], vocabulary: GenreVocabulary = DEFAULT_VOCABULARY
) -> dict[str, int]:
    """Platform genre -> number of streaming genres that mapped onto it."""
    counts: dict[str, int] = {}
    for raw in streaming_genres:
        genre = vocabulary.match_genre(raw)
        if genre:
            counts[genre] = counts.get(genre, 0) + 1
    return counts


def map_streaming_styles(
    streaming_genres: list[str],
    genre: str,
    vocabulary: GenreVocabulary = DEFAULT_VOCABULARY,
) -> list[str]:
    """Styles of `genre` whose label appears in any streaming genre string."""
    lowered = [normalize(g) for g in streaming_genres]
    found = []
    for style in vocabulary.styles_for(genre):
        label = style.replace("_", " ")
        if any(label in g for g in lowered):
            found.append(style)
    return found
