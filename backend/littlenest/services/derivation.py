"""
LittleNest Backend: Name Derivation Pipeline
==============================================

What:  Pure functions that turn a raw name string into every derived field
       stored on a NameRecord (slug, metadata, letter analysis, numerology).
How:   Each stage is a small, total function over a cleaned string. The
       composite derive_name_fields() runs all stages and returns an
       immutable NameDerivation that the ORM model copies onto its columns.
Who:   Called by NameService on create, update (when the name changes),
       import and bulk update. Unit tests call it directly.
When:  Before every flush that writes a new or changed `name` value.

Pipeline:
    raw name
      │
      ├── clean_name()        trim + collapse whitespace
      ├── slugify()           "Mary Ann" → "mary-ann"
      ├── derive_metadata()   {length, first_letter, last_letter}
      ├── analyze_letters()   {vowels, consonants, first/last LetterTraits}
      └── compute_numerology(){number, traits}

Invariant:
    All derived fields are functions of the name alone. Nothing here touches
    the database, the clock or random state.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List

from littlenest.exceptions import ValidationError


# ══════════════════════════════════════════════════════════════════════════
# Lookup Tables
# ══════════════════════════════════════════════════════════════════════════

# Pythagorean letter → digit table
NUMEROLOGY_DIGITS: Dict[str, int] = {
    "a": 1, "j": 1, "s": 1,
    "b": 2, "k": 2, "t": 2,
    "c": 3, "l": 3, "u": 3,
    "d": 4, "m": 4, "v": 4,
    "e": 5, "n": 5, "w": 5,
    "f": 6, "o": 6, "x": 6,
    "g": 7, "p": 7, "y": 7,
    "h": 8, "q": 8, "z": 8,
    "i": 9, "r": 9,
}

# Master numbers are kept as-is by the digital reduction
MASTER_NUMBERS = frozenset({11, 22, 33})

# Every value compute_numerology() can return for a non-empty name
VALID_NUMEROLOGY_NUMBERS = frozenset(range(1, 10)) | MASTER_NUMBERS

# Master numbers intentionally have no entry
NUMEROLOGY_TRAITS: Dict[int, List[str]] = {
    1: ["leader", "independent", "ambitious", "original", "confident"],
    2: ["diplomatic", "cooperative", "sensitive", "peaceful", "adaptable"],
    3: ["creative", "expressive", "social", "optimistic", "artistic"],
    4: ["practical", "reliable", "stable", "organized", "determined"],
    5: ["adventurous", "freedom-loving", "versatile", "curious", "energetic"],
    6: ["nurturing", "responsible", "loving", "harmonious", "supportive"],
    7: ["analytical", "spiritual", "intelligent", "mysterious", "intuitive"],
    8: ["powerful", "successful", "ambitious", "material", "authoritative"],
    9: ["compassionate", "humanitarian", "generous", "wise", "artistic"],
}

# (nature, element, ruling body) per letter
LETTER_NATURES: Dict[str, tuple] = {
    "a": ("spiritual", "air", "sun"),
    "b": ("practical", "earth", "mercury"),
    "c": ("emotional", "water", "moon"),
    "d": ("practical", "earth", "mars"),
    "e": ("intellectual", "air", "venus"),
    "f": ("adaptable", "fire", "mercury"),
    "g": ("mysterious", "water", "neptune"),
    "h": ("material", "earth", "saturn"),
    "i": ("spiritual", "fire", "sun"),
    "j": ("powerful", "fire", "jupiter"),
    "k": ("dramatic", "fire", "mars"),
    "l": ("artistic", "air", "venus"),
    "m": ("emotional", "water", "moon"),
    "n": ("creative", "water", "neptune"),
    "o": ("practical", "earth", "saturn"),
    "p": ("mental", "air", "uranus"),
    "q": ("mysterious", "water", "pluto"),
    "r": ("dynamic", "fire", "sun"),
    "s": ("emotional", "water", "moon"),
    "t": ("creative", "earth", "mars"),
    "u": ("intuitive", "water", "jupiter"),
    "v": ("spiritual", "air", "mercury"),
    "w": ("sensitive", "water", "uranus"),
    "x": ("magnetic", "fire", "uranus"),
    "y": ("intuitive", "air", "venus"),
    "z": ("mystical", "water", "pluto"),
}

UNKNOWN = "unknown"

_WHITESPACE_RE = re.compile(r"\s+")
_NON_SLUG_RE = re.compile(r"[^\w\s-]", re.ASCII)
_SEPARATOR_RE = re.compile(r"[\s_]+")
_HYPHENS_RE = re.compile(r"-{2,}")
_VOWEL_RE = re.compile(r"[aeiou]", re.IGNORECASE)


# ══════════════════════════════════════════════════════════════════════════
# Result Types
# ══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class LetterTraits:
    nature: str = UNKNOWN
    element: str = UNKNOWN
    ruling: str = UNKNOWN


@dataclass(frozen=True)
class NameMetadata:
    length: int
    first_letter: str
    last_letter: str


@dataclass(frozen=True)
class LetterAnalysis:
    vowels: int
    consonants: int
    first_letter: LetterTraits
    last_letter: LetterTraits


@dataclass(frozen=True)
class Numerology:
    number: int
    traits: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class NameDerivation:
    """
    Everything derived from a single name value.

    `name` is the cleaned display name that should be persisted, so the
    stored name and its derived fields can never disagree on whitespace.
    """
    name: str
    slug: str
    metadata: NameMetadata
    letter_analysis: LetterAnalysis
    numerology: Numerology


# ══════════════════════════════════════════════════════════════════════════
# Pipeline Stages
# ══════════════════════════════════════════════════════════════════════════

def clean_name(raw: str) -> str:
    """Trim and collapse internal whitespace runs to a single space."""
    return _WHITESPACE_RE.sub(" ", (raw or "").strip())


def slugify(raw: str) -> str:
    """
    Build a URL slug from a display string.

    Steps: lowercase, trim, collapse whitespace, drop anything that is not a
    word character / whitespace / hyphen, turn separator runs into a single
    hyphen, collapse hyphen runs, strip hyphens from both ends.

    Idempotent: slugify(slugify(x)) == slugify(x).

    Raises:
        ValidationError: input is blank, or nothing slug-safe remains.
    """
    text = clean_name((raw or "").lower())
    if not text:
        raise ValidationError(message="Name must not be empty", field="name")

    text = _NON_SLUG_RE.sub("", text)
    text = _SEPARATOR_RE.sub("-", text)
    text = _HYPHENS_RE.sub("-", text).strip("-")

    if not text:
        raise ValidationError(
            message=f"'{raw}' does not contain any URL-safe characters",
            field="name",
        )
    return text


def derive_metadata(name: str) -> NameMetadata:
    if not name:
        raise ValidationError(message="Name must not be empty", field="name")
    return NameMetadata(
        length=len(name),
        first_letter=name[0].lower(),
        last_letter=name[-1].lower(),
    )


def letter_traits(letter: str) -> LetterTraits:
    """Look up a letter's nature/element/ruling; unknown for anything unmapped."""
    entry = LETTER_NATURES.get((letter or "").lower())
    if entry is None:
        return LetterTraits()
    nature, element, ruling = entry
    return LetterTraits(nature=nature, element=element, ruling=ruling)


def analyze_letters(name: str) -> LetterAnalysis:
    """
    Count vowels and consonants and attach first/last letter traits.

    Consonants are `length - vowels`, so spaces, hyphens and apostrophes
    count as consonants. Stored data depends on that definition.
    """
    if not name:
        raise ValidationError(message="Name must not be empty", field="name")
    vowels = len(_VOWEL_RE.findall(name))
    return LetterAnalysis(
        vowels=vowels,
        consonants=len(name) - vowels,
        first_letter=letter_traits(name[0]),
        last_letter=letter_traits(name[-1]),
    )


def reduce_number(total: int) -> int:
    """Digital root that stops at 11, 22 and 33."""
    while total > 9 and total not in MASTER_NUMBERS:
        total = sum(int(digit) for digit in str(total))
    return total


def compute_numerology(name: str) -> Numerology:
    """
    Pythagorean numerology number for a name.

    Total function: characters outside the table contribute 0, and an empty
    name yields number 0 with no traits.
    """
    total = sum(NUMEROLOGY_DIGITS.get(ch, 0) for ch in (name or "").lower())
    number = reduce_number(total)
    return Numerology(number=number, traits=list(NUMEROLOGY_TRAITS.get(number, [])))


def derive_name_fields(raw: str) -> NameDerivation:
    """
    Run the full pipeline over a raw name.

    Raises:
        ValidationError: the name is blank after trimming, or has no
            slug-safe characters.
    """
    name = clean_name(raw)
    if not name:
        raise ValidationError(message="Name must not be empty", field="name")

    return NameDerivation(
        name=name,
        slug=slugify(name),
        metadata=derive_metadata(name),
        letter_analysis=analyze_letters(name),
        numerology=compute_numerology(name),
    )
