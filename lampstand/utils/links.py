from typing import Union

from .types import VerseRange, VerseReference

BIBLIA_URL = "https://biblia.com/bible/{translation}/{slug}/{chapter}/{verse}"


def reference_url(reference: Union[VerseReference, VerseRange], translation: str) -> str:
    """Biblia link for a verse; a range links to its first verse."""
    if isinstance(reference, VerseRange):
        reference = reference.start
    return BIBLIA_URL.format(
        translation=translation.lower(),
        slug=reference.book.slug,
        chapter=reference.chapter,
        verse=reference.verse,
    )
