"""
Glossary term matching for the Medical Document Explainer

Splits text into plain segments and glossary-term matches. Terms are applied
longest first, and text already claimed by a longer term is never split again,
so "heart failure" wins over "heart" inside the same phrase.
"""
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Union

from models.document import GlossaryTerm


@dataclass(frozen=True)
class PlainSegment:
    """Text that did not match any glossary term"""
    text: str


@dataclass(frozen=True)
class TermMatch:
    """Text that matched a glossary term, in the casing found in the source"""
    text: str
    term: GlossaryTerm


Segment = Union[PlainSegment, TermMatch]


def sort_terms_for_matching(glossary: Iterable[GlossaryTerm]) -> List[GlossaryTerm]:
    """
    Order terms longest first, dropping blank ones.

    The sort is stable, so terms of equal length keep their glossary order.
    """
    usable = [term for term in glossary if term.term and term.term.strip()]
    return sorted(usable, key=lambda t: len(t.term), reverse=True)


def build_term_pattern(term: str) -> re.Pattern:
    """
    Case-insensitive pattern with the term in a capturing group.

    A match may not be preceded or followed by a word character. Unlike ``\\b``
    this also holds for terms that begin or end with a symbol, such as "Na+".
    """
    return re.compile(rf"(?<!\w)({re.escape(term)})(?!\w)", re.IGNORECASE)


def _split_plain(text: str, term: GlossaryTerm, pattern: re.Pattern) -> List[Segment]:
    # re.split with one capturing group alternates plain, match, plain, ...
    pieces = pattern.split(text)
    segments: List[Segment] = []
    for index, piece in enumerate(pieces):
        if index % 2 == 1:
            segments.append(TermMatch(text=piece, term=term))
        elif piece:
            segments.append(PlainSegment(text=piece))
    return segments


def highlight(text: str, glossary: Optional[Iterable[GlossaryTerm]]) -> List[Segment]:
    """
    Find glossary terms in text.

    Args:
        text: Text to scan
        glossary: Terms to look for (may be None or empty)

    Returns:
        Segments covering the whole input, left to right
    """
    terms = sort_terms_for_matching(glossary or [])
    if not text or not terms:
        return [PlainSegment(text=text or "")]

    segments: List[Segment] = [PlainSegment(text=text)]
    for term in terms:
        pattern = build_term_pattern(term.term)
        next_segments: List[Segment] = []
        for segment in segments:
            if isinstance(segment, PlainSegment):
                next_segments.extend(_split_plain(segment.text, term, pattern))
            else:
                next_segments.append(segment)
        segments = next_segments

    return segments


def segments_to_text(segments: Iterable[Segment]) -> str:
    """Concatenate segments back into the text they were produced from"""
    return "".join(segment.text for segment in segments)
