"""
Text postprocessing functions for Order Form OCR.

Contains the column role mapping and the catalog matcher that corrects
recognized text against the ordered product list.
"""

from typing import Dict, Optional, Sequence

import numpy as np
from rapidfuzz.distance import Levenshtein

from .utils import EmptyCandidateSetError, InvalidInputError, MatchResult, Role


DEFAULT_ROLES = {
    1: Role.NUMERIC,
    2: Role.CODE,
    3: Role.DESCRIPTION,
}


class CellRoleResolver:
    """Maps a grid column to the role of the text found in it."""

    def __init__(self, roles: Optional[Dict[int, Role]] = None):
        self.roles = dict(DEFAULT_ROLES if roles is None else roles)

    @classmethod
    def from_string(cls, spec: str) -> 'CellRoleResolver':
        """Parse a mapping such as ``"1=numeric,2=code,3=description"``."""
        roles = {}
        for item in spec.split(","):
            item = item.strip()
            if not item:
                continue
            column, _, name = item.partition("=")
            try:
                roles[int(column)] = Role(name.strip().lower())
            except ValueError:
                raise ValueError(f"Invalid role assignment: '{item}'") from None
        return cls(roles)

    def role_for(self, column: int) -> Role:
        return self.roles.get(column, Role.IGNORE)


class OrderedFuzzyMatcher:
    """Edit-distance matching against a window of an ordered candidate list.

    Form rows are printed in catalog order, so a row can only hold an entry at
    or after the row's own position. Only ``candidates[start_index:]`` is
    searched; ties keep the earliest candidate.
    """

    def __init__(self, max_normalized_distance: Optional[float] = None):
        # None accepts the best candidate however far it is
        self.max_normalized_distance = max_normalized_distance

    def match(
        self,
        text: str,
        candidates: Sequence[str],
        start_index: int = 0
    ) -> MatchResult:
        if start_index < 0:
            raise InvalidInputError(f"Start index must be non-negative, got {start_index}")
        if start_index >= len(candidates):
            raise EmptyCandidateSetError(
                f"No candidates left at index {start_index} of {len(candidates)}"
            )

        window = candidates[start_index:]
        distances = [Levenshtein.distance(text, candidate) for candidate in window]
        best = int(np.argmin(distances))

        candidate = window[best]
        distance = distances[best]
        normalized = Levenshtein.normalized_distance(text, candidate)

        if self.max_normalized_distance is not None and normalized > self.max_normalized_distance:
            return MatchResult(text=text, distance=distance, normalized_distance=normalized)

        return MatchResult(
            text=text,
            candidate=candidate,
            index=start_index + best,
            distance=distance,
            normalized_distance=normalized,
        )


class CatalogCursor:
    """Start of the candidate window, advanced row by row.

    The first ``header_rows`` grid rows hold column titles and do not consume
    a catalog position. The position never decreases.
    """

    def __init__(self, header_rows: int = 1):
        if header_rows < 0:
            raise InvalidInputError(f"Header rows must be non-negative, got {header_rows}")
        self.header_rows = header_rows
        self.position = 0

    def advance(self, row: int) -> int:
        """Move past a processed row and return the new position."""
        if row >= self.header_rows:
            self.position += 1
        return self.position

    def reset(self):
        self.position = 0
