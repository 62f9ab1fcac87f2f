"""
Containment sets: cached answers to "does the account have X saved?".

One ContainmentSet exists per entity kind (liked tracks, saved albums,
saved shows, followed artists). They let the formatter and the command
layer show liked/saved/followed icons without a round trip per item.

An id that is not in the set is NOT known to be unsaved: it may simply
never have been asked about. lookup() makes the difference explicit; the
only way to turn UNKNOWN into an answer is a Check* intent, which queries
the remote and calls apply().
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum


class Membership(Enum):
    """Three-state answer of ContainmentSet.lookup()."""

    CONTAINED = "contained"
    NOT_CONTAINED = "not_contained"
    UNKNOWN = "unknown"


@dataclass
class ContainmentSet:
    """
    Ids known to satisfy a predicate as of the last query.

    Attributes:
        name: Kind of membership, for logs ("liked tracks").
        members: Ids the remote last reported as contained.
        known_absent: Ids the remote last reported as not contained.

    Invariant:
        After apply() for id X, membership of X is exactly the remote's
        answer: in `members` if true, in `known_absent` if false.
    """
    name: str
    members: set[str] = field(default_factory=set)
    known_absent: set[str] = field(default_factory=set)

    def apply(self, ids: Sequence[str], answers: Sequence[bool]) -> None:
        """
        Record the answers of one bulk containment query.

        Args:
            ids: The ids that were queried, in request order.
            answers: The remote's answers, index-aligned with `ids`.
                     Ids without an answer are left unchanged.
        """
        for entity_id, answer in zip(ids, answers):
            if answer:
                self.add(entity_id)
            else:
                self.discard(entity_id)

    def add(self, entity_id: str) -> None:
        self.members.add(entity_id)
        self.known_absent.discard(entity_id)

    def discard(self, entity_id: str) -> None:
        self.members.discard(entity_id)
        self.known_absent.add(entity_id)

    def update(self, ids: Iterable[str]) -> None:
        """Mark every id as contained (used when a saved-items page arrives)."""
        for entity_id in ids:
            self.add(entity_id)

    def contains(self, entity_id: str) -> bool:
        """True only when the last answer for the id was true. Absence is false-or-unknown."""
        return entity_id in self.members

    def lookup(self, entity_id: str) -> Membership:
        if entity_id in self.members:
            return Membership.CONTAINED
        if entity_id in self.known_absent:
            return Membership.NOT_CONTAINED
        return Membership.UNKNOWN

    def __len__(self) -> int:
        return len(self.members)
