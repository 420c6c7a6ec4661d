"""
Minimal description of what a trial move modified.

Moves populate a `Change` precisely as they mutate the trial space; the
accepted space then copies only what is listed (see `Space.sync`).
"""

from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from mcspace.errors import ContractViolation

Span = Tuple[int, int]


class GroupChange:
    """
    Modified parts of one group.

    Attributes:
        index: Group index in the space
        all: True if every active particle may have changed (offsets are then ignored)
        atoms: Touched active offsets, relative to the group begin
        activated: Spans (first, last) activated in the trial move
        deactivated: Spans (first, last) deactivated in the trial move
    """

    def __init__(self, index: int, all_changed: bool = False, atoms: Sequence[int] = (),
                 activated: Sequence[Span] = (), deactivated: Sequence[Span] = ()):
        self.index = index
        self.all = all_changed
        self.atoms: List[int] = list(atoms)
        self.activated: List[Span] = list(activated)
        self.deactivated: List[Span] = list(deactivated)

    def touch(self, *offsets: int) -> "GroupChange":
        self.atoms.extend(offsets)
        return self

    @property
    def resized(self) -> bool:
        """True if the active/inactive partition was permuted."""
        return bool(self.activated or self.deactivated)

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "all": self.all,
            "atoms": list(self.atoms),
            "activated": [list(s) for s in self.activated],
            "deactivated": [list(s) for s in self.deactivated],
        }

    def __repr__(self) -> str:
        return f"GroupChange(index={self.index}, all={self.all}, atoms={self.atoms})"


class Change:
    """
    Volume change and modified groups of a trial move.

    Example:
        change = Change()
        change.add_group(2).touch(2, 5)
        accepted.sync(trial, change)
    """

    def __init__(self, dV: float = 0.0, groups: Optional[Sequence[GroupChange]] = None):
        self.dV = dV
        self.groups: List[GroupChange] = []
        self._by_index: Dict[int, GroupChange] = {}
        for d in groups or ():
            self._append(d)

    def _append(self, d: GroupChange):
        if d.index in self._by_index:
            raise ContractViolation(f"group {d.index} recorded twice in change")
        self._by_index[d.index] = d
        self.groups.append(d)

    def add_group(self, index: int, all_changed: bool = False) -> GroupChange:
        """Entry for group `index`; created on first use, one entry per group."""
        d = self._by_index.get(index)
        if d is None:
            d = GroupChange(index)
            self._append(d)
        d.all = d.all or all_changed
        return d

    def touched(self) -> List[int]:
        """Indices of touched groups, in record order."""
        return [d.index for d in self.groups]

    def clear(self):
        self.dV = 0.0
        self.groups.clear()
        self._by_index.clear()

    def empty(self) -> bool:
        return not self.groups and self.dV == 0

    def __iter__(self) -> Iterator[GroupChange]:
        return iter(self.groups)

    def __len__(self) -> int:
        return len(self.groups)

    def __bool__(self) -> bool:
        return not self.empty()

    def to_dict(self) -> dict:
        return {"dV": self.dV, "groups": [d.to_dict() for d in self.groups]}
