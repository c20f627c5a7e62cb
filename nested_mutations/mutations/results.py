"""
Value types produced while running a mutation.
"""

import enum
from dataclasses import dataclass
from typing import Any, Optional, Union

PathSegment = Union[str, int]
InputPath = tuple[PathSegment, ...]


class ChangeAction(enum.Enum):
    CREATE = "create"
    UPDATE = "update"
    DESTROY = "destroy"


class MatchAction(enum.Enum):
    CREATE = "create"
    UPDATE = "update"
    DESTROY = "destroy"
    RELINK = "relink"


@dataclass(frozen=True, eq=False)
class Change:
    """
    One recorded mutation unit.

    ``attribute`` is ``None`` for create/destroy markers that carry no
    attribute write.
    """

    record: Any
    attribute: Optional[str]
    input_path: Optional[InputPath]
    action: ChangeAction

    def describe(self) -> str:
        path = ".".join(str(segment) for segment in self.input_path or ())
        return f"{self.action.value} {type(self.record).__name__}.{self.attribute or '*'} <- {path or '-'}"


@dataclass(frozen=True, eq=False)
class MatchResult:
    """A child record paired with its input fragment for one association level."""

    record: Any
    fragment: Optional[dict[str, Any]]
    locator: Optional[int]
    action: MatchAction

    @property
    def recurses(self) -> bool:
        return self.action is not MatchAction.DESTROY and self.fragment is not None
