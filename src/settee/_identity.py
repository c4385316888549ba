"""
Identity resolution for entity types.

Decides, per entity type, which member holds the document id and which holds
the revision. Every serializable member is ranked against two conventions;
the lowest rank wins and ties go to the first-declared member.

Ranks (lower is better):

    0  explicitly marked:  Annotated[str | None, DocumentId]
    1  <type_name>_id      artist_id on Artist
    2  document_id
    3  entity_id
    4  id

Revision candidates follow the same table with ``DocumentRev`` and ``_rev``
suffixes. A member that qualifies as an id is never also a revision.

Example:
    >>> class Artist(BaseModel):
    ...     artist_id: str | None = None
    ...     artist_rev: str | None = None
    ...     name: str
    >>> reflector = EntityReflector()
    >>> reflector.resolve_id(Artist), reflector.resolve_rev(Artist)
    ('artist_id', 'artist_rev')
"""

from __future__ import annotations

import dataclasses
import logging
import threading
import typing
from collections.abc import Callable
from dataclasses import dataclass
from typing import Annotated, Any, TypeVar

from pydantic import BaseModel
from pydantic.alias_generators import to_camel, to_snake

from settee._types import ID_FIELD, REV_FIELD

logger = logging.getLogger(__name__)

E = TypeVar("E")


class IdentityMarker:
    """Marker placed in ``Annotated`` metadata to pin an identity member."""

    __slots__ = ("name",)

    def __init__(self, name: str) -> None:
        self.name = name

    def __repr__(self) -> str:
        return self.name


DocumentId = IdentityMarker("DocumentId")
DocumentRev = IdentityMarker("DocumentRev")


@dataclass(frozen=True, slots=True)
class Member:
    """
    A serializable member of an entity type.

    Attributes:
        name: Attribute name on the Python type
        hint: Type hint, with ``Annotated`` extras kept
    """

    name: str
    hint: Any = Any

    def has_marker(self, marker: IdentityMarker) -> bool:
        if typing.get_origin(self.hint) is not Annotated:
            return False
        return any(m is marker for m in self.hint.__metadata__)

    @property
    def bare_hint(self) -> Any:
        """The type hint without ``Annotated`` metadata."""
        if typing.get_origin(self.hint) is Annotated:
            return typing.get_args(self.hint)[0]
        return self.hint


def is_structured_type(tp: Any) -> bool:
    """Whether ``tp`` is a type whose members the codec maps by name."""
    if not isinstance(tp, type):
        return False
    return issubclass(tp, BaseModel) or dataclasses.is_dataclass(tp)


def _type_hints(tp: type) -> dict[str, Any]:
    try:
        return typing.get_type_hints(tp, include_extras=True)
    except (NameError, TypeError):
        # Unresolvable forward references: names are still usable
        return dict(getattr(tp, "__annotations__", {}))


def iter_members(tp: type) -> tuple[Member, ...]:
    """
    List the serializable members of ``tp`` in declaration order.

    Pydantic models contribute ``model_fields``, dataclasses their fields.
    Any other type has no members.
    """
    if not is_structured_type(tp):
        return ()

    hints = _type_hints(tp)
    if issubclass(tp, BaseModel):
        names: list[str] = list(tp.model_fields)
    else:
        names = [f.name for f in dataclasses.fields(tp)]

    return tuple(Member(name, hints.get(name, Any)) for name in names)


def _convention_rank(tp: type, name: str, suffix: str) -> int | None:
    candidates = (
        f"{to_snake(tp.__name__)}_{suffix}",
        f"document_{suffix}",
        f"entity_{suffix}",
        suffix,
    )
    lowered = name.lower()
    for rank, candidate in enumerate(candidates, start=1):
        if lowered == candidate:
            return rank
    return None


def id_rank(tp: type, member: Member) -> int | None:
    """Rank of ``member`` as the document id of ``tp`` (None if not a candidate)."""
    if member.has_marker(DocumentId):
        return 0
    return _convention_rank(tp, member.name, "id")


def rev_rank(tp: type, member: Member) -> int | None:
    """Rank of ``member`` as the revision of ``tp`` (None if not a candidate)."""
    if member.has_marker(DocumentRev):
        return 0
    return _convention_rank(tp, member.name, "rev")


@dataclass(frozen=True, slots=True)
class IdentityMembers:
    """
    Resolved identity members of an entity type, plus its wire names.

    Attributes:
        entity_type: The entity type
        id_member: Member holding the document id, if any
        rev_member: Member holding the revision, if any
        members: All serializable members, in declaration order
        wire_names: Member name -> JSON property name
    """

    entity_type: type
    id_member: str | None
    rev_member: str | None
    members: tuple[Member, ...]
    wire_names: dict[str, str]

    @property
    def member_names(self) -> dict[str, str]:
        """JSON property name -> member name."""
        return {wire: name for name, wire in self.wire_names.items()}

    def get_id(self, entity: Any) -> str | None:
        if self.id_member is None:
            return None
        return getattr(entity, self.id_member, None)

    def get_rev(self, entity: Any) -> str | None:
        if self.rev_member is None:
            return None
        return getattr(entity, self.rev_member, None)

    def with_identity(
        self,
        entity: E,
        *,
        id: str | None = None,
        rev: str | None = None,
    ) -> E:
        """
        Write ``id`` / ``rev`` into ``entity``.

        Mutable entities are updated in place and returned. Frozen pydantic
        models and frozen dataclasses are copied.
        """
        updates: dict[str, Any] = {}
        if self.id_member is not None and id is not None:
            updates[self.id_member] = id
        if self.rev_member is not None and rev is not None:
            updates[self.rev_member] = rev
        if not updates:
            return entity

        if isinstance(entity, BaseModel) and entity.model_config.get("frozen"):
            return entity.model_copy(update=updates)
        if dataclasses.is_dataclass(entity) and entity.__dataclass_params__.frozen:  # type: ignore[union-attr]
            return dataclasses.replace(entity, **updates)  # type: ignore[type-var]

        for name, value in updates.items():
            setattr(entity, name, value)
        return entity


def _best(
    tp: type,
    members: tuple[Member, ...],
    rank: Callable[[type, Member], int | None],
) -> str | None:
    best_name: str | None = None
    best_rank: int | None = None
    for member in members:
        r = rank(tp, member)
        # Strictly lower only: first declared wins ties
        if r is not None and (best_rank is None or r < best_rank):
            best_name, best_rank = member.name, r
    return best_name


class EntityReflector:
    """
    Registry of resolved identity members, keyed by type.

    Resolution is a pure function of a type's declared members, so results
    are computed once per type and reused. Safe to share between threads.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._cache: dict[type, IdentityMembers] = {}

    def identity(self, tp: type) -> IdentityMembers:
        """Resolve (or fetch cached) identity members for ``tp``."""
        cached = self._cache.get(tp)
        if cached is not None:
            return cached

        with self._lock:
            cached = self._cache.get(tp)
            if cached is None:
                cached = self._resolve(tp)
                self._cache[tp] = cached
        return cached

    def _resolve(self, tp: type) -> IdentityMembers:
        members = iter_members(tp)
        id_member = _best(tp, members, id_rank)
        # Any id candidate, winning or not, is out of the running for rev
        rev_members = tuple(m for m in members if id_rank(tp, m) is None)
        rev_member = _best(tp, rev_members, rev_rank)

        wire_names: dict[str, str] = {}
        for member in members:
            if member.name == id_member:
                wire_names[member.name] = ID_FIELD
            elif member.name == rev_member:
                wire_names[member.name] = REV_FIELD
            else:
                wire_names[member.name] = to_camel(member.name)

        logger.debug(
            "Resolved identity for %s: id=%s rev=%s",
            tp.__qualname__,
            id_member,
            rev_member,
        )
        return IdentityMembers(
            entity_type=tp,
            id_member=id_member,
            rev_member=rev_member,
            members=members,
            wire_names=wire_names,
        )

    def resolve_id(self, tp: type) -> str | None:
        return self.identity(tp).id_member

    def resolve_rev(self, tp: type) -> str | None:
        return self.identity(tp).rev_member
