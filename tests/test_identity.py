"""Tests for identity member resolution."""

from dataclasses import dataclass
from typing import Annotated

from pydantic import BaseModel, ConfigDict

from settee._identity import DocumentId, DocumentRev, EntityReflector, iter_members

from entities import Artist, Playlist, Track


class TestConventions:
    """Tests for the naming conventions and their ranking."""

    def test_type_prefixed_members(self) -> None:
        reflector = EntityReflector()
        assert reflector.resolve_id(Artist) == "artist_id"
        assert reflector.resolve_rev(Artist) == "artist_rev"

    def test_bare_members(self) -> None:
        reflector = EntityReflector()
        assert reflector.resolve_id(Track) == "id"
        assert reflector.resolve_rev(Track) == "rev"

    def test_marker_beats_convention(self) -> None:
        reflector = EntityReflector()
        assert reflector.resolve_id(Playlist) == "key"
        assert reflector.resolve_rev(Playlist) == "version"

    def test_lower_rank_wins_regardless_of_order(self) -> None:
        class Song(BaseModel):
            id: str | None = None
            entity_id: str | None = None
            document_id: str | None = None
            song_id: str | None = None

        assert EntityReflector().resolve_id(Song) == "song_id"

    def test_multi_word_type_name(self) -> None:
        class RecordLabel(BaseModel):
            document_id: str | None = None
            record_label_id: str | None = None

        assert EntityReflector().resolve_id(RecordLabel) == "record_label_id"

    def test_ties_go_to_first_declared(self) -> None:
        class Both(BaseModel):
            first: Annotated[str | None, DocumentId] = None
            second: Annotated[str | None, DocumentId] = None

        assert EntityReflector().resolve_id(Both) == "first"

    def test_case_insensitive_match(self) -> None:
        @dataclass
        class Label:
            Label_Id: str | None = None

        assert EntityReflector().resolve_id(Label) == "Label_Id"

    def test_no_candidates(self) -> None:
        class Note(BaseModel):
            text: str

        identity = EntityReflector().identity(Note)
        assert identity.id_member is None
        assert identity.rev_member is None
        assert identity.wire_names == {"text": "text"}

    def test_id_candidate_is_never_rev(self) -> None:
        class Odd(BaseModel):
            id: Annotated[str | None, DocumentRev] = None
            document_id: str | None = None

        identity = EntityReflector().identity(Odd)
        assert identity.id_member == "document_id"
        assert identity.rev_member is None


class TestWireNames:
    """Tests for the wire names derived from identity."""

    def test_identity_members_get_reserved_names(self) -> None:
        identity = EntityReflector().identity(Artist)
        assert identity.wire_names == {
            "artist_id": "_id",
            "artist_rev": "_rev",
            "name": "name",
            "albums": "albums",
        }

    def test_other_members_are_camel_cased(self) -> None:
        identity = EntityReflector().identity(Track)
        assert identity.wire_names["duration_seconds"] == "durationSeconds"
        assert identity.member_names["durationSeconds"] == "duration_seconds"

    def test_losing_id_candidate_keeps_its_own_name(self) -> None:
        identity = EntityReflector().identity(Playlist)
        assert identity.wire_names["id"] == "id"
        assert identity.wire_names["key"] == "_id"


class TestCache:
    """Tests for per-type caching."""

    def test_resolution_is_cached(self) -> None:
        reflector = EntityReflector()
        assert reflector.identity(Artist) is reflector.identity(Artist)

    def test_members_in_declaration_order(self) -> None:
        assert [m.name for m in iter_members(Track)] == [
            "id",
            "rev",
            "title",
            "duration_seconds",
        ]

    def test_plain_class_has_no_members(self) -> None:
        class Plain:
            x: int = 1

        assert iter_members(Plain) == ()


class TestWithIdentity:
    """Tests for writing id and rev into entities."""

    def test_mutable_model_updated_in_place(self) -> None:
        artist = Artist(name="Fray")
        identity = EntityReflector().identity(Artist)
        result = identity.with_identity(artist, id="artist:1", rev="1-a")
        assert result is artist
        assert (artist.artist_id, artist.artist_rev) == ("artist:1", "1-a")

    def test_frozen_model_is_copied(self) -> None:
        class Frozen(BaseModel):
            model_config = ConfigDict(frozen=True)
            id: str | None = None
            rev: str | None = None

        original = Frozen()
        updated = EntityReflector().identity(Frozen).with_identity(original, id="x", rev="1")
        assert updated is not original
        assert (updated.id, updated.rev) == ("x", "1")
        assert original.id is None

    def test_frozen_dataclass_is_copied(self) -> None:
        @dataclass(frozen=True)
        class Point:
            id: str | None = None

        updated = EntityReflector().identity(Point).with_identity(Point(), id="p")
        assert updated.id == "p"

    def test_none_values_leave_entity_alone(self) -> None:
        track = Track(id="t", rev="1")
        EntityReflector().identity(Track).with_identity(track, id=None, rev=None)
        assert (track.id, track.rev) == ("t", "1")

    def test_get_accessors(self) -> None:
        identity = EntityReflector().identity(Track)
        track = Track(id="t", rev="2")
        assert identity.get_id(track) == "t"
        assert identity.get_rev(track) == "2"
