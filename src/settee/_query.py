"""
View query options.
"""

from __future__ import annotations

import dataclasses
import json
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Literal

from pydantic_core import to_jsonable_python

from settee._util import quote_doc_id

Stale = Literal["ok", "update_after"]


def _json(value: Any) -> str:
    return json.dumps(
        to_jsonable_python(value), separators=(",", ":"), ensure_ascii=False
    )


def _flag(value: bool) -> str:
    return "true" if value else "false"


@dataclass(frozen=True, slots=True)
class ViewQuery:
    """
    A query against a design document view.

    Options left at their default are not sent, so the server's own default
    applies. Keys are JSON values: ``key="Fray"`` is sent as ``"Fray"``,
    ``start_key=["a", 1]`` as ``["a",1]``.

    Example:
        >>> query = ViewQuery("artists", "albums", keys=("Fray", "Elbow"))
        >>> query = query.configure(include_docs=True, limit=10)

    Attributes:
        design_document: Design document name, without ``_design/``
        view_name: View name
        stale: Allow a stale index (``ok`` or ``update_after``)
        include_docs: Include each row's document
        descending: Reverse the row order
        key: Return only rows with this key
        keys: Return only rows with one of these keys (sent as a POST body)
        start_key: First key of the range
        start_key_doc_id: First document id within ``start_key``
        end_key: Last key of the range
        end_key_doc_id: Last document id within ``end_key``
        inclusive_end: Include rows matching ``end_key``
        skip: Rows to skip
        limit: Maximum rows to return
        reduce: Run the reduce function (None uses the server default)
        update_seq: Include the database sequence the view reflects
        group: Group reduce results by key
        group_level: Group reduce results by key prefix of this length
    """

    design_document: str
    view_name: str
    stale: Stale | None = None
    include_docs: bool = False
    descending: bool = False
    key: Any = None
    keys: Sequence[Any] | None = None
    start_key: Any = None
    start_key_doc_id: str | None = None
    end_key: Any = None
    end_key_doc_id: str | None = None
    inclusive_end: bool = True
    skip: int | None = None
    limit: int | None = None
    reduce: bool | None = None
    update_seq: bool = False
    group: bool = False
    group_level: int | None = None

    @property
    def path(self) -> str:
        """Path of the view, relative to the database URL."""
        design = quote_doc_id(f"_design/{self.design_document}")
        return f"{design}/_view/{quote_doc_id(self.view_name)}"

    @property
    def has_keys(self) -> bool:
        return self.keys is not None

    def configure(self, **options: Any) -> ViewQuery:
        """Return a copy with ``options`` changed."""
        return dataclasses.replace(self, **options)

    def to_params(self) -> dict[str, str]:
        """
        Render the options as query string parameters.

        ``keys`` is not included; it travels in the request body.
        """
        params: dict[str, str] = {}
        if self.stale is not None:
            params["stale"] = self.stale
        if self.include_docs:
            params["include_docs"] = "true"
        if self.descending:
            params["descending"] = "true"
        if self.key is not None:
            params["key"] = _json(self.key)
        if self.start_key is not None:
            params["startkey"] = _json(self.start_key)
        if self.start_key_doc_id is not None:
            params["startkey_docid"] = self.start_key_doc_id
        if self.end_key is not None:
            params["endkey"] = _json(self.end_key)
        if self.end_key_doc_id is not None:
            params["endkey_docid"] = self.end_key_doc_id
        if not self.inclusive_end:
            params["inclusive_end"] = "false"
        if self.skip is not None:
            params["skip"] = str(self.skip)
        if self.limit is not None:
            params["limit"] = str(self.limit)
        if self.reduce is not None:
            params["reduce"] = _flag(self.reduce)
        if self.update_seq:
            params["update_seq"] = "true"
        if self.group:
            params["group"] = "true"
        if self.group_level is not None:
            params["group_level"] = str(self.group_level)
        return params

    def keys_body(self) -> str:
        """JSON request body carrying ``keys``."""
        return _json({"keys": list(self.keys or ())})
