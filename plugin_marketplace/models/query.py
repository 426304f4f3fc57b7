"""Query descriptor and result models for the catalogue query engine."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from plugin_marketplace.models.plugin import PluginEntry


class InvalidQueryError(ValueError):
    """Raised when a query descriptor cannot be interpreted."""


class SortField(str, Enum):
    """Fields a query result can be ordered by.

    ``id`` is always applied as the secondary key so ordering is total.
    """

    NAME = "name"
    ID = "id"
    VERSION = "version"
    UPDATED_AT = "updated_at"


class PluginQuery(BaseModel):
    """A caller's filter / sort / page request against the catalogue.

    Examples
    --------
    >>> q = PluginQuery.from_params({"server_version": "5.20.0", "page": "1", "per_page": "10"})
    >>> (q.server_version, q.page, q.per_page)
    ('5.20.0', 1, 10)
    >>> PluginQuery().per_page  # 0 means unpaginated
    0
    """

    model_config = ConfigDict(frozen=True)

    server_version: str | None = None
    plugin_id: str | None = None
    search: str | None = None
    excluded_ids: frozenset[str] = frozenset()
    page: int = Field(default=0, ge=0)
    per_page: int = Field(default=0, ge=0)
    sort: SortField = SortField.NAME
    descending: bool = False

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> PluginQuery:
        """Build a query from key/value parameters (e.g. an HTTP query string).

        Recognised keys: ``server_version``, ``plugin_id``, ``filter``,
        ``page``, ``per_page``, ``sort``, ``order`` (``asc``/``desc``) and
        ``exclude`` (comma separated ids, or a list of ids).

        Raises
        ------
        InvalidQueryError
            If a value has the wrong shape (non-integer page, unknown sort
            field, negative page size, ...).
        """
        order = str(params.get("order") or "asc").lower()
        if order not in ("asc", "desc"):
            raise InvalidQueryError(f"unknown sort order {order!r}")

        exclude = params.get("exclude") or ()
        if isinstance(exclude, str):
            exclude = exclude.split(",")

        try:
            return cls(
                server_version=params.get("server_version") or None,
                plugin_id=params.get("plugin_id") or None,
                search=params.get("filter") or None,
                excluded_ids=frozenset(_clean_ids(exclude)),
                page=params.get("page") or 0,
                per_page=params.get("per_page") or 0,
                sort=params.get("sort") or SortField.NAME,
                descending=order == "desc",
            )
        except ValidationError as exc:
            raise InvalidQueryError(f"invalid query parameters: {exc}") from exc

    def to_params(self) -> dict[str, str]:
        """Render the query back into key/value parameters, omitting defaults."""
        params: dict[str, str] = {}
        if self.server_version:
            params["server_version"] = self.server_version
        if self.plugin_id:
            params["plugin_id"] = self.plugin_id
        if self.search:
            params["filter"] = self.search
        if self.excluded_ids:
            params["exclude"] = ",".join(sorted(self.excluded_ids))
        if self.page:
            params["page"] = str(self.page)
        if self.per_page:
            params["per_page"] = str(self.per_page)
        if self.sort is not SortField.NAME:
            params["sort"] = self.sort.value
        if self.descending:
            params["order"] = "desc"
        return params


def _clean_ids(ids: Iterable[str]) -> list[str]:
    return [i.strip() for i in ids if i and i.strip()]


class QueryResult(BaseModel):
    """One page of query results plus the unpaginated match count."""

    model_config = ConfigDict(frozen=True)

    plugins: list[PluginEntry] = Field(default_factory=list)
    total: int = 0
    page: int = 0
    per_page: int = 0
