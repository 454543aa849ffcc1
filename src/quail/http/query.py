"""Query string splitting.

``split()`` turns a raw query string into a ``QueryStringMapping`` of
decoded keys to every decoded value supplied for them.

Malformed input never raises here. Pairs without ``=``, keys that fail
to decode, and values that fail to decode are dropped and logged at
DEBUG on the ``quail.query`` logger; the rest of the query string is
still parsed.
"""

import logging
from collections.abc import Iterator, Mapping

from quail.errors import DecodeError
from quail.http.encoding import FormUrlDecoded, form_url_decode

logger = logging.getLogger("quail.query")


class QueryStringMapping(Mapping[str, list[FormUrlDecoded]]):
    """Keys from a query string mapped to their decoded values.

    Attributes:
        _data: Decoded key -> decoded values in source order.

    Keys iterate in order of first appearance. A key present with no
    values (see ``add_unmapped_segment``) maps to an empty list.
    """

    _data: dict[str, list[FormUrlDecoded]]

    __slots__ = ("_data",)

    def __init__(self, data: dict[str, list[FormUrlDecoded]] | None = None) -> None:
        self._data = data if data is not None else {}

    def __getitem__(self, key: str) -> list[FormUrlDecoded]:
        return self._data[key]

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        items = ", ".join(f"{k!r}: {self.get_list(k)!r}" for k in self)
        return f"QueryStringMapping({{{items}}})"

    def get(  # type: ignore[override]
        self, key: str, default: list[FormUrlDecoded] | None = None
    ) -> list[FormUrlDecoded] | None:
        """Return the values for *key*, or *default* if missing."""
        return self._data.get(key, default)

    def contains_key(self, key: str) -> bool:
        """Whether *key* was supplied, with or without values."""
        return key in self._data

    def get_list(self, key: str) -> list[str]:
        """Return the decoded text of every value for *key*."""
        return [value.val for value in self._data.get(key, ())]

    def add_unmapped_segment(self, key: str) -> bool:
        """Record *key* as present with no values.

        Used for optional keys that were not supplied, so that converters
        see an empty sequence instead of a missing key. An existing key
        keeps its values. Returns True if the key was inserted.
        """
        try:
            decoded = form_url_decode(key)
        except DecodeError:
            logger.debug("unmapped segment %r could not be decoded, ignoring", key)
            return False
        if decoded in self._data:
            return False
        logger.debug("unmapped segment %r added to query string mapping", decoded)
        self._data[decoded] = []
        return True


def split(query: str | None, *, separator: str = "&") -> QueryStringMapping:
    """Split a query string into a mapping of keys to values.

    Keys given 1..n times collect every value in source order. A key
    given with an empty value (``key=``) maps to ``[""]``. Only the first
    ``=`` separates key from value, so ``token=YWI=`` keeps ``"YWI="``.

    Example::

        res = split("k%65y=val&key=%76al+2")
        assert res.get_list("key") == ["val", "val 2"]
    """
    data: dict[str, list[FormUrlDecoded]] = {}
    if not query:
        return QueryStringMapping(data)

    for pair in query.split(separator):
        raw_key, sep, raw_value = pair.partition("=")
        if not sep:
            if pair:
                logger.debug("query pair %r has no '=', ignoring", pair)
            continue

        try:
            key = form_url_decode(raw_key)
        except DecodeError:
            logger.debug("query key %r could not be decoded, ignoring pair", raw_key)
            continue

        values = data.setdefault(key, [])
        value = FormUrlDecoded.new(raw_value)
        if value is None:
            logger.debug("value %r for query key %r could not be decoded, ignoring", raw_value, key)
            continue
        values.append(value)

    return QueryStringMapping(data)
