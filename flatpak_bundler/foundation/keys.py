"""Key-name normalization for option and manifest mappings.

Callers hand us `buildDir`, `build_dir` or `build-dir` interchangeably; every
mapping key is rewritten to dash-separated lowercase so the rest of the
package only ever sees one spelling.
"""

from __future__ import annotations

import copy
import re
from collections.abc import Iterable, Mapping
from typing import Any

# Runs of letters and digits in any script; everything else separates words.
_CHUNK_RE = re.compile(r"[^\W_]+")


def _split_chunk(chunk: str) -> list[str]:
    words: list[str] = []
    start = 0
    for idx in range(1, len(chunk)):
        prev, cur = chunk[idx - 1], chunk[idx]
        nxt = chunk[idx + 1] if idx + 1 < len(chunk) else ""
        if (
            prev.isdigit() != cur.isdigit()
            or (prev.islower() and cur.isupper())
            # acronym run: "HTTP" in "HTTPServer"
            or (prev.isupper() and cur.isupper() and nxt.islower())
        ):
            words.append(chunk[start:idx])
            start = idx
    words.append(chunk[start:])
    return words


def kebab_case(key: str) -> str:
    """Return `key` as lowercase words joined by dashes.

    Words break on case changes, digit runs and any character that is not a
    letter or digit, so `"extraFlatpakBuilderArgs"`,
    `"extra_flatpak_builder_args"` and `"Extra Flatpak Builder Args"` all
    become `"extra-flatpak-builder-args"`. Letters outside ASCII count as
    letters (`"größe"` stays `"größe"`). Already-kebab keys are returned
    unchanged.
    """

    return "-".join(
        word.lower() for chunk in _CHUNK_RE.findall(key) for word in _split_chunk(chunk)
    )


def normalize_keys(value: Any, *, verbatim_keys: Iterable[str] = ()) -> Any:
    """Deep-copy `value`, kebab-casing every string mapping key.

    Mappings become dicts, lists stay lists and tuples stay tuples, in the
    original order. Scalars are returned as-is. Keys that collide after
    normalization within one mapping keep the last value seen; other mappings
    are unaffected. Values stored under a (normalized) key listed in
    `verbatim_keys` are deep-copied without rewriting their keys.
    Self-referential structures are copied with the same cycle shape.
    """

    return _normalize(value, frozenset(verbatim_keys), {})


def _normalize(value: Any, verbatim: frozenset[str], memo: dict[int, Any]) -> Any:
    if value is None or isinstance(value, (str, bytes, bool, int, float)):
        return value

    if isinstance(value, Mapping):
        existing = memo.get(id(value))
        if existing is not None:
            return existing
        out: dict[Any, Any] = {}
        memo[id(value)] = out
        for key, item in value.items():
            new_key = kebab_case(key) if isinstance(key, str) else key
            if new_key in verbatim:
                out[new_key] = copy.deepcopy(item)
            else:
                out[new_key] = _normalize(item, verbatim, memo)
        return out

    if isinstance(value, list):
        existing = memo.get(id(value))
        if existing is not None:
            return existing
        out_list: list[Any] = []
        memo[id(value)] = out_list
        out_list.extend(_normalize(item, verbatim, memo) for item in value)
        return out_list

    if isinstance(value, tuple):
        return tuple(_normalize(item, verbatim, memo) for item in value)

    return copy.deepcopy(value)
