"""File naming for recorded traffic: path templates and numbered chunks."""

from __future__ import annotations

import functools
import glob
import os
import random
import re
import string
from datetime import datetime
from typing import Iterable, Optional, Union

_INTEGER = re.compile(r"[+-]?[0-9]+", re.ASCII)

INSTANCE_ID = "".join(random.choice(string.ascii_letters) for _ in range(8))


def _ext(path: str) -> str:
    """Extension of the last path element, including the dot ('' if none)."""
    for pos in range(len(path) - 1, -1, -1):
        char = path[pos]
        if char == os.sep or (os.altsep and char == os.altsep):
            break
        if char == ".":
            return path[pos:]
    return ""


def _split_ext(name: str) -> tuple[str, str]:
    ext = _ext(name)
    return (name[: len(name) - len(ext)] if ext else name), ext


def _atoi(text: str) -> Optional[int]:
    if _INTEGER.fullmatch(text):
        return int(text)
    return None


def get_file_index(name: str) -> int:
    """Return the chunk index encoded as ``_<n>`` before the extension, or -1."""
    stem, _ = _split_ext(name)
    pos = stem.rfind("_")
    if pos != -1:
        index = _atoi(stem[pos + 1 :])
        if index is not None:
            return index
    return -1


def set_file_index(name: str, index: int) -> str:
    """Return ``name`` with its chunk index set to ``index``."""
    stem, ext = _split_ext(name)
    pos = stem.rfind("_")
    if pos != -1 and _atoi(stem[pos + 1 :]) is not None:
        stem = stem[:pos]
    return f"{stem}_{index}{ext}"


def without_index(name: str) -> str:
    """Return ``name`` cut before its last underscore."""
    pos = name.rfind("_")
    return name[:pos] if pos != -1 else name


def _compare(left: str, right: str) -> int:
    if without_index(left) == without_index(right):
        a, b = get_file_index(left), get_file_index(right)
    else:
        a, b = left, right  # type: ignore[assignment]
    return (a > b) - (a < b)


def sort_by_file_index(names: Iterable[str]) -> list[str]:
    """Sort names by base name, and by numeric chunk index within one base name."""
    return sorted(names, key=functools.cmp_to_key(_compare))


def _text(value: Union[str, bytes]) -> str:
    return value.decode("utf-8", "replace") if isinstance(value, bytes) else value


def expand_path_template(
    template: str,
    request_id: Union[str, bytes] = "",
    payload_type: Union[str, bytes] = "",
    now: Optional[datetime] = None,
) -> str:
    """Substitute date, request id, payload type and instance placeholders.

    Supported: ``%Y %m %d %H %M %S %NS %r %t %i``.
    """
    now = now if now is not None else datetime.now()
    replacements = [
        ("%NS", str(now.microsecond * 1000)),
        ("%Y", f"{now.year:04d}"),
        ("%m", f"{now.month:02d}"),
        ("%d", f"{now.day:02d}"),
        ("%H", f"{now.hour:02d}"),
        ("%M", f"{now.minute:02d}"),
        ("%S", f"{now.second:02d}"),
        ("%r", _text(request_id)),
        ("%t", _text(payload_type)),
        ("%i", INSTANCE_ID),
    ]
    path = template
    for placeholder, value in replacements:
        path = path.replace(placeholder, value)
    return path


def resolve_filename(path: str, append: bool = False, next_chunk: bool = False) -> str:
    """Pick the file to write for ``path``.

    In append mode the path is used as is. Otherwise the highest existing
    chunk is reused, or the following one when ``next_chunk`` is set; with no
    existing chunk the index 0 is used. The result is normalised.
    """
    if append:
        return os.path.normpath(path)

    stem, ext = _split_ext(path)
    matches = glob.glob(glob.escape(stem) + "*" + glob.escape(ext))
    if not matches:
        return os.path.normpath(set_file_index(path, 0))

    last = sort_by_file_index(matches)[-1]
    file_index = 0
    index = get_file_index(last)
    if index != -1:
        file_index = index + 1 if next_chunk else index
    return os.path.normpath(set_file_index(last, file_index))