"""Create-new file writing shared by every encoder."""

from __future__ import annotations

import os
from contextlib import suppress
from pathlib import Path

from .errors import AlreadyExistsError


def write_new_file(path: str | Path, data: bytes) -> Path:
    """Write ``data`` to ``path`` only if nothing exists there yet.

    Existence check and creation happen in a single ``open(..., "xb")`` so two
    writers racing for the same path cannot both succeed. If writing fails
    after the file was created, the partial file is removed again.
    """

    path = Path(path)
    try:
        handle = path.open("xb")
    except FileExistsError as exc:
        raise AlreadyExistsError(f"Output file already exists: {path}") from exc

    try:
        with handle:
            handle.write(data)
    except BaseException:
        with suppress(OSError):
            os.remove(path)
        raise
    return path
