from __future__ import annotations

import logging
import os
from typing import List, Union

log = logging.getLogger(__name__)


def list_files(path: Union[str, os.PathLike] = ".") -> List[str]:
    """Names of the non-directory entries in ``path``, in enumeration order.

    The directory is read fresh on every call. Symlinks are followed, so a
    link to a directory is skipped like the directory itself. Raises OSError
    if ``path`` cannot be opened.
    """
    names: List[str] = []
    with os.scandir(path) as it:
        for entry in it:
            if entry.is_dir():
                continue
            names.append(entry.name)
    log.debug("listed %d files in %s", len(names), path)
    return names
