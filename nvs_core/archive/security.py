"""Path checks that keep archive entries inside the extraction root."""

from __future__ import annotations

import os
from pathlib import Path

from ..errors import PathTraversalError


def safe_output_path(base_dir: Path, relative_path: str) -> Path:
    """Return where ``relative_path`` lands under ``base_dir``.

    The joined path is cleaned lexically first (``..``, absolute names,
    drive letters), then its parent is resolved so an earlier symlink entry
    cannot redirect later writes outside the root. The leaf itself is not
    resolved: a symlink entry is replaced, never followed.
    """
    root = base_dir.resolve()
    name = relative_path.replace("\\", "/")
    joined = Path(os.path.normpath(os.path.join(root, name)))
    if joined == root:
        return root
    if root not in joined.parents:
        raise PathTraversalError(f"path traversal blocked for archive entry: {relative_path}")
    parent = joined.parent.resolve()
    if parent != root and root not in parent.parents:
        raise PathTraversalError(
            f"archive entry {relative_path} escapes the destination through a symlink"
        )
    return parent / joined.name
