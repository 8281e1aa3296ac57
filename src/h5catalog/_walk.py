from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import h5py

from .errors import WalkError

if TYPE_CHECKING:
    from typing import Iterator

logger = logging.getLogger(__name__)


def walk_datasets(root: h5py.Group) -> list[str]:
    """Return the path of every dataset reachable from `root`, depth first.

    Children are visited in the library's native link order, so the result is
    deterministic for a given file.  Groups are tracked by object identity
    rather than path: a group reachable through several links (including a
    link back to one of its ancestors) is only entered once, under the first
    path it was found at.  Named datatypes and dangling links are skipped.

    Raises
    ------
    WalkError
        If the library fails while listing or opening a link.
    """
    if isinstance(root, h5py.File):
        root = root["/"]
    datasets: list[str] = []
    visited = {root.id}
    # each entry is (group path, iterator over the group's link names)
    stack: list[tuple[str, h5py.Group, Iterator[str]]] = [
        (root.name.rstrip("/"), root, iter(_link_names(root, root.name)))
    ]

    while stack:
        prefix, group, names = stack[-1]
        name = next(names, None)
        if name is None:
            stack.pop()
            continue

        path = f"{prefix}/{name}"
        obj = _get(group, name, path)
        if obj is None:
            logger.debug(f"Skipping dangling link {path}")
        elif isinstance(obj, h5py.Group):
            if obj.id in visited:
                logger.debug(f"Skipping already visited group at {path}")
                continue
            visited.add(obj.id)
            stack.append((path, obj, iter(_link_names(obj, path))))
        elif isinstance(obj, h5py.Dataset):
            datasets.append(path)

    logger.debug(f"Found {len(datasets)} datasets in {len(visited)} groups")
    return datasets


def _link_names(group: h5py.Group, path: str) -> list[str]:
    try:
        return list(group.keys())
    except (OSError, RuntimeError, ValueError) as e:
        raise WalkError(f"unable to list links of group {path}: {e}") from e


def _get(group: h5py.Group, name: str, path: str) -> h5py.HLObject | None:
    try:
        return group.get(name)
    except (OSError, RuntimeError, ValueError) as e:
        raise WalkError(f"unable to open object {path}: {e}") from e
