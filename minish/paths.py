"""Search directories taken from the PATH entry of an environment."""

from __future__ import annotations

from collections.abc import Iterable


def find_path(env: Iterable[str]) -> str | None:
    """Return the value of the first ``PATH=`` entry, or None if there is none."""
    return next((entry[5:] for entry in env if entry.startswith("PATH=")), None)


def split_path(value: str) -> list[str]:
    """Split on ``:`` and drop empty pieces."""
    return [part for part in value.split(":") if part]


def paths_from_env(env: Iterable[str]) -> list[str] | None:
    """Return the PATH directories, each ending in ``/``; None when PATH is unset."""
    value = find_path(env)
    if value is None:
        return None
    return [d if d.endswith("/") else d + "/" for d in split_path(value)]