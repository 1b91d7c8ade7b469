"""Parsing utilities for git ref listings and course branch names."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


# Matched against the full ref path, e.g. ``refs/remotes/origin/01-intro``.
DEFAULT_BRANCH_PATTERN = r"/\d\d-"


def parse_ref_listing(output: str) -> list[str]:
    """Split `git for-each-ref` output into ref names, skipping blank lines."""
    return [line.strip() for line in output.splitlines() if line.strip()]


def short_branch_name(ref: str) -> str:
    """Strip every path segment up to the last ``/`` from ``ref``."""
    return ref.rsplit("/", 1)[-1]


def select_course_branches(
    refs: Iterable[str],
    pattern: str = DEFAULT_BRANCH_PATTERN,
) -> list[str]:
    """Return the sorted, deduplicated short names of refs matching ``pattern``.

    The match is a search anywhere in the full ref path, so local branches
    (``refs/heads/01-intro``) and remote-tracking branches
    (``refs/remotes/origin/01-intro``) collapse onto the same short name.
    Any ref whose path contains ``/NN-`` is kept, including names outside the
    lesson convention such as ``release/20-2024``.
    """
    regex = re.compile(pattern)
    names = {short_branch_name(ref) for ref in refs if regex.search(ref)}
    return sorted(names)


__all__ = [
    "DEFAULT_BRANCH_PATTERN",
    "parse_ref_listing",
    "select_course_branches",
    "short_branch_name",
]
