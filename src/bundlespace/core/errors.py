# Copyright (c) 2025.
# This file is part of BundleSpace, released under the MIT License.
"""
Exceptions raised while building and using bundle spaces.

All recognized failure modes are configuration mistakes (a malformed or
unsupported pair of nested spaces), so they are raised to the caller and
never retried. Every exception derives from :class:`BundleSpaceError`, which
itself is a ``ValueError``: code that already guards against bad inputs with
``except ValueError`` keeps working.
"""

from __future__ import annotations


class BundleSpaceError(ValueError):
    """Base class for bundle-space construction and projection failures."""


class UnrecognizedDecomposition(BundleSpaceError):
    """No catalog pattern matches the given Bundle / Base shapes."""


class InvalidDimensionOrdering(BundleSpaceError):
    """Base is larger than Bundle, or the two disagree on component counts."""


class DegenerateSpace(BundleSpaceError):
    """A participating space has zero or infinite measure."""


class ProjectionUnsupported(BundleSpaceError):
    """Fiber projection or merge requested on a component without a fiber."""


class SolveUnsupported(RuntimeError):
    """A single bundle-space level cannot be solved on its own."""
