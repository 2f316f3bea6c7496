# Copyright (c) 2025.
# This file is part of BundleSpace, released under the MIT License.
"""
Feasibility predicates and the (space, predicate) pairing.

A bundle-space level is planned on a pair (X, phi): a configuration space
X and a feasibility predicate phi deciding which states are valid. This
module provides:

    • `ValidityChecker`       – base class: `is_valid(state)` plus an
                                equality test between predicates
    • `AllValidChecker`       – every state is valid
    • `BoundsValidityChecker` – valid iff the state lies inside the bounds
    • `PredicateChecker`      – wraps a plain Python callable
    • `SpaceInformation`      – the (space, checker) pair each level owns

Equality matters: when a Base and a Bundle of equal shape carry equal
predicates, the Base is an exact copy of the Bundle (identity); when the
predicates differ, the Base is a *constrained relaxation* of the Bundle.
Two checkers are equal when they are the same object, or the same kind of
predicate with the same parameters.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

import jax.numpy as jnp

from .spaces import StateSpace

StatePredicate = Callable[[jnp.ndarray], bool]


class ValidityChecker:
    """Feasibility predicate over the states of one space."""

    def is_valid(self, state: jnp.ndarray) -> bool:
        raise NotImplementedError

    def __call__(self, state: jnp.ndarray) -> bool:
        return self.is_valid(state)


class AllValidChecker(ValidityChecker):
    def is_valid(self, state: jnp.ndarray) -> bool:
        return True

    def __eq__(self, other: object) -> bool:
        return type(other) is AllValidChecker

    def __hash__(self) -> int:
        return hash(AllValidChecker)

    def __repr__(self) -> str:
        return "AllValidChecker()"


@dataclass(eq=True, frozen=True)
class BoundsValidityChecker(ValidityChecker):
    """Valid iff `space.satisfies_bounds(state)`."""
    space: StateSpace

    def is_valid(self, state: jnp.ndarray) -> bool:
        return self.space.satisfies_bounds(state)


@dataclass(eq=False)
class PredicateChecker(ValidityChecker):
    """
    Wrap an arbitrary callable `fn(state) -> bool`.

    Two PredicateCheckers are equal when they wrap the same callable.
    """
    fn: StatePredicate

    def is_valid(self, state: jnp.ndarray) -> bool:
        return bool(self.fn(state))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PredicateChecker):
            return NotImplemented
        return self.fn is other.fn

    def __hash__(self) -> int:
        return hash(self.fn)


@dataclass
class SpaceInformation:
    """
    A configuration space together with its feasibility predicate.

    - space: descriptor of the configuration space
    - validity_checker: predicate deciding which states are feasible
    """
    space: StateSpace
    validity_checker: ValidityChecker = field(default_factory=AllValidChecker)

    @property
    def dimension(self) -> int:
        return self.space.dimension

    def is_valid(self, state: jnp.ndarray) -> bool:
        return bool(self.validity_checker.is_valid(state))
