# Copyright (c) 2025.
# This file is part of BundleSpace, released under the MIT License.
"""
Ordered chain of bundle-space levels.

`BundleSpaceSequence` owns the nodes of one hierarchy, coarsest first.
Each appended `SpaceInformation` becomes a `BundleSpace` whose Base is the
Bundle of the previous level; node identifiers are handed out in build
order, so two sequences never interfere with each other.

Example
-------
    infos = [SpaceInformation(RealVectorSpace.box(2)),
             SpaceInformation(RealVectorSpace.box(4))]
    seq = BundleSpaceSequence.from_space_infos(infos)
    x, valid = seq.sample()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Tuple

import jax
import jax.numpy as jnp

from bundlespace.core.errors import BundleSpaceError
from bundlespace.core.types import NodeId
from bundlespace.core.validity import SpaceInformation
from .bundle_space import BundleSpace

logger = logging.getLogger(__name__)


@dataclass
class SequenceConfig:
    """
    Configuration for building and sampling a `BundleSpaceSequence`.

    skip_invalid_levels:
        If True, a level whose construction fails with a `BundleSpaceError`
        is logged and left out; the next level is built on the last valid
        one. If False, the error propagates.
    seed:
        Seed of the PRNG key used by `sample()` when no key is given.
    """
    skip_invalid_levels: bool = False
    seed: int = 0


class BundleSpaceSequence:
    """Index-addressable chain of `BundleSpace` nodes, coarsest first."""

    def __init__(self, config: Optional[SequenceConfig] = None):
        self.config = config or SequenceConfig()
        self._levels: List[BundleSpace] = []
        self._skipped: List[int] = []
        self._appended = 0
        self._key = jax.random.PRNGKey(self.config.seed)

    @classmethod
    def from_space_infos(
        cls,
        infos: Iterable[SpaceInformation],
        config: Optional[SequenceConfig] = None,
    ) -> "BundleSpaceSequence":
        seq = cls(config)
        for info in infos:
            seq.append(info)
        return seq

    def append(self, info: SpaceInformation) -> Optional[BundleSpace]:
        """
        Build the next level on top of the current finest one.

        Returns the new node, or None if the level was skipped.
        """
        index = self._appended
        self._appended += 1
        parent = self._levels[-1] if self._levels else None
        try:
            node = BundleSpace(info, parent=parent, node_id=self.next_id)
        except BundleSpaceError as exc:
            if not self.config.skip_invalid_levels:
                raise
            logger.warning("Skipping level input %d (%s): %s", index, info.space, exc)
            self._skipped.append(index)
            return None
        self._levels.append(node)
        return node

    @property
    def next_id(self) -> NodeId:
        return NodeId(len(self._levels))

    @property
    def skipped(self) -> List[int]:
        """Indices (in append order) of inputs that were skipped."""
        return list(self._skipped)

    def __len__(self) -> int:
        return len(self._levels)

    def __getitem__(self, level: int) -> BundleSpace:
        return self._levels[level]

    def __iter__(self) -> Iterator[BundleSpace]:
        return iter(self._levels)

    def parent(self, level: int) -> Optional[BundleSpace]:
        return self._levels[level].parent

    def child(self, level: int) -> Optional[BundleSpace]:
        return self._levels[level].child

    @property
    def coarsest(self) -> BundleSpace:
        self._require_levels()
        return self._levels[0]

    @property
    def finest(self) -> BundleSpace:
        self._require_levels()
        return self._levels[-1]

    def _require_levels(self) -> None:
        if not self._levels:
            raise IndexError("BundleSpaceSequence is empty")

    def sample(self, key: Optional[jax.Array] = None) -> Tuple[jnp.ndarray, bool]:
        """
        Sample from the finest level.

        Without an explicit key, the sequence's own key (seeded from the
        config) is split and advanced on every call.
        """
        if key is None:
            self._key, key = jax.random.split(self._key)
        return self.finest.sample(key)

    def importances(self) -> List[float]:
        return [node.get_importance() for node in self._levels]

    def __str__(self) -> str:
        return "\n".join(f"{node.level}: {node}" for node in self._levels)
