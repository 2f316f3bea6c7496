from __future__ import annotations

import logging
from dataclasses import dataclass

import jax
import jax.numpy as jnp

from bundlespace.core.spaces import RealVectorSpace
from bundlespace.core.validity import SpaceInformation, ValidityChecker
from bundlespace.multilevel.sequence import BundleSpaceSequence, SequenceConfig

EDGE_WIDTH = 0.1


@dataclass(frozen=True)
class HyperCubeChecker(ValidityChecker):
    """
    Narrow-passage predicate on the unit hypercube [0, 1]^n.

    Scanning coordinates from the last to the first, once a coordinate
    leaves the lower edge (q_i > edge_width) every earlier coordinate must
    sit on the upper edge (q_j >= 1 - edge_width). Free space is a thin
    corridor along the cube's edges from 0 to 1.
    """
    n_dim: int
    edge_width: float = EDGE_WIDTH

    def is_valid(self, state: jnp.ndarray) -> bool:
        found_max_dim = False
        for i in range(self.n_dim - 1, -1, -1):
            qi = float(state[i])
            if not found_max_dim:
                if qi > self.edge_width:
                    found_max_dim = True
            elif qi < 1.0 - self.edge_width:
                return False
        return True


def build_chain(dims=(2, 4, 6), seed: int = 0) -> BundleSpaceSequence:
    infos = [
        SpaceInformation(RealVectorSpace.box(n), HyperCubeChecker(n)) for n in dims
    ]
    return BundleSpaceSequence.from_space_infos(infos, SequenceConfig(seed=seed))


def main():
    logging.basicConfig(level=logging.INFO, format="%(name)s: %(message)s")

    seq = build_chain()
    print(seq)

    n_samples = 2000
    key = jax.random.PRNGKey(0)
    for k in jax.random.split(key, n_samples):
        seq.sample(k)

    print("\n=== Feasible sample ratio per level ===")
    for node in seq:
        ratio = node.total_feasible_samples / max(node.total_samples, 1)
        print(
            f"level {node.level} (R^{node.bundle_dimension}): "
            f"{node.total_feasible_samples}/{node.total_samples} = {ratio:.4f}, "
            f"importance {node.get_importance():.2e}"
        )


if __name__ == "__main__":
    main()
