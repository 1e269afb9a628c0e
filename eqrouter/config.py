"""Router configuration."""

from __future__ import annotations

import math
import os
from collections.abc import Mapping
from dataclasses import dataclass

from eqrouter.constants import LAYOUT_SPARSE, LAYOUTS, MAX_ITERATIONS, TOLERANCE

_TRUE_VALUES = ("true", "1", "yes")


@dataclass(frozen=True)
class RouterConfig:
    """Centralized configuration for the equilibrium solver.

    Attributes:
        tolerance: Maximum relative price change at which a sweep counts as
            converged (default: 1e-12)
        max_iterations: Hard cap on Gauss-Seidel sweeps per trade (default: 20,000)
        layout: Geometric-liquidity storage, "sparse" adjacency maps or a
            "dense" pairwise table (default: "sparse")
        reference_token: Name of the token whose price is pinned to 1.0 after
            each solve. None pins the first indexed token.
        raise_on_non_convergence: If True, a trade that hits the sweep cap is
            rolled back and raises. If False, the best-effort result is returned.
    """

    tolerance: float = TOLERANCE
    max_iterations: int = MAX_ITERATIONS
    layout: str = LAYOUT_SPARSE
    reference_token: str | None = None
    raise_on_non_convergence: bool = False

    def __post_init__(self) -> None:
        if not (math.isfinite(self.tolerance) and self.tolerance > 0):
            raise ValueError(f"tolerance must be a positive finite number, got {self.tolerance}")
        if self.max_iterations < 1:
            raise ValueError(f"max_iterations must be at least 1, got {self.max_iterations}")
        if self.layout not in LAYOUTS:
            raise ValueError(f"Unknown layout {self.layout!r} (expected one of {LAYOUTS})")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> RouterConfig:
        """Build a config from environment variables.

        Variables (all optional, defaults as in the dataclass):
        - EQROUTER_TOLERANCE
        - EQROUTER_MAX_ITERATIONS
        - EQROUTER_LAYOUT
        - EQROUTER_REFERENCE_TOKEN
        - EQROUTER_STRICT_CONVERGENCE

        Args:
            environ: Mapping to read from (default: os.environ)

        Raises:
            ValueError: If a variable cannot be parsed
        """
        env = os.environ if environ is None else environ
        return cls(
            tolerance=float(env.get("EQROUTER_TOLERANCE", TOLERANCE)),
            max_iterations=int(env.get("EQROUTER_MAX_ITERATIONS", MAX_ITERATIONS)),
            layout=env.get("EQROUTER_LAYOUT", LAYOUT_SPARSE).lower(),
            reference_token=env.get("EQROUTER_REFERENCE_TOKEN") or None,
            raise_on_non_convergence=(
                env.get("EQROUTER_STRICT_CONVERGENCE", "false").lower() in _TRUE_VALUES
            ),
        )


# Default configuration instance
DEFAULT_ROUTER_CONFIG = RouterConfig()
