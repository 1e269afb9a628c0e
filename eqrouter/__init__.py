"""Equilibrium Router - no-arbitrage trade solver for constant-product pool networks."""

from eqrouter.routing.router import EquilibriumRouter

__version__ = "0.1.0"
__all__ = ["EquilibriumRouter", "__version__"]
