"""Solver constants for the equilibrium router.

Centralizes the numerical parameters of the no-arbitrage solver.
"""

# Relative price change below which a Gauss-Seidel sweep counts as converged
TOLERANCE = 1e-12

# Hard cap on solver sweeps; reaching it returns the best-effort prices
MAX_ITERATIONS = 20_000

# Token whose price is pinned to 1.0 after each solve
REFERENCE_TOKEN = 0

# Price every token starts from before the first solve
INITIAL_PRICE = 1.0

# Supported geometric-liquidity storage layouts
LAYOUT_SPARSE = "sparse"
LAYOUT_DENSE = "dense"
LAYOUTS = (LAYOUT_SPARSE, LAYOUT_DENSE)
