"""Trade routing over the equilibrium graph.

Module structure:
- router.py: EquilibriumRouter facade class
- token_index.py: TokenIndex name lookup
- types.py: TradeResult dataclass
"""

from eqrouter.routing.router import EquilibriumRouter
from eqrouter.routing.token_index import TokenIndex
from eqrouter.routing.types import TradeResult

__all__ = ["EquilibriumRouter", "TokenIndex", "TradeResult"]
