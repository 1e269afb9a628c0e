"""Data types for trade results."""

from __future__ import annotations

from dataclasses import dataclass

from eqrouter.graph.token_graph import EquilibriumResult


@dataclass(frozen=True)
class TradeResult:
    """Result of routing a trade through the equilibrium graph."""

    input_token: str
    output_token: str
    amount_in: float
    amount_out: float
    # Gauss-Seidel sweeps used by the solve
    iterations: int
    # Largest relative price change in the final sweep
    max_relative_change: float
    converged: bool

    @classmethod
    def from_equilibrium(
        cls,
        input_token: str,
        output_token: str,
        amount_in: float,
        equilibrium: EquilibriumResult,
    ) -> TradeResult:
        return cls(
            input_token=input_token,
            output_token=output_token,
            amount_in=amount_in,
            amount_out=equilibrium.amount_out,
            iterations=equilibrium.iterations,
            max_relative_change=equilibrium.max_relative_change,
            converged=equilibrium.converged,
        )

    @property
    def effective_price(self) -> float:
        """Input paid per unit of output received (inf when nothing comes out)."""
        if self.amount_out <= 0:
            return float("inf")
        return self.amount_in / self.amount_out
