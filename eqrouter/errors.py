"""Equilibrium router error classes."""


class RouterError(Exception):
    """Base error for equilibrium router operations."""

    pass


class InvalidPoolError(RouterError, ValueError):
    """Pool input cannot form a valid token graph."""

    pass


class UnknownTokenError(RouterError, LookupError):
    """Token name is not present in the token index."""

    pass


class InvalidTradeError(RouterError, ValueError):
    """Trade parameters violate a precondition (same token, bad amount)."""

    pass


class DisconnectedTokensError(InvalidTradeError):
    """Input and output tokens are not connected by any chain of pools."""

    pass


class NumericalDegeneracyError(RouterError, ArithmeticError):
    """Solver produced a non-finite output amount."""

    pass


class EquilibriumNotConvergedError(RouterError):
    """Gauss-Seidel iteration hit the sweep cap before reaching tolerance."""

    pass
