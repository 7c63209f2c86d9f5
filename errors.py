"""Exception types raised by the planner engine."""


class RetirementPlannerError(Exception):
    """Base exception for all planner errors."""
    pass


class ValidationError(RetirementPlannerError):
    """Raised when inputs are malformed or out of range."""
    pass


class CalculationError(RetirementPlannerError):
    """Raised when a calculation cannot produce a meaningful number."""
    pass


class RateFetchError(RetirementPlannerError):
    """Raised by rate fetchers when no live rates could be retrieved."""
    pass
