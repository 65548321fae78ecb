"""API routers, one per resource family."""

from strata.api.routes import budgets, levies, payments, reports

__all__ = ["budgets", "levies", "payments", "reports"]
