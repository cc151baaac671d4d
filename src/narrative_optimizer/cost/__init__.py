"""Cost estimation and daily budget tracking."""

from .budget import BudgetStatus, BudgetTracker
from .estimator import PRICES, CostEstimator

__all__ = ["BudgetStatus", "BudgetTracker", "PRICES", "CostEstimator"]
