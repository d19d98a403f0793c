"""Activity logging package."""

from financeflow.activity.logger import ActivityLogger, create_correlation_id

__all__ = ["ActivityLogger", "create_correlation_id"]
