"""Order lifecycle schemas - batch results and API responses"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class OrderFailure(BaseModel):
    order_id: Optional[int] = None
    user_id: Optional[int] = None
    error: str


class CheckResult(BaseModel):
    """Outcome of one lifecycle check over its batch of matching orders"""

    name: str
    matched: int = 0
    succeeded: int = 0
    skipped: int = 0
    notified: int = 0
    delivery_failures: int = 0  # Isolated notification failures, never fatal
    failed: list[OrderFailure] = Field(default_factory=list)

    def record_failure(self, error: Exception, order_id: int = None, user_id: int = None):
        self.failed.append(
            OrderFailure(order_id=order_id, user_id=user_id, error=f"{type(error).__name__}: {error}")
        )

    @property
    def ok(self) -> bool:
        return not self.failed


class ReminderContext(BaseModel):
    """Order details carried into every reminder for that order"""

    order_id: int
    order_number: str
    customer_name: str
    reference_time: datetime  # scheduled_date or start_time, depending on reminder type
    recipient_user_ids: list[int]


class StatusCheckSummary(BaseModel):
    started_at: str
    finished_at: str
    total_updated: int
    checks: dict[str, CheckResult]


class SchedulerStatus(BaseModel):
    is_running: bool
    task_count: int
    next_run_description: str
    currently_processing: dict[str, bool]
