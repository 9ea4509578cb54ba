"""Scheduler exceptions"""


class OrderflowError(Exception):
    """Base class for scheduler errors"""

    pass


class JobAlreadyRunningError(OrderflowError):
    """Raised by manual triggers when the same job is already in progress"""

    def __init__(self, job_name: str):
        super().__init__(f"{job_name} already running")
        self.job_name = job_name


class StatusCheckError(OrderflowError):
    """Raised after a batch run in which one or more checks recorded failures"""

    def __init__(self, summary: dict):
        failed = [name for name, check in summary.get("checks", {}).items() if check.get("failed")]
        super().__init__(f"Status check finished with failures in: {', '.join(failed)}")
        self.summary = summary
