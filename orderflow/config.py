import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./orderflow.db")

# Redis / ARQ worker
REDIS_URL = os.getenv("REDIS_URL")
REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", "6379"))
REDIS_PASSWORD = os.getenv("REDIS_PASSWORD")
REDIS_SSL = os.getenv("REDIS_SSL", "false").lower() == "true"

ARQ_JOB_TIMEOUT = int(os.getenv("ARQ_JOB_TIMEOUT", "600"))
ARQ_KEEP_RESULT = int(os.getenv("ARQ_KEEP_RESULT", "3600"))

# Author of automatically generated order notes.
# When unset, the first ADMIN user (lowest id) is used.
SYSTEM_ACTOR_ID = int(os.getenv("SYSTEM_ACTOR_ID")) if os.getenv("SYSTEM_ACTOR_ID") else None

# Skip reminders that were already delivered to the same user for the same window
REMINDER_DEDUP_ENABLED = os.getenv("REMINDER_DEDUP_ENABLED", "true").lower() == "true"

# Cron schedule (all times UTC)
DAILY_CHECK_HOUR = int(os.getenv("DAILY_CHECK_HOUR", "0"))
DAILY_CHECK_MINUTE = int(os.getenv("DAILY_CHECK_MINUTE", "30"))
HOURLY_REMINDER_MINUTE = int(os.getenv("HOURLY_REMINDER_MINUTE", "15"))

# Lifecycle thresholds
OPEN_EXPIRY_DAYS = int(os.getenv("OPEN_EXPIRY_DAYS", "7"))
ACTIVE_EXPIRY_DAYS = int(os.getenv("ACTIVE_EXPIRY_DAYS", "14"))
OVERDUE_REMINDER_DAYS = int(os.getenv("OVERDUE_REMINDER_DAYS", "3"))
