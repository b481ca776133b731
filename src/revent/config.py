from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="REVENT_", env_file=".env", extra="ignore")

    env: str = "dev"
    host: str = "0.0.0.0"  # nosec B104 - intentional for container deployments
    port: int = 8080

    # Storage backend for cache entries, scheduled tasks and mirrored documents
    storage_backend: str = Field(default="memory", validation_alias="STORAGE_BACKEND")
    redis_url: str = Field(default="redis://localhost:6379/0", validation_alias="REDIS_URL")
    redis_prefix: str = Field(default="revent", validation_alias="REDIS_PREFIX")

    # GitHub content origin
    github_api_url: str = Field(default="https://api.github.com", validation_alias="GITHUB_API_URL")
    github_owner: str = Field(default="AppLabs-IIITK", validation_alias="GITHUB_OWNER")
    github_repo: str = Field(default="IIITK-Resources", validation_alias="GITHUB_REPO")
    github_branch: str = Field(default="main", validation_alias="GITHUB_BRANCH")
    github_token: str | None = Field(default=None, validation_alias="GITHUB_TOKEN")
    github_user_agent: str = Field(default="IIITK-Events-App", validation_alias="GITHUB_USER_AGENT")
    http_timeout: float = Field(default=10.0, validation_alias="HTTP_TIMEOUT")

    # Revalidation cache
    list_ttl_seconds: int = Field(default=60, validation_alias="LIST_TTL_SECONDS")
    tree_ttl_seconds: int = Field(default=0, validation_alias="TREE_TTL_SECONDS")

    # Delayed notification tasks
    tasks_project: str = Field(default="event-manager-dfd26", validation_alias="TASKS_PROJECT")
    tasks_location: str = Field(default="asia-south1", validation_alias="TASKS_LOCATION")
    tasks_queue: str = Field(default="event-notifications", validation_alias="TASKS_QUEUE")
    notify_before_minutes: int = Field(default=30, validation_alias="NOTIFY_BEFORE_MINUTES")
    dispatch_interval: float = Field(default=1.0, validation_alias="DISPATCH_INTERVAL")
    dispatch_batch_size: int = Field(default=50, validation_alias="DISPATCH_BATCH_SIZE")
    dispatcher_enabled: bool = Field(default=True, validation_alias="DISPATCHER_ENABLED")

    # Detached follow-up work
    background_workers: int = Field(default=4, validation_alias="BACKGROUND_WORKERS")
    background_queue_size: int = Field(default=1000, validation_alias="BACKGROUND_QUEUE_SIZE")

    # Notification delivery
    notifier_backend: str = Field(default="log", validation_alias="NOTIFIER_BACKEND")
    notifier_webhook_url: str | None = Field(default=None, validation_alias="NOTIFIER_WEBHOOK_URL")
    notification_topic: str = Field(default="general", validation_alias="NOTIFICATION_TOPIC")

    # Observability
    enable_metrics: bool = Field(default=True, validation_alias="ENABLE_METRICS")
    log_level: str = "INFO"

    @property
    def queue_path(self) -> str:
        """Fully qualified task queue path used as the task name prefix."""
        return (
            f"projects/{self.tasks_project}/locations/{self.tasks_location}"
            f"/queues/{self.tasks_queue}"
        )


settings = Settings()
