"""Configuration management using Pydantic Settings."""

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# SQS caps both the per-message delivery delay and the visibility timeout
SQS_MAX_DELAY_SECONDS = 15 * 60
SQS_MAX_VISIBILITY_TIMEOUT_SECONDS = 12 * 60 * 60
# The visibility limit counts from receipt, a deferral happens up to one
# Lambda timeout (15 minutes) later
VISIBILITY_TIMEOUT_MARGIN_SECONDS = 15 * 60
MAX_BACKOFF_SECONDS = SQS_MAX_VISIBILITY_TIMEOUT_SECONDS - VISIBILITY_TIMEOUT_MARGIN_SECONDS


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="EVENT_RELAY_",
        populate_by_name=True,
        extra="ignore",
    )

    # Application
    app_name: str = "event-relay"
    version: str = "0.1.0"

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format_json: bool = Field(
        default=True,
        description="Use JSON logging format (False for human-readable logs in development)",
    )

    # Queue
    event_queue_url: str = Field(
        default="",
        # EVENT_QUEUE is what the producers' deployment templates export
        validation_alias=AliasChoices("event_relay_event_queue_url", "event_queue"),
        description="SQS queue URL that requeued and published events are sent to",
    )
    aws_region: str = Field(
        default="us-east-1",
        validation_alias=AliasChoices("event_relay_aws_region", "aws_region"),
        description="AWS region of the event queue",
    )
    sqs_endpoint_url: str | None = Field(
        default=None,
        description="Override the SQS endpoint (e.g. http://localhost:9324 for ElasticMQ)",
    )

    # Backoff
    backoff_base_seconds: int = Field(
        default=30,
        ge=1,
        description="Visibility delay applied to the first deferral of a message",
    )
    backoff_max_seconds: int = Field(
        default=MAX_BACKOFF_SECONDS,
        ge=1,
        le=MAX_BACKOFF_SECONDS,
        description="Ceiling for the visibility delay between attempts (just under 12 hours)",
    )
    requeue_delay_seconds: int = Field(
        default=60,
        ge=0,
        le=SQS_MAX_DELAY_SECONDS,
        description="Delivery delay of continuation messages published on partial success",
    )

    # Processing
    processor: str = Field(
        default="event_relay.processing.processor:log_only_processor",
        description="Import path ('package.module:function') of the event processor",
    )

    processor_factory: str | None = Field(
        default=None,
        description=(
            "Import path of a factory that receives the encryption key provider and "
            "returns the event processor; takes precedence over processor"
        ),
    )

    # Secrets
    secret_encryption_key_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "event_relay_secret_encryption_key_id", "secret_encryption_key"
        ),
        description="Secrets Manager id of the webhook secret encryption key",
    )

    # Sentry
    sentry_dsn: str | None = Field(
        default=None,
        validation_alias=AliasChoices("event_relay_sentry_dsn", "sentry_dsn"),
        description="Sentry DSN; error reporting is disabled when unset",
    )


settings = Settings()
