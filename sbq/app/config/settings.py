from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from sbq.app.constants import (
    DEFAULT_BATCH_LIMIT,
    DEFAULT_PEEK_WAIT_SECONDS,
    DEFAULT_SESSION_IDLE_SECONDS,
    MAX_BATCH_LIMIT,
)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    connection_string: str = Field("", validation_alias="SBQ_CONNECTION_STRING")
    queue_name: str = Field("", validation_alias="SBQ_QUEUE_NAME")
    debug: bool = Field(False, validation_alias="SBQ_DEBUG")

    gateway_backend: str = Field("servicebus", validation_alias="SBQ_GATEWAY_BACKEND")

    prefix_session_id: bool = Field(False, validation_alias="SBQ_PREFIX_SESSION_ID")
    prefix_message_id: bool = Field(False, validation_alias="SBQ_PREFIX_MESSAGE_ID")
    correlation_id: str = Field("", validation_alias="SBQ_CORRELATION_ID")

    receive_batch_limit: int = Field(
        DEFAULT_BATCH_LIMIT,
        ge=1,
        le=MAX_BATCH_LIMIT,
        validation_alias="SBQ_RECEIVE_BATCH_LIMIT",
    )
    # None: a session-less receive waits until a message arrives.
    receive_wait_seconds: float | None = Field(None, gt=0, validation_alias="SBQ_RECEIVE_WAIT_SECONDS")
    # An empty batch after this long means the accepted session is drained.
    session_idle_seconds: float = Field(
        DEFAULT_SESSION_IDLE_SECONDS,
        gt=0,
        validation_alias="SBQ_SESSION_IDLE_SECONDS",
    )
    peek_wait_seconds: float = Field(DEFAULT_PEEK_WAIT_SECONDS, gt=0, validation_alias="SBQ_PEEK_WAIT_SECONDS")
