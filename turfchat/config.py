"""Application settings loaded from environment variables."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from turfchat.chat.models import ChatIdentity


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """TurfBook chat configuration. All values come from environment variables."""

    # REST API
    api_base_url: str = Field(default="http://localhost:8080/api")
    api_token: str = Field(default="")
    request_timeout_seconds: float = Field(default=10.0)

    # Socket.IO push channel (empty disables push; polling still runs)
    socket_url: str = Field(default="http://localhost:8080")

    # Session identity
    current_user_id: str = Field(default="")
    current_user_role: str = Field(default="player")

    # Chat synchronisation
    chat_poll_interval_seconds: float = Field(default=5.0, gt=0)
    chat_typing_timeout_seconds: float = Field(default=1.5, gt=0)

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(env_file=_env_file(), env_file_encoding="utf-8")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)

    def identity(self) -> ChatIdentity:
        """Build the session identity from CURRENT_USER_ID / CURRENT_USER_ROLE."""
        from turfchat.chat.models import ChatIdentity

        user_id = self.current_user_id.strip() or None
        return ChatIdentity(user_id=user_id, role=self.current_user_role or "player")


settings = Settings()
