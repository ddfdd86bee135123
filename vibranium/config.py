"""Application settings loaded from environment variables."""

import os

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """Vibranium configuration. All values come from environment variables."""

    # Slack
    slack_bot_token: str = Field(default="")
    slack_app_token: str = Field(default="")
    slack_signing_secret: str = Field(default="")
    port: int = Field(default=3000)

    # OpenAI (embeddings, and completions when chat_provider=openai)
    openai_api_key: str = Field(default="")
    embedding_model: str = Field(default="text-embedding-3-small")
    embedding_dimensions: int = Field(default=1536)

    # Anthropic
    anthropic_api_key: str = Field(default="")

    # Completions
    chat_provider: str = Field(default="openai")
    chat_model: str = Field(default="gpt-4o-mini")
    max_tokens: int = Field(default=1024)

    # Pinecone
    pinecone_api_key: str = Field(default="")
    pinecone_index: str = Field(default="vibranium-slack-bot")
    pinecone_cloud: str = Field(default="aws")
    pinecone_region: str = Field(default="us-east-1")
    # Serverless indexes reject metadata-filtered deletes
    pinecone_filtered_delete: bool = Field(default=False)

    # Memory
    similarity_threshold: float = Field(default=0.5)
    keyword_top_k: int = Field(default=100)
    recent_memory_count: int = Field(default=3)
    backfill_page_size: int = Field(default=500)

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

    def memory_backend(self) -> str:
        """Return which vector backend to use: "pinecone" or "memory"."""
        if self.pinecone_api_key.strip():
            return "pinecone"
        return "memory"

    def socket_mode(self) -> bool:
        """Socket Mode is used whenever an app-level token is configured."""
        return bool(self.slack_app_token.strip())


settings = Settings()
