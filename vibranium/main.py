"""Vibranium bot entry point."""

import logging

from vibranium.config import settings

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
)
logger = logging.getLogger(__name__)


def main() -> None:
    """Start the bot on Slack."""
    from vibranium.slack.app import run_slack

    if not settings.slack_bot_token:
        logger.warning("SLACK_BOT_TOKEN is empty; Slack calls will fail")

    logger.info(
        "Starting Vibranium on Slack (%s, model %s)...",
        "socket mode" if settings.socket_mode() else f"http :{settings.port}",
        settings.chat_model,
    )
    run_slack()


if __name__ == "__main__":
    main()
