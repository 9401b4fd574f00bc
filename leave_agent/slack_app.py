"""
Slack transport.

Bolt hands every event to a listener running on its worker pool, so each
message is processed on its own thread. The analytics command is
acknowledged immediately and answered from a lazy listener.
"""

import logging
from typing import Any

from slack_bolt import App
from slack_bolt.adapter.socket_mode import SocketModeHandler
from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError

from leave_agent.errors import (
    LeaveAgentError,
    NoDataCondition,
    QueryUnresolvedError,
    TransportError,
)
from leave_agent.formatting import (
    GENERIC_FAILURE,
    confirmation_text,
    fallback_text,
    notice_blocks,
    rejection_text,
    report_blocks,
)
from leave_agent.pipeline import InboundMessage, OutcomeStatus
from leave_agent.services import Services
from leave_agent.utils.request_context import event_context

logger = logging.getLogger(__name__)

RECORDING_FAILURE = "❌ Sorry, I couldn't record that right now. Please try again later."


class SlackTransport:
    """Outbound Slack calls. Every Slack API failure becomes a TransportError."""

    def __init__(self, client: WebClient):
        self.client = client

    def post_message(self, channel: str, text: str, blocks: list[dict] | None = None) -> None:
        try:
            self.client.chat_postMessage(channel=channel, text=text, blocks=blocks)
        except SlackApiError as e:
            raise TransportError(f"chat.postMessage to {channel} failed: {e}") from e

    def post_ephemeral(self, channel: str, user: str, text: str) -> None:
        try:
            self.client.chat_postEphemeral(channel=channel, user=user, text=text)
        except SlackApiError as e:
            raise TransportError(f"chat.postEphemeral to {user} in {channel} failed: {e}") from e

    def username_for(self, user_id: str) -> str:
        try:
            response = self.client.users_info(user=user_id)
        except SlackApiError as e:
            raise TransportError(f"users.info for {user_id} failed: {e}") from e
        return response["user"]["name"]


def message_event_id(event: dict[str, Any]) -> str:
    """Slack message timestamps are unique per channel."""
    return f"{event.get('channel')}:{event.get('ts')}"


def should_skip(event: dict[str, Any], bot_user_id: str | None) -> bool:
    """Only plain, top-level messages written by people are interpreted."""
    if event.get("subtype") or event.get("bot_id") or event.get("thread_ts"):
        return True
    if not event.get("user") or not event.get("text"):
        return True
    return bot_user_id is not None and event["user"] == bot_user_id


class SlackHandlers:
    def __init__(self, services: Services):
        self.services = services

    def on_message(self, event: dict[str, Any], context, client: WebClient) -> None:
        if should_skip(event, context.get("bot_user_id")):
            logger.debug("Skipping non-user message")
            return

        transport = SlackTransport(client)
        message = InboundMessage(
            event_id=message_event_id(event),
            text=event["text"],
            user_id=event["user"],
            channel_id=event["channel"],
            timestamp=event.get("ts"),
        )

        with event_context(message.event_id, message.user_id):
            try:
                outcome = self.services.leave_pipeline.handle_message(
                    message, transport.username_for
                )
            except TransportError as e:
                logger.error(f"Dropping event, Slack lookup failed: {e}")
                return
            except LeaveAgentError:
                self._notify(
                    transport.post_ephemeral, message.channel_id, message.user_id, RECORDING_FAILURE
                )
                return

            if outcome.status == OutcomeStatus.RECORDED:
                text = confirmation_text(outcome.leave)
                self._notify(transport.post_message, message.channel_id, text)
            elif outcome.status == OutcomeStatus.REJECTED:
                text = rejection_text(outcome.message)
                self._notify(transport.post_message, message.channel_id, text)

    def ack_query(self, ack) -> None:
        ack()

    def run_query(self, command: dict[str, Any], client: WebClient) -> None:
        transport = SlackTransport(client)
        channel_id = command["channel_id"]
        user_id = command["user_id"]
        text = command.get("text", "")

        with event_context(f"command:{command.get('trigger_id', '-')}", user_id):
            try:
                report = self.services.analytics_pipeline.handle_query(text)
            except NoDataCondition as e:
                self._notify(transport.post_message, channel_id, str(e), notice_blocks(str(e)))
                return
            except QueryUnresolvedError as e:
                self._notify(transport.post_ephemeral, channel_id, user_id, f"❌ {e}")
                return
            except LeaveAgentError as e:
                logger.error(f"Analytics command failed: text={text!r}: {e}", exc_info=True)
                self._notify(transport.post_ephemeral, channel_id, user_id, GENERIC_FAILURE)
                return

            try:
                transport.post_message(channel_id, fallback_text(report), report_blocks(report))
            except TransportError as e:
                logger.error(f"Failed to post query response: {e}")
                self._notify(transport.post_ephemeral, channel_id, user_id, GENERIC_FAILURE)

    @staticmethod
    def _notify(send, *args) -> None:
        try:
            send(*args)
        except TransportError as e:
            logger.error(f"Slack notification dropped: {e}")


def create_slack_app(services: Services) -> App:
    settings = services.settings
    app = App(
        token=settings.slack_bot_token,
        signing_secret=settings.slack_signing_secret or None,
    )
    handlers = SlackHandlers(services)

    app.event("message")(handlers.on_message)
    app.command(settings.query_command)(ack=handlers.ack_query, lazy=[handlers.run_query])
    return app


def start_socket_mode(services: Services) -> SocketModeHandler:
    """Connect to Slack in the background and return the handler for shutdown."""
    handler = SocketModeHandler(create_slack_app(services), services.settings.slack_app_token)
    handler.connect()
    logger.info("Connected to Slack in Socket Mode")
    return handler


if __name__ == "__main__":
    from leave_agent.config import settings as app_settings
    from leave_agent.observability import configure_logging
    from leave_agent.services import get_services

    configure_logging(app_settings.log_level)
    SocketModeHandler(create_slack_app(get_services()), app_settings.slack_app_token).start()
