"""Inbound event dispatch.

Classifies each Discord interaction or message, resolves exactly one
handler from the current registry snapshot, runs it, and contains any
failure at this boundary:

    SlashCommand  -> registry.commands[name]
    ButtonClick   -> registry.buttons.resolve(custom_id)
    ModalSubmit   -> registry.modals.resolve(custom_id)
    SelectMenu    -> registry.menus.resolve(custom_id)
    Message       -> registry.message_triggers[word after prefix]

Unmatched events are logged and dropped without a reply. A handler
that raises produces one error log entry and one sanitized reply whose
channel depends on the interaction's response state.
"""

import inspect
from enum import Enum
from typing import Any, Callable, Optional, Tuple

import discord
import structlog

from .handler_types import CapabilityKind
from .registry import Registry
from .responses import GUILD_ONLY_NOTICE, error_message

logger = structlog.get_logger("interlink.dispatch")


class EventKind(str, Enum):
    SLASH_COMMAND = "slash_command"
    BUTTON_CLICK = "button_click"
    MODAL_SUBMIT = "modal_submit"
    SELECT_MENU = "select_menu"
    MESSAGE = "message"


class ResponseState(str, Enum):
    """How far an interaction's response has progressed."""
    PENDING = "pending"      # neither deferred nor replied
    DEFERRED = "deferred"    # "thinking..." acknowledgement, no final reply
    REPLIED = "replied"


class DispatchOutcome(str, Enum):
    HANDLED = "handled"
    UNMATCHED = "unmatched"
    FAILED = "failed"
    RESTRICTED = "restricted"
    IGNORED = "ignored"


_COMPONENT_KINDS = {
    EventKind.BUTTON_CLICK: CapabilityKind.BUTTON,
    EventKind.MODAL_SUBMIT: CapabilityKind.MODAL,
    EventKind.SELECT_MENU: CapabilityKind.MENU,
}


def classify_interaction(interaction: discord.Interaction) -> Optional[EventKind]:
    """Map an interaction to the event kinds this dispatcher handles, else None."""
    data = interaction.data or {}
    if interaction.type == discord.InteractionType.application_command:
        if data.get("type", discord.AppCommandType.chat_input.value) == discord.AppCommandType.chat_input.value:
            return EventKind.SLASH_COMMAND
        return None
    if interaction.type == discord.InteractionType.component:
        component_type = data.get("component_type")
        if component_type == discord.ComponentType.button.value:
            return EventKind.BUTTON_CLICK
        if component_type == discord.ComponentType.string_select.value:
            return EventKind.SELECT_MENU
        return None
    if interaction.type == discord.InteractionType.modal_submit:
        return EventKind.MODAL_SUBMIT
    return None


def response_state(interaction: discord.Interaction) -> ResponseState:
    response = interaction.response
    if not response.is_done():
        return ResponseState.PENDING
    if response.type == discord.InteractionResponseType.deferred_channel_message:
        return ResponseState.DEFERRED
    # A deferred component update has no acknowledgement message to edit
    return ResponseState.REPLIED


async def _call(execute: Callable[..., Any], *args: Any) -> None:
    result = execute(*args)
    if inspect.isawaitable(result):
        await result


class Dispatcher:
    """Routes inbound events to registered handlers.

    Args:
        registry_provider: Returns the current Registry snapshot. Read
            once per event, so an event is served entirely from one
            snapshot even if a reload swaps it mid-flight.
        prefix: Text-command prefix for message triggers.
        support_url: Optional support link attached to error replies.
    """

    def __init__(
        self,
        registry_provider: Callable[[], Registry],
        prefix: str = "!",
        support_url: Optional[str] = None,
    ):
        self._registry = registry_provider
        self.prefix = prefix
        self.support_url = support_url

    async def dispatch_interaction(self, interaction: discord.Interaction) -> DispatchOutcome:
        kind = classify_interaction(interaction)
        if kind is None:
            logger.debug("interaction_ignored", interaction_type=str(interaction.type))
            return DispatchOutcome.IGNORED

        identifier, handler = self._resolve(kind, interaction, self._registry())
        if handler is None:
            logger.warning("handler_not_found", kind=kind.value, identifier=identifier)
            return DispatchOutcome.UNMATCHED

        logger.debug("dispatching", kind=kind.value, identifier=identifier, source=handler.source)
        try:
            await _call(handler.execute, interaction)
        except Exception as e:
            logger.error(
                "handler_execution_failed",
                kind=kind.value,
                identifier=identifier,
                interaction_id=interaction.id,
                source=handler.source,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            await self._send_interaction_error(interaction)
            return DispatchOutcome.FAILED
        return DispatchOutcome.HANDLED

    def _resolve(
        self, kind: EventKind, interaction: discord.Interaction, registry: Registry
    ) -> Tuple[str, Any]:
        data = interaction.data or {}
        if kind is EventKind.SLASH_COMMAND:
            name = data.get("name", "")
            return name, registry.get_command(name)
        custom_id = data.get("custom_id", "")
        table = registry.component_table(_COMPONENT_KINDS[kind])
        return custom_id, table.resolve(custom_id)

    async def _send_interaction_error(self, interaction: discord.Interaction) -> None:
        try:
            state = response_state(interaction)
            if state is ResponseState.DEFERRED:
                await interaction.edit_original_response(
                    **error_message(support_url=self.support_url)
                )
            elif state is ResponseState.PENDING:
                await interaction.response.send_message(
                    **error_message(support_url=self.support_url, ephemeral=True)
                )
            else:
                await interaction.followup.send(
                    **error_message(support_url=self.support_url, ephemeral=True)
                )
        except Exception as e:
            logger.error(
                "error_response_failed",
                interaction_id=interaction.id,
                error=str(e),
                error_type=type(e).__name__,
            )

    async def dispatch_message(self, message: discord.Message, *_: Any, event: str = "message") -> DispatchOutcome:
        """Run the message trigger named by ``message``, if any.

        Args:
            message: Incoming message.
            event: Bus event the message arrived on; only triggers bound
                to that event are eligible.
        """
        if message.author.bot:
            return DispatchOutcome.IGNORED

        content = message.content or ""
        prefix = self.prefix.lower()
        lowered = content.lower()
        if not lowered.startswith(prefix):
            return DispatchOutcome.IGNORED

        words = content[len(prefix):].split(maxsplit=1)
        word = words[0] if words else ""
        trigger = self._registry().get_message_trigger(word) if word else None
        if (
            trigger is None
            or trigger.event != event
            or not lowered.startswith(prefix + trigger.name.lower())
        ):
            logger.warning("handler_not_found", kind=EventKind.MESSAGE.value, identifier=word)
            return DispatchOutcome.UNMATCHED

        if message.guild is None:
            try:
                await message.reply(GUILD_ONLY_NOTICE)
            except Exception as e:
                logger.error("error_response_failed", message_id=message.id, error=str(e))
            return DispatchOutcome.RESTRICTED

        try:
            await _call(trigger.execute, message)
        except Exception as e:
            logger.error(
                "handler_execution_failed",
                kind=EventKind.MESSAGE.value,
                identifier=trigger.name,
                message_id=message.id,
                source=trigger.source,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            try:
                await message.reply(**error_message(support_url=self.support_url))
            except Exception as reply_error:
                logger.error(
                    "error_response_failed",
                    message_id=message.id,
                    error=str(reply_error),
                    error_type=type(reply_error).__name__,
                )
            return DispatchOutcome.FAILED
        return DispatchOutcome.HANDLED
