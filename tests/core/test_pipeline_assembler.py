"""Tests for registration of cross-cutting request-handling capabilities."""

from __future__ import annotations

from typing import Any

import pytest
from fastapi import APIRouter

from packages.snap_core.assembler import assemble
from packages.snap_core.composer import compose
from packages.snap_shared import capabilities
from packages.snap_shared.http import ApiDocumentation, ValidationErrorInterceptor
from packages.snap_shared.mapping import ObjectMapper
from packages.snap_shared.messagebus import MessageBus
from services.identity.handlers import (
    AccountRegistered,
    AuthenticateAccount,
    GetAccount,
    RegisterAccount,
)
from services.mail import LoggingMailSender, SendEmailCommand


def _realized(raw_config: dict[str, Any]):
    return assemble(compose(raw_config)).realize()


def test_assemble_registers_request_handling_capabilities(
    raw_config: dict[str, Any],
) -> None:
    """Dispatcher, mapper, interceptor, documentation, and routers exist."""
    registry = _realized(raw_config)

    assert isinstance(registry.resolve(capabilities.COMMAND_DISPATCHER), MessageBus)
    assert isinstance(registry.resolve(capabilities.OBJECT_MAPPER), ObjectMapper)
    assert isinstance(
        registry.resolve(capabilities.VALIDATION_INTERCEPTOR),
        ValidationErrorInterceptor,
    )
    documentation = registry.resolve(capabilities.API_DOCUMENTATION)
    assert isinstance(documentation, ApiDocumentation)
    assert documentation.docs_path == "/swagger"
    routers = registry.resolve(capabilities.ROUTERS)
    assert routers and all(isinstance(router, APIRouter) for router in routers)


def test_dispatcher_covers_every_registered_handler(raw_config: dict[str, Any]) -> None:
    """The explicit handler tables should be fully wired."""
    bus = _realized(raw_config).resolve(capabilities.COMMAND_DISPATCHER)

    for message_type in (
        RegisterAccount,
        AuthenticateAccount,
        GetAccount,
        SendEmailCommand,
        AccountRegistered,
    ):
        assert bus.handles(message_type)


def test_dispatcher_sends_mail_through_injected_sender(
    raw_config: dict[str, Any],
) -> None:
    """Mail commands should reach the registered sender."""
    registry = _realized(raw_config)
    bus = registry.resolve(capabilities.COMMAND_DISPATCHER)

    bus.send(SendEmailCommand(to="a@example.com", subject="Hi", body="Hello"))

    sender = registry.resolve(capabilities.MAIL_SENDER)
    assert isinstance(sender, LoggingMailSender)
    assert [message.to for message in sender.outbox] == ["a@example.com"]


def test_welcome_mail_is_sent_as_a_dispatched_command(
    raw_config: dict[str, Any], monkeypatch: pytest.MonkeyPatch
) -> None:
    """Registration notifications send mail through the dispatcher."""
    sent: list[object] = []
    original_send = MessageBus.send

    def _recording_send(self: MessageBus, request):
        sent.append(request)
        return original_send(self, request)

    monkeypatch.setattr(MessageBus, "send", _recording_send)
    registry = _realized(raw_config)
    bus = registry.resolve(capabilities.COMMAND_DISPATCHER)

    delivered = bus.publish(
        AccountRegistered(user_name="grace", email="grace@example.com", display_name="Grace")
    )

    assert delivered == 1
    assert [type(request) for request in sent] == [SendEmailCommand]
    outbox = registry.resolve(capabilities.MAIL_SENDER).outbox
    assert len(outbox) == 1
    assert outbox[0].to == "grace@example.com"
    assert outbox[0].subject == "Welcome to Snap"
