"""
Exceptions raised by the message center.

Contract violations (registering twice, subscribing or publishing to an
unknown message, an unknown notifier kind, a rejected payload) are raised
straight to the caller. MissingListenerError and ResultValidationFailedError
are never raised to a publisher: the dispatcher captures them per type and
hands them to the error hook and the publish callback.
"""

from typing import Optional


class MessageCenterError(Exception):
    """Base class for every message center error."""


# -----Registration------------------------------------------------------------


class DuplicateRegistrationError(MessageCenterError):
    """Raised when a message name is registered a second time."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Message '{name}' is already registered.")
        self.name = name


class InvalidRegistrationError(MessageCenterError):
    """Raised when a message name or one of its type specs is malformed."""

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(f"Invalid registration for message '{name}': {reason}")
        self.name = name
        self.reason = reason


# -----Subscription------------------------------------------------------------


class SubscribeToUnregisteredMessageError(MessageCenterError):
    """Raised when subscribing to a message that was never registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Cannot subscribe to unregistered message '{name}'.")
        self.name = name


class SubscribeUnknownTypeError(MessageCenterError):
    """Raised when subscribing to a type the message does not declare."""

    def __init__(self, name: str, type_: str) -> None:
        super().__init__(
            f"Message '{name}' does not declare type '{type_}', cannot subscribe."
        )
        self.name = name
        self.type = type_


# -----Publishing--------------------------------------------------------------


class PublishUnregisteredMessageError(MessageCenterError):
    """Raised when publishing a message that was never registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Cannot publish unregistered message '{name}'.")
        self.name = name


class PublishValidationFailedError(MessageCenterError):
    """Raised when a payload validator rejects the published data."""

    def __init__(self, name: str, reason: Optional[str] = None) -> None:
        message = f"Payload rejected for message '{name}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.name = name
        self.reason = reason


# -----Dispatch (captured, never raised to the publisher)-----------------------


class MissingListenerError(MessageCenterError):
    """A declared type had no listener when its message was dispatched."""

    def __init__(self, name: str, type_: str) -> None:
        super().__init__(f"No listener subscribed for '{name}::{type_}'.")
        self.name = name
        self.type = type_


class ResultValidationFailedError(MessageCenterError):
    """A type's result validator rejected the listener's return value."""

    def __init__(self, name: str, type_: str) -> None:
        super().__init__(f"Result of '{name}::{type_}' failed validation.")
        self.name = name
        self.type = type_


# -----Notifier hooks----------------------------------------------------------


class SetFnNotAllowedError(MessageCenterError):
    """Raised when set_fn is called with a kind other than error or timeout."""

    def __init__(self, kind: str) -> None:
        super().__init__(
            f"Notifier kind '{kind}' is not allowed, expected 'error' or 'timeout'."
        )
        self.kind = kind
