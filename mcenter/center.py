"""
# Message Center

Herein is the message center itself: a registry of named messages, each with
a fixed ordered set of consumer types, and the machinery that fans a publish
out to every type.

A message must be registered before anything can subscribe to or publish it.
Registration declares the payload validator and the consumer types, so the
center can refuse malformed publishes and check() can report types nobody
consumes once the application is wired.

Published items go through a bounded-concurrency queue. Each item runs its
types one at a time in declaration order. A type's failure is captured into
the result map and reported to the error hook, it never stops the other
types or the queue.
"""

import asyncio
import inspect
import json
import logging
import os
import threading
import time
import uuid
from typing import Any
from typing import Callable
from typing import Iterable
from typing import Mapping
from typing import Optional
from typing import Union

from mcenter import errors
from mcenter import handlers
from mcenter import message
from mcenter.config import MessageCenterConfig
from mcenter.queue import DispatchQueue


logger = logging.getLogger(__name__)

TYPE_SPEC_LIKE = Union[message.TypeSpec, Mapping[str, Any], str]


def _is_cancelling() -> bool:
    """
    True when the running task itself has a pending cancel request.

    Task.cancelling() only exists on Python 3.11+. Older interpreters cannot
    tell the two apart, so this returns False there.
    """
    task = asyncio.current_task()
    cancelling = getattr(task, "cancelling", None)
    if cancelling is None:
        return False
    return cancelling() > 0


def _make_listener_decorator(center: "MessageCenter") -> Callable:
    """Create a subscribe decorator bound to a message center instance."""

    def listener_(
        name: str, type_: str
    ) -> Callable[[message.LISTENER], message.LISTENER]:
        def decorator(func: message.LISTENER) -> message.LISTENER:
            center.subscribe(name, type_, func)
            return func

        return decorator

    return listener_


class MessageCenter(object):
    """
    In-process message coordinator.

    Register a message with register(), bind one listener per declared type
    with subscribe() or the @listener decorator, then publish(). Use check()
    after wiring to find declared types without a listener.

    Construct one instance at startup and hand it to producers and consumers.
    """

    def __init__(
        self,
        config: Optional[MessageCenterConfig] = None,
        max_listeners: Optional[int] = None,
    ) -> None:
        if config is None:
            config = MessageCenterConfig(max_listeners=max_listeners)
        elif max_listeners is not None:
            raise ValueError("Pass either config or max_listeners, not both.")

        self.config = config

        self._lock = threading.RLock()
        self._registry: dict[str, message.MessageDefinition] = {}
        self._listeners: dict[tuple[str, str], message.LISTENER] = {}

        # -----Notifier Hooks-----
        self._hooks: dict[str, Callable] = dict(handlers.DEFAULT_HOOKS)
        self._hook_tasks: set[asyncio.Task] = set()

        self._queue = DispatchQueue(self._dispatch, config.max_listeners)

        self.listener = _make_listener_decorator(self)
        """
        Decorator to subscribe a function as the listener of a message type.

        Args:
            name (str): The registered message name.
            type_ (str): One of the message's declared types.
        """

    @property
    def max_listeners(self) -> int:
        return self._queue.concurrency

    # -----Registration--------------------------------------------------------

    def register(
        self,
        name: str,
        validator: Optional[message.VALIDATOR],
        types: Iterable[TYPE_SPEC_LIKE],
    ) -> message.MessageDefinition:
        """
        Declare a message and the consumer types it fans out to.

        Args:
            name (str): Unique message name.
            validator (Callable): Optional payload check run by publish().
            types (Iterable): TypeSpecs, {'type', 'timeout', 'validator'}
                mappings or bare type names, in fan-out order. May be empty.
        Returns:
            message.MessageDefinition: The stored definition.
        Raises:
            DuplicateRegistrationError: If name is already registered.
            InvalidRegistrationError: If name is empty, a type spec is
                malformed or a type name is declared twice.
        """
        if not isinstance(name, str) or not name:
            raise errors.InvalidRegistrationError(
                str(name), "name must be a non-empty string"
            )

        specs = tuple(self._build_type_spec(name, value) for value in types)

        seen: set[str] = set()
        for spec in specs:
            if spec.type in seen:
                raise errors.InvalidRegistrationError(
                    name, f"type '{spec.type}' is declared more than once"
                )
            seen.add(spec.type)

        definition = message.MessageDefinition(
            name=name, validator=validator, types=specs
        )

        with self._lock:
            if name in self._registry:
                raise errors.DuplicateRegistrationError(name)
            self._registry[name] = definition

        if not specs:
            logger.warning(f"Message '{name}' registered with no types")
        logger.debug(
            f"Registered message '{name}' with types {[s.type for s in specs]}"
        )

        return definition

    @staticmethod
    def _build_type_spec(name: str, value: TYPE_SPEC_LIKE) -> message.TypeSpec:
        try:
            spec = message.TypeSpec.from_value(value)
        except TypeError as e:
            raise errors.InvalidRegistrationError(name, str(e)) from e

        if not isinstance(spec.type, str) or not spec.type:
            raise errors.InvalidRegistrationError(
                name, f"type name must be a non-empty string, got {spec.type!r}"
            )
        if not isinstance(spec.timeout, (int, float)) or spec.timeout < 0:
            raise errors.InvalidRegistrationError(
                name,
                f"timeout of type '{spec.type}' must be a non-negative number",
            )

        return spec

    # -----Subscription--------------------------------------------------------

    def subscribe(self, name: str, type_: str, listener: message.LISTENER) -> None:
        """
        Bind the listener for one declared type of a message.

        A later subscribe for the same (name, type_) replaces the earlier
        listener.

        Args:
            name (str): The registered message name.
            type_ (str): One of the message's declared types.
            listener (Callable): Receives the published data. Can be sync or
                async, its return value goes into the dispatch result.
        Raises:
            SubscribeToUnregisteredMessageError: If name is not registered.
            SubscribeUnknownTypeError: If type_ is not declared for name.
        """
        with self._lock:
            definition = self._registry.get(name)
            if definition is None:
                raise errors.SubscribeToUnregisteredMessageError(name)
            if type_ not in definition.type_names:
                raise errors.SubscribeUnknownTypeError(name, type_)

            previous = self._listeners.get((name, type_))
            self._listeners[(name, type_)] = listener

        if previous is not None and previous is not listener:
            logger.warning(
                f"Listener for '{name}::{type_}' replaced: "
                f"{handlers.get_callable_name(previous)} -> "
                f"{handlers.get_callable_name(listener)}"
            )
        logger.debug(
            f"Subscribed {handlers.get_callable_name(listener)} to '{name}::{type_}'"
        )

    # -----Publishing----------------------------------------------------------

    def publish(
        self,
        name: str,
        data: Any,
        callback: Optional[message.CALLBACK] = None,
    ) -> None:
        """
        Validate data and queue it for dispatch to every type of the message.

        Returns immediately. The outcome is only observable through callback,
        which receives {type: TypeResult(error, value, elapsed_ms)} with one
        entry per declared type.

        Must be called while an asyncio event loop is running.

        Args:
            name (str): The registered message name.
            data (Any): Payload handed to every listener.
            callback (Callable): Optional, sync or async, called once with the
                result map.
        Raises:
            PublishUnregisteredMessageError: If name is not registered.
            PublishValidationFailedError: If the payload validator returns
                False. Any exception the validator raises propagates as is.
        """
        definition = self._registry.get(name)
        if definition is None:
            raise errors.PublishUnregisteredMessageError(name)

        if definition.validator is not None:
            if definition.validator(data) is False:
                raise errors.PublishValidationFailedError(name)

        item = message.PublishedItem(
            id=uuid.uuid4().hex, name=name, data=data, callback=callback
        )
        self._queue.push(item)

    async def join(self) -> None:
        """Wait until every published item so far has been dispatched."""
        await self._queue.join()
        if self._hook_tasks:
            await asyncio.gather(*list(self._hook_tasks))

    # -----Dispatch------------------------------------------------------------

    async def _dispatch(self, item: message.PublishedItem) -> None:
        """Run every declared type of item's message, in order, then callback."""
        definition = self._registry[item.name]
        result: dict[str, message.TypeResult] = {}

        for spec in definition.types:
            result[spec.type] = await self._run_type(item, spec)

        if item.callback is not None:
            ret = item.callback(result)
            if inspect.isawaitable(ret):
                await ret

    async def _run_type(
        self, item: message.PublishedItem, spec: message.TypeSpec
    ) -> message.TypeResult:
        listener = self._listeners.get((item.name, spec.type))
        start_at = time.monotonic()
        error: Optional[BaseException] = None
        value: Any = None

        try:
            if listener is None:
                raise errors.MissingListenerError(item.name, spec.type)

            value = listener(item.data)
            if inspect.isawaitable(value):
                value = await value

            if spec.validator is not None:
                verdict = spec.validator(value)
                if inspect.isawaitable(verdict):
                    verdict = await verdict
                if verdict is False:
                    raise errors.ResultValidationFailedError(item.name, spec.type)
        except (Exception, asyncio.CancelledError) as e:
            # A listener awaiting something another component cancelled is a
            # listener failure. Cancelling the dispatch itself still propagates.
            if isinstance(e, asyncio.CancelledError) and _is_cancelling():
                raise
            error = e
            value = None
            self._notify(handlers.ERROR, e, item.name, item.data, spec.type)

        elapsed_ms = int((time.monotonic() - start_at) * 1000)
        if spec.timeout and elapsed_ms > spec.timeout:
            self._notify(handlers.TIMEOUT, elapsed_ms, item.name, item.data, spec.type)

        return message.TypeResult(error, value, elapsed_ms)

    # -----Notifier Hooks------------------------------------------------------

    def set_fn(
        self,
        kind: str,
        fn: Optional[Union[handlers.ERROR_HOOK, handlers.TIMEOUT_HOOK]],
    ) -> None:
        """
        Replace the error or timeout notifier hook.

        The hook is wrapped so an exception inside it is logged and never
        reaches the dispatcher. Async hooks are scheduled, not awaited.

        Args:
            kind (str): 'error' or 'timeout'.
            fn (Callable): error hooks receive (exception, name, data, type),
                timeout hooks receive (elapsed_ms, name, data, type).
                Pass None to restore the default logging hook.
        Raises:
            SetFnNotAllowedError: If kind is neither 'error' nor 'timeout'.
        """
        if kind not in handlers.DEFAULT_HOOKS:
            raise errors.SetFnNotAllowedError(kind)

        if fn is None:
            self._hooks[kind] = handlers.DEFAULT_HOOKS[kind]
        else:
            self._hooks[kind] = handlers.try_catch_log(fn)

    def _notify(self, kind: str, *args: Any) -> None:
        """Fire a hook without letting it affect the dispatch."""
        try:
            ret = self._hooks[kind](*args)
        except Exception:
            # Only the default hooks are unwrapped.
            logger.exception(f"Default {kind} hook failed")
            return

        if inspect.isawaitable(ret):
            task = asyncio.ensure_future(ret)
            self._hook_tasks.add(task)
            task.add_done_callback(self._hook_tasks.discard)

    # -----Consistency Check---------------------------------------------------

    def check(self) -> list[tuple[str, str]]:
        """
        Find declared types that have no listener.

        Call after the application is wired and before traffic flows.

        Returns:
            list[tuple[str, str]]: (name, type) pairs lacking a listener, in
                registration then declaration order. Empty when fully wired.
        """
        registry, listeners = self._snapshot()
        missing = []
        for name, definition in registry.items():
            for spec in definition.types:
                if (name, spec.type) not in listeners:
                    missing.append((name, spec.type))

        return missing

    # -----Introspection API---------------------------------------------------

    def _snapshot(
        self,
    ) -> tuple[
        dict[str, message.MessageDefinition], dict[tuple[str, str], message.LISTENER]
    ]:
        """Copies of the registry and listener table taken under the lock."""
        with self._lock:
            return dict(self._registry), dict(self._listeners)

    def is_registered(self, name: str) -> bool:
        return name in self._registry

    def is_subscribed(self, name: str, type_: str) -> bool:
        """Check if a listener is bound to a message type."""
        return (name, type_) in self._listeners

    def get_messages(self) -> list[str]:
        """Get all registered message names."""
        with self._lock:
            return sorted(self._registry.keys())

    def get_definition(self, name: str) -> Optional[message.MessageDefinition]:
        return self._registry.get(name)

    def get_message_info(self, name: str) -> Optional[dict[str, object]]:
        """
        Get detailed information about a message.

        Args:
            name (str): Message to get info for.
        Returns:
            Optional[dict[str, object]]: Dictionary with message details, or
                None if the message is not registered.
        Example:
            {
                'name': 'order',
                'has_validator': True,
                'types': ['charge', 'notify'],
                'timeouts': {'charge': 50, 'notify': 0},
                'subscribed_types': ['charge'],
                'missing_types': ['notify'],
            }
        """
        registry, listeners = self._snapshot()
        definition = registry.get(name)
        if definition is None:
            return None

        type_names = [spec.type for spec in definition.types]
        subscribed = [t for t in type_names if (name, t) in listeners]

        return {
            "name": name,
            "has_validator": definition.validator is not None,
            "types": type_names,
            "timeouts": {spec.type: spec.timeout for spec in definition.types},
            "subscribed_types": subscribed,
            "missing_types": [t for t in type_names if t not in subscribed],
        }

    def to_dict(self) -> dict:
        """Convert the message wiring to a dictionary."""
        registry, listeners = self._snapshot()
        data = {}
        for name in sorted(registry.keys()):
            types_info = {}
            for spec in registry[name].types:
                listener = listeners.get((name, spec.type))
                timeout_str = f" [timeout={spec.timeout}ms]" if spec.timeout else ""
                if listener is None:
                    types_info[spec.type] = f"<no listener>{timeout_str}"
                else:
                    info = handlers.get_callable_name(listener)
                    types_info[spec.type] = f"{info}{timeout_str}"

            data[name] = types_info

        return data

    def to_string(self) -> str:
        """Returns a string representation of the message wiring."""
        return json.dumps(self.to_dict(), indent=4)

    def export(self, filepath: Union[str, os.PathLike]) -> None:
        """Export the message wiring to filepath as JSON."""
        with open(filepath, "w") as outfile:
            json.dump(self.to_dict(), outfile, indent=4)
