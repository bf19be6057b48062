"""
# In-process Message Center

Decouples producers from the concrete consumers of a message. Every message
is registered up front with a payload validator and the consumer types that
must all react to it. A publish is validated, queued, and fanned out to each
type in order with bounded concurrency across publishes, per-type timing and
timeout reporting, and isolated error capture.

    import mcenter

    center = mcenter.MessageCenter(max_listeners=4)
    center.register("order", None, [{"type": "charge", "timeout": 50}, "notify"])

    @center.listener("order", "charge")
    async def charge(data): ...

    center.subscribe("order", "notify", send_mail)
    assert center.check() == []

    center.publish("order", {"amount": 10}, callback=print)
"""

from mcenter import config
from mcenter import errors
from mcenter import handlers
from mcenter import message
from mcenter.center import MessageCenter
from mcenter.config import MessageCenterConfig
from mcenter.errors import *
from mcenter.message import MessageDefinition
from mcenter.message import PublishedItem
from mcenter.message import TypeResult
from mcenter.message import TypeSpec


version_major = 0
version_minor = 1
version_patch = 0
__version__ = f"{version_major}.{version_minor}.{version_patch}"
