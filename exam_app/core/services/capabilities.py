"""In-process capability providers.

The browser is the only party that can actually open a camera or share a
screen, so the server-side provider simply records what the learner's page
reports. ``SimulatedCapabilityProvider`` grants or refuses on configuration
and backs the demo and the test suite.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable

from exam_app.core.errors import CapabilityDeniedError
from exam_app.core.models import utc_now
from exam_app.core.ports import Capability, CapabilityHandle, CapabilityProvider

logger = logging.getLogger(__name__)


class StreamHandle(CapabilityHandle):
    """Handle for a stream whose tracks are owned by the client."""

    def __init__(self, capability: Capability, label: str | None = None) -> None:
        self.capability = capability
        self.label = label or capability.value
        self.acquired_at = utc_now()
        self.released = False

    def release(self) -> None:
        if self.released:
            return
        self.released = True
        logger.debug("Released %s stream (%s)", self.capability.value, self.label)


class SimulatedCapabilityProvider(CapabilityProvider):
    """Grants the configured capabilities and refuses the rest."""

    def __init__(
        self,
        granted: Iterable[Capability] = (Capability.CAMERA, Capability.SCREEN),
        *,
        delay_seconds: float = 0.0,
    ) -> None:
        self._granted = set(granted)
        self._delay_seconds = delay_seconds
        self.handles: list[StreamHandle] = []
        self.calls: list[Capability] = []

    def grant(self, capability: Capability) -> None:
        self._granted.add(capability)

    def deny(self, capability: Capability) -> None:
        self._granted.discard(capability)

    async def acquire_camera(self) -> CapabilityHandle:
        return await self._acquire(Capability.CAMERA)

    async def acquire_screen_share(self) -> CapabilityHandle:
        return await self._acquire(Capability.SCREEN)

    async def _acquire(self, capability: Capability) -> StreamHandle:
        self.calls.append(capability)
        if self._delay_seconds:
            await asyncio.sleep(self._delay_seconds)
        if capability not in self._granted:
            raise CapabilityDeniedError(capability.value)
        handle = StreamHandle(capability, label=f"simulated-{capability.value}")
        self.handles.append(handle)
        return handle


class ClientReportedCapabilityProvider(CapabilityProvider):
    """Turns the outcome reported by the learner's browser into a handle.

    ``report()`` must be called before the matching acquire; an acquire
    without a pending report counts as a refusal.
    """

    def __init__(self) -> None:
        self._reports: dict[Capability, tuple[bool, str | None]] = {}

    def report(self, capability: Capability, granted: bool, detail: str | None = None) -> None:
        self._reports[capability] = (granted, detail)

    def has_report(self, capability: Capability) -> bool:
        return capability in self._reports

    async def acquire_camera(self) -> CapabilityHandle:
        return self._consume(Capability.CAMERA)

    async def acquire_screen_share(self) -> CapabilityHandle:
        return self._consume(Capability.SCREEN)

    def _consume(self, capability: Capability) -> StreamHandle:
        granted, detail = self._reports.pop(capability, (False, "No response from the browser"))
        if not granted:
            raise CapabilityDeniedError(capability.value, detail or "Permission denied")
        return StreamHandle(capability, label=detail)
