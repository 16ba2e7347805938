"""Service acquiring the monitoring capabilities a proctored exam requires."""

from __future__ import annotations

from enum import Enum
import logging
from typing import Awaitable, Callable, Iterable

from exam_app.core.errors import CapabilityDeniedError
from exam_app.core.ports import Capability, CapabilityHandle, CapabilityProvider

logger = logging.getLogger(__name__)

ALL_CAPABILITIES: tuple[Capability, ...] = (Capability.CAMERA, Capability.SCREEN)


class PermissionStatus(str, Enum):
    PENDING = "pending"
    GRANTED = "granted"
    DENIED = "denied"


class ProctoringGate:
    """Tracks camera and screen-share permissions for one attempt.

    A failed acquisition leaves the capability ``denied`` and keeps the error
    for display; it never propagates. Acquisition may be retried. Every
    acquired handle is released by ``release()``, including handles that only
    arrive after the gate has been released.
    """

    def __init__(
        self,
        provider: CapabilityProvider,
        required: Iterable[Capability] = ALL_CAPABILITIES,
    ) -> None:
        self._provider = provider
        self._required: frozenset[Capability] = frozenset(required)
        self._status: dict[Capability, PermissionStatus] = {
            capability: PermissionStatus.PENDING for capability in ALL_CAPABILITIES
        }
        self._handles: dict[Capability, CapabilityHandle] = {}
        self._errors: dict[Capability, CapabilityDeniedError] = {}
        self._released: bool = False

    def __enter__(self) -> ProctoringGate:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()

    @property
    def required(self) -> frozenset[Capability]:
        return self._required

    @property
    def camera_status(self) -> PermissionStatus:
        return self._status[Capability.CAMERA]

    @property
    def screen_status(self) -> PermissionStatus:
        return self._status[Capability.SCREEN]

    @property
    def all_ready(self) -> bool:
        return all(self._status[capability] is PermissionStatus.GRANTED for capability in self._required)

    @property
    def camera_preview(self) -> CapabilityHandle | None:
        """Live camera stream, available once the camera is granted."""
        return self._handles.get(Capability.CAMERA)

    @property
    def is_released(self) -> bool:
        return self._released

    def status_of(self, capability: Capability) -> PermissionStatus:
        return self._status[capability]

    def error_for(self, capability: Capability) -> CapabilityDeniedError | None:
        return self._errors.get(capability)

    async def request_camera(self) -> PermissionStatus:
        return await self._request(Capability.CAMERA, self._provider.acquire_camera)

    async def request_screen_share(self) -> PermissionStatus:
        return await self._request(Capability.SCREEN, self._provider.acquire_screen_share)

    async def request(self, capability: Capability) -> PermissionStatus:
        if capability is Capability.CAMERA:
            return await self.request_camera()
        return await self.request_screen_share()

    def release(self) -> None:
        """Stop every acquired stream. Safe to call more than once."""
        self._released = True
        handles = list(self._handles.items())
        self._handles.clear()
        for capability, handle in handles:
            self._release_handle(capability, handle)

    async def _request(
        self,
        capability: Capability,
        acquire: Callable[[], Awaitable[CapabilityHandle]],
    ) -> PermissionStatus:
        if self._released:
            raise RuntimeError("Proctoring gate has been released.")
        if self._status[capability] is PermissionStatus.GRANTED:
            return PermissionStatus.GRANTED

        try:
            handle = await acquire()
        except CapabilityDeniedError as exc:
            logger.warning("Access to %s denied: %s", capability.value, exc.reason)
            self._status[capability] = PermissionStatus.DENIED
            self._errors[capability] = exc
            return PermissionStatus.DENIED

        if self._released:
            # The session went away while the permission prompt was open.
            self._release_handle(capability, handle)
            return self._status[capability]

        self._handles[capability] = handle
        self._status[capability] = PermissionStatus.GRANTED
        self._errors.pop(capability, None)
        logger.info("Access to %s granted", capability.value)
        return PermissionStatus.GRANTED

    @staticmethod
    def _release_handle(capability: Capability, handle: CapabilityHandle) -> None:
        try:
            handle.release()
        except Exception:
            logger.exception("Failed to release %s stream", capability.value)
