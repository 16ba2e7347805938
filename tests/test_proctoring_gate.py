"""Tests for camera and screen-share acquisition."""

import asyncio

import pytest

from exam_app.core.ports import Capability
from exam_app.core.services.capabilities import ClientReportedCapabilityProvider, SimulatedCapabilityProvider
from exam_app.core.services.proctoring_gate import PermissionStatus, ProctoringGate


class TestAcquisition:
    async def test_all_ready_needs_every_required_capability(self, provider):
        gate = ProctoringGate(provider)
        assert gate.camera_status is PermissionStatus.PENDING
        assert not gate.all_ready

        assert await gate.request_camera() is PermissionStatus.GRANTED
        assert gate.camera_preview is not None
        assert not gate.all_ready

        assert await gate.request_screen_share() is PermissionStatus.GRANTED
        assert gate.all_ready

    async def test_only_required_capabilities_count(self, provider):
        gate = ProctoringGate(provider, required=[Capability.CAMERA])

        await gate.request_camera()

        assert gate.all_ready
        assert gate.screen_status is PermissionStatus.PENDING

    async def test_granted_capability_is_not_acquired_twice(self, provider):
        gate = ProctoringGate(provider)

        await gate.request_camera()
        await gate.request_camera()

        assert provider.calls == [Capability.CAMERA]


class TestDenial:
    async def test_denial_is_recorded_not_raised(self):
        provider = SimulatedCapabilityProvider(granted=[Capability.CAMERA])
        gate = ProctoringGate(provider)

        status = await gate.request_screen_share()

        assert status is PermissionStatus.DENIED
        assert gate.screen_status is PermissionStatus.DENIED
        assert gate.error_for(Capability.SCREEN) is not None
        assert not gate.all_ready

    async def test_denied_capability_can_be_retried(self):
        provider = SimulatedCapabilityProvider(granted=[])
        gate = ProctoringGate(provider)
        await gate.request_camera()

        provider.grant(Capability.CAMERA)
        status = await gate.request_camera()

        assert status is PermissionStatus.GRANTED
        assert gate.error_for(Capability.CAMERA) is None
        assert provider.calls == [Capability.CAMERA, Capability.CAMERA]

    async def test_revoked_provider_denies_new_requests(self, provider):
        gate = ProctoringGate(provider)
        provider.deny(Capability.SCREEN)

        await gate.request_screen_share()

        assert gate.status_of(Capability.SCREEN) is PermissionStatus.DENIED

    async def test_client_report_reason_is_kept(self):
        provider = ClientReportedCapabilityProvider()
        gate = ProctoringGate(provider)

        provider.report(Capability.CAMERA, False, "NotAllowedError")
        await gate.request_camera()

        assert gate.error_for(Capability.CAMERA).reason == "NotAllowedError"

    async def test_missing_client_report_counts_as_denied(self):
        gate = ProctoringGate(ClientReportedCapabilityProvider())

        assert await gate.request_screen_share() is PermissionStatus.DENIED


class TestRelease:
    async def test_release_stops_every_handle(self, provider):
        with ProctoringGate(provider) as gate:
            await gate.request_camera()
            await gate.request_screen_share()

        assert gate.is_released
        assert len(provider.handles) == 2
        assert all(handle.released for handle in provider.handles)

    async def test_handle_arriving_after_release_is_stopped(self):
        provider = SimulatedCapabilityProvider(delay_seconds=0.05)
        gate = ProctoringGate(provider)

        pending = asyncio.create_task(gate.request_camera())
        await asyncio.sleep(0)
        gate.release()
        status = await pending

        assert status is PermissionStatus.PENDING
        assert provider.handles[0].released

    async def test_requests_after_release_are_refused(self, provider):
        gate = ProctoringGate(provider)
        gate.release()

        with pytest.raises(RuntimeError):
            await gate.request_camera()
