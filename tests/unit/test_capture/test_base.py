"""Tests for the CaptureSource abstract base class."""

from __future__ import annotations

import pytest

from conftest import FakeCapture
from justdothething.capture.base import CaptureError, CaptureSource, PermissionDeniedError


class TestCaptureSourceInterface:
    def test_cannot_instantiate_abstract_class(self) -> None:
        with pytest.raises(TypeError):
            CaptureSource()  # type: ignore[abstract]

    @pytest.mark.asyncio
    async def test_context_manager_acquires_and_releases(self) -> None:
        source = FakeCapture()
        async with source:
            assert source.is_open
            frame = await source.capture_frame()
            assert frame.frame_number == 1
            assert frame.source == "screen"
        assert not source.is_open
        assert source.releases == 1

    @pytest.mark.asyncio
    async def test_denied_access_raises(self) -> None:
        source = FakeCapture(name="webcam", grant=False)
        with pytest.raises(PermissionDeniedError) as exc_info:
            async with source:
                pass
        assert exc_info.value.source == "webcam"
        assert isinstance(exc_info.value, CaptureError)

    @pytest.mark.asyncio
    async def test_frame_numbers_increase(self) -> None:
        source = FakeCapture()
        await source.request_access()
        first = await source.capture_frame()
        second = await source.capture_frame()
        assert second.frame_number == first.frame_number + 1
