"""
Tests for Camera Capture
=========================
"""

import time
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from kiosk.modules.capture.camera_manager import CameraConfig, CameraManager


class TestCameraConfig:

    def test_default_values(self):
        config = CameraConfig()
        assert config.device_id == 0
        assert config.width == 640
        assert config.height == 480
        assert config.flip_horizontal is True

    def test_from_dict_partial(self):
        config = CameraConfig.from_dict({"device_id": 2})
        assert config.device_id == 2
        assert config.width == 640


class TestCameraManager:

    @pytest.fixture
    def mock_capture(self):
        with patch("kiosk.modules.capture.camera_manager.cv2.VideoCapture") as mock_cv:
            cap = MagicMock()
            cap.isOpened.return_value = True
            cap.get.return_value = 640
            frame = np.zeros((480, 640, 3), dtype=np.uint8)
            frame[:, 0] = 255
            cap.read.return_value = (True, frame)
            mock_cv.return_value = cap
            yield cap

    def test_read_before_first_frame(self):
        camera = CameraManager()
        assert camera.read() == (None, None)
        assert camera.frame_age_s == float("inf")

    def test_open(self, mock_capture):
        camera = CameraManager(CameraConfig(warmup_frames=3))
        assert camera.open()
        assert camera.is_open
        assert mock_capture.read.call_count == 3
        camera.stop()
        mock_capture.release.assert_called_once()

    def test_open_failure(self, mock_capture):
        mock_capture.isOpened.return_value = False
        assert not CameraManager().open()

    def test_capture_thread_flips_and_numbers_frames(self, mock_capture):
        camera = CameraManager(CameraConfig(warmup_frames=0))
        camera.open()
        camera.start()
        try:
            frame_id = None
            for _ in range(200):
                frame_id, frame = camera.read()
                if frame_id is not None:
                    break
                time.sleep(0.005)
            assert frame_id is not None and frame_id >= 1
            # flipped horizontally: the white column moved to the right edge
            assert frame[0, -1, 0] == 255
            assert frame[0, 0, 0] == 0
        finally:
            camera.stop()
