"""Face and eye landmark detection using MediaPipe.

MediaPipe's short-range face detector supplies the bounding box and
score; Face Mesh with refined landmarks supplies the eye contours, iris
points, eyelid midpoints and eye corners used for gaze estimation.
"""

from __future__ import annotations

import asyncio
import logging

import cv2
import numpy as np

from justdothething.domain.models import EyeGeometry, FaceBox, FaceDetection, Point
from justdothething.perception.base import FaceDetector, ModelLoader, PerceptionError

logger = logging.getLogger(__name__)

# Face Mesh landmark indices (468 mesh points + 10 refined iris points)
LEFT_EYE_CONTOUR = (33, 246, 161, 160, 159, 158, 157, 173, 133, 155, 154, 153, 145, 144, 163, 7)
RIGHT_EYE_CONTOUR = (263, 249, 390, 373, 374, 380, 381, 382, 362, 466, 388, 387, 386, 385, 384, 398)
LEFT_IRIS = (468, 469, 470, 471, 472)
RIGHT_IRIS = (473, 474, 475, 476, 477)
LEFT_LIDS = (159, 145)
RIGHT_LIDS = (386, 374)
LEFT_CORNERS = (133, 33)
RIGHT_CORNERS = (362, 263)


class _FaceModels:
    def __init__(self, detector, mesh) -> None:
        self.detector = detector
        self.mesh = mesh

    def close(self) -> None:
        self.detector.close()
        self.mesh.close()


class MediaPipeFaceDetector(FaceDetector):
    """Single-face detector combining MediaPipe detection and Face Mesh.

    Both graphs are stateful and not thread-safe; calls are serialized
    with a lock and run in the default executor.
    """

    def __init__(
        self,
        min_detection_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
    ) -> None:
        self._min_detection = min_detection_confidence
        self._min_tracking = min_tracking_confidence
        self._loader: ModelLoader[_FaceModels] = ModelLoader("face-landmarks", self._load_sync)
        self._lock = asyncio.Lock()

    async def warm_up(self) -> None:
        await self._loader.get()

    async def detect(self, image: np.ndarray) -> FaceDetection:
        if image.ndim < 2 or image.shape[0] == 0 or image.shape[1] == 0:
            h, w = (image.shape[:2] + (0, 0))[:2]
            return FaceDetection.absent(w, h)
        models = await self._loader.get()
        loop = asyncio.get_running_loop()
        async with self._lock:
            try:
                return await loop.run_in_executor(None, self._detect_sync, models, image)
            except (cv2.error, RuntimeError, ValueError) as e:
                raise PerceptionError(f"Face detection failed: {e}", model=self._loader.name) from e

    async def close(self) -> None:
        if self._loader.is_loaded:
            models = await self._loader.get()
            models.close()
            self._loader.reset()

    def _load_sync(self) -> _FaceModels:
        import mediapipe as mp

        detector = mp.solutions.face_detection.FaceDetection(
            model_selection=0,
            min_detection_confidence=self._min_detection,
        )
        mesh = mp.solutions.face_mesh.FaceMesh(
            max_num_faces=1,
            refine_landmarks=True,
            min_detection_confidence=self._min_detection,
            min_tracking_confidence=self._min_tracking,
        )
        return _FaceModels(detector, mesh)

    def _detect_sync(self, models: _FaceModels, image: np.ndarray) -> FaceDetection:
        h, w = image.shape[:2]
        rgb = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)

        detections = models.detector.process(rgb).detections
        if not detections:
            return FaceDetection.absent(w, h)
        best = max(detections, key=lambda d: d.score[0])
        rel = best.location_data.relative_bounding_box
        box = FaceBox(
            x=rel.xmin * w,
            y=rel.ymin * h,
            width=max(rel.width, 0.0) * w,
            height=max(rel.height, 0.0) * h,
        )
        probability = float(min(max(best.score[0], 0.0), 1.0))

        left_eye = right_eye = None
        mesh_result = models.mesh.process(rgb)
        if mesh_result.multi_face_landmarks:
            landmarks = mesh_result.multi_face_landmarks[0].landmark
            if len(landmarks) > max(RIGHT_IRIS):
                left_eye = _eye(landmarks, w, h, LEFT_EYE_CONTOUR, LEFT_IRIS, LEFT_LIDS, LEFT_CORNERS)
                right_eye = _eye(landmarks, w, h, RIGHT_EYE_CONTOUR, RIGHT_IRIS, RIGHT_LIDS, RIGHT_CORNERS)

        return FaceDetection(
            present=True,
            box=box,
            probability=probability,
            left_eye=left_eye,
            right_eye=right_eye,
            frame_width=w,
            frame_height=h,
        )


def _eye(landmarks, w: int, h: int, contour, iris, lids, corners) -> EyeGeometry:
    def pt(i: int) -> Point:
        return Point(x=landmarks[i].x * w, y=landmarks[i].y * h)

    return EyeGeometry(
        contour=[pt(i) for i in contour],
        iris=[pt(i) for i in iris],
        top=pt(lids[0]),
        bottom=pt(lids[1]),
        inner=pt(corners[0]),
        outer=pt(corners[1]),
    )
