"""
Позы по тепловым картам OpenPose через cv2.dnn: тело (COCO, 18 суставов)
и кисть (21 точка)
"""
import threading
from typing import Dict, List, Optional

import cv2
import numpy as np

from vision_server.infrastructure.providers.base import BaseDetectionProvider
from vision_server.core.enums import ProviderKind
from vision_server.core.exceptions import ConfigurationError, ProviderError
from vision_server.core.logging import get_logger
from vision_server.models.geometry import clamp_unit, normalize_point
from vision_server.models.observations import (
    BodyPoseObservation,
    HandPoseObservation,
    JointPoint,
)
from vision_server.utils.image_utils import DecodedImage, as_bgr

logger = get_logger(__name__)

# Порядок тепловых карт модели COCO
COCO_JOINTS = [
    "nose", "neck",
    "right_shoulder", "right_elbow", "right_wrist",
    "left_shoulder", "left_elbow", "left_wrist",
    "right_hip", "right_knee", "right_ankle",
    "left_hip", "left_knee", "left_ankle",
    "right_eye", "left_eye", "right_ear", "left_ear",
]

# Порядок тепловых карт модели кисти
HAND_JOINTS = [
    "wrist",
    "thumb_cmc", "thumb_mcp", "thumb_ip", "thumb_tip",
    "index_mcp", "index_pip", "index_dip", "index_tip",
    "middle_mcp", "middle_pip", "middle_dip", "middle_tip",
    "ring_mcp", "ring_pip", "ring_dip", "ring_tip",
    "little_mcp", "little_pip", "little_dip", "little_tip",
]

# Модель кисти не различает левую и правую руку
UNKNOWN_CHIRALITY = "unknown"


class HeatmapPoseProvider(BaseDetectionProvider):
    """
    Общая часть: загрузка сети, прогон и максимум каждой тепловой карты

    Суставы ниже порога не попадают в результат.
    """

    joint_names: List[str] = []
    model_title = "pose"

    def __init__(
        self,
        model_path: str,
        config_path: Optional[str] = None,
        input_size: int = 368,
        joint_threshold: float = 0.1
    ):
        self.model_path = model_path
        self.config_path = config_path
        self.input_size = input_size
        self.joint_threshold = joint_threshold
        self.net: Optional[cv2.dnn.Net] = None
        self._lock = threading.Lock()

    def initialize(self) -> None:
        try:
            self.net = cv2.dnn.readNet(self.model_path, self.config_path or "")
        except Exception as e:
            logger.error(
                f"Failed to load {self.model_title} model",
                model_path=self.model_path,
                error=str(e)
            )
            raise ConfigurationError(
                f"Failed to load {self.model_title} model: {str(e)}",
                details={"model_path": self.model_path}
            )
        logger.info(f"{self.model_title.capitalize()} model loaded", model_path=self.model_path)

    def is_available(self) -> bool:
        return self.net is not None

    def heatmaps(self, image: DecodedImage) -> np.ndarray:
        if self.net is None:
            raise ProviderError(
                f"{self.model_title.capitalize()} model not initialized. Call initialize() first."
            )

        blob = cv2.dnn.blobFromImage(
            as_bgr(image),
            1.0 / 255,
            (self.input_size, self.input_size),
            (0, 0, 0),
            swapRB=False,
            crop=False
        )
        with self._lock:
            self.net.setInput(blob)
            output = self.net.forward()

        if output.ndim != 4 or output.shape[1] < len(self.joint_names):
            raise ProviderError(
                f"Unexpected {self.model_title} model output",
                details={"shape": list(output.shape)}
            )
        return output

    def locate_joints(self, image: DecodedImage) -> Dict[str, JointPoint]:
        output = self.heatmaps(image)
        map_height, map_width = output.shape[2], output.shape[3]
        joints = {}

        for index, name in enumerate(self.joint_names):
            heatmap = output[0, index, :, :]
            _, confidence, _, (px, py) = cv2.minMaxLoc(heatmap)
            if confidence < self.joint_threshold:
                continue

            # Центр ячейки тепловой карты -> пиксели исходного изображения
            x = (px + 0.5) * image.width / map_width
            y = (py + 0.5) * image.height / map_height
            joints[name] = JointPoint(
                position=normalize_point(x, y, image.width, image.height),
                confidence=clamp_unit(confidence)
            )

        return joints


def mean_confidence(joints: Dict[str, JointPoint]) -> float:
    return clamp_unit(float(np.mean([joint.confidence for joint in joints.values()])))


class BodyPoseProvider(HeatmapPoseProvider):
    """Одна поза тела; без суставов - None"""

    kind = ProviderKind.BODY_POSE
    joint_names = COCO_JOINTS
    model_title = "pose"

    def detect(self, image: DecodedImage) -> Optional[BodyPoseObservation]:
        joints = self.locate_joints(image)
        if not joints:
            return None
        return BodyPoseObservation(joints=joints, confidence=mean_confidence(joints))


class HandPoseProvider(HeatmapPoseProvider):
    """Одна кисть на изображение; без суставов - пустой список"""

    kind = ProviderKind.HAND_POSE
    joint_names = HAND_JOINTS
    model_title = "hand pose"

    def detect(self, image: DecodedImage) -> List[HandPoseObservation]:
        joints = self.locate_joints(image)
        if not joints:
            return []

        logger.debug("Hand joints detected", joints_count=len(joints))
        return [
            HandPoseObservation(
                chirality=UNKNOWN_CHIRALITY,
                joints=joints,
                confidence=mean_confidence(joints)
            )
        ]
