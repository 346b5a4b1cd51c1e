# src/posealign/backends/keypoint_adapter.py
# Converts raw detector output into Keypoint models. The detector itself
# stays outside this package; these helpers only reshape what it returns.

from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

import numpy as np

from ..config import EXPECTED_KEYPOINTS
from ..data_models import Keypoint

MOVENET_NAMES: Sequence[str] = EXPECTED_KEYPOINTS


def keypoints_from_movenet(
    kps_with_scores: Any,
    names: Sequence[str] = MOVENET_NAMES,
    frame_size: Optional[Sequence[int]] = None,
) -> List[Keypoint]:
    """
    MoveNet single-pose output ([1, 1, 17, 3] or [17, 3], rows of (y, x, score))
    -> Keypoint list. Coordinates stay normalized unless `frame_size` (w, h)
    is given, in which case they are scaled to pixels.
    """
    kps = np.squeeze(np.asarray(kps_with_scores, dtype=np.float64))
    if kps.size == 0:
        return []
    if kps.ndim != 2 or kps.shape[1] != 3:
        raise ValueError(f"expected (N, 3) keypoints, got shape {kps.shape}")
    if kps.shape[0] != len(names):
        raise ValueError(f"expected {len(names)} keypoints, got {kps.shape[0]}")

    w, h = (frame_size[0], frame_size[1]) if frame_size else (1.0, 1.0)
    out: List[Keypoint] = []
    for name, (y, x, conf) in zip(names, kps):
        out.append(
            Keypoint(
                name=name,
                x=float(x) * w,
                y=float(y) * h,
                confidence=float(np.clip(conf, 0.0, 1.0)),
            )
        )
    return out


def keypoints_from_dicts(items: Optional[Iterable[Union[Keypoint, Dict[str, Any]]]]) -> List[Keypoint]:
    """
    TF.js / backend dicts ({"name", "x", "y", "score"|"conf"|"confidence"})
    -> Keypoint list. Keypoint instances pass through. Entries without a name
    are dropped, since profiles address points by name.
    """
    if not items:
        return []
    out: List[Keypoint] = []
    for item in items:
        if isinstance(item, Keypoint):
            out.append(item)
        elif item.get("name"):
            out.append(Keypoint.model_validate(item))
    return out
