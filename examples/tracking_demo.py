#!/usr/bin/env python3
"""Track corners across two synthetic frames and re-associate them.

Corners are detected with OpenCV's Shi-Tomasi detector and tracked with
pyramidal KLT. Track status, position and response are written back into
the FeatureList, then every detection of the second frame is associated
with the nearest tracked feature through the spatial index.

Usage:
    uv run python examples/tracking_demo.py
"""

import cv2
import numpy as np

from vfeatures import Feature, FeatureList, FeatureType, TrackStatus


def make_frames(shift: tuple[int, int] = (3, 2)) -> tuple[np.ndarray, np.ndarray]:
    """Create a textured frame and a translated copy."""
    rng = np.random.default_rng(0)
    frame = np.zeros((240, 320), dtype=np.uint8)
    for _ in range(40):
        x, y = rng.integers(20, 280), rng.integers(20, 200)
        w, h = rng.integers(8, 30), rng.integers(8, 30)
        cv2.rectangle(frame, (int(x), int(y)), (int(x + w), int(y + h)), int(rng.integers(80, 255)), -1)
    matrix = np.float32([[1, 0, shift[0]], [0, 1, shift[1]]])
    return frame, cv2.warpAffine(frame, matrix, (frame.shape[1], frame.shape[0]))


def detect(frame: np.ndarray, first_id: int = 0) -> FeatureList:
    """Detect corners as KLT features."""
    corners = cv2.goodFeaturesToTrack(frame, maxCorners=100, qualityLevel=0.01, minDistance=7)
    features = FeatureList()
    if corners is None:
        return features
    for i, (x, y) in enumerate(corners.reshape(-1, 2)):
        features.push_back(Feature(id=first_id + i, x=x, y=y, feature_type=FeatureType.KLT))
    return features


def main() -> None:
    """Run the tracking demo."""
    frame0, frame1 = make_frames()
    features = detect(frame0)
    print(f"Detected {len(features)} features in frame 0")

    prev_pts = features.points().astype(np.float32).reshape(-1, 1, 2)
    next_pts, status, err = cv2.calcOpticalFlowPyrLK(frame0, frame1, prev_pts, None)

    height, width = frame1.shape
    for feature, pt, ok, residual in zip(features, next_pts.reshape(-1, 2), status.ravel(), err.ravel()):
        if not ok:
            feature.track_status = TrackStatus.LOST
            continue
        x, y = float(pt[0]), float(pt[1])
        if not (0 <= x < width and 0 <= y < height):
            feature.track_status = TrackStatus.OUT_OF_BOUNDS
            continue
        feature.x, feature.y = x, y
        feature.response = float(residual)
        feature.track_status = TrackStatus.TRACKED

    n_tracked = sum(f.track_status.is_ok for f in features)
    print(f"Tracked {n_tracked} / {len(features)} features")

    # Coordinates changed in place, nearest() rebuilds the index itself
    detections = detect(frame1, first_id=features.get_max_id() + 1)
    associated = 0
    for detection in detections:
        match, dist = features.nearest(detection.x, detection.y, max_dist=2.0)
        if match is not None:
            associated += 1
            print(f"  detection {detection.id:4d} -> feature {match.id:4d} ({dist:.2f} px)")
    print(f"Associated {associated} / {len(detections)} detections")


if __name__ == "__main__":
    main()
