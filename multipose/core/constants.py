"""
Global constants for multipose

Includes:
- PoseNet keypoint definitions
- Pose chain (parent/child tree over keypoints)
- Decoder defaults
- CSV column names
"""

# ===== PoseNet Keypoints (17 points) =====
KEYPOINT_NAMES = (
    'nose',             # 0
    'leftEye',          # 1
    'rightEye',         # 2
    'leftEar',          # 3
    'rightEar',         # 4
    'leftShoulder',     # 5
    'rightShoulder',    # 6
    'leftElbow',        # 7
    'rightElbow',       # 8
    'leftWrist',        # 9
    'rightWrist',       # 10
    'leftHip',          # 11
    'rightHip',         # 12
    'leftKnee',         # 13
    'rightKnee',        # 14
    'leftAnkle',        # 15
    'rightAnkle',       # 16
)

NUM_KEYPOINTS = len(KEYPOINT_NAMES)

# Pose chain - (parent, child) pairs, in the edge order used by the
# mid-range displacement channels
POSE_CHAIN = (
    # Face
    ('nose', 'leftEye'),
    ('leftEye', 'leftEar'),
    ('nose', 'rightEye'),
    ('rightEye', 'rightEar'),
    # Left side
    ('nose', 'leftShoulder'),
    ('leftShoulder', 'leftElbow'),
    ('leftElbow', 'leftWrist'),
    ('leftShoulder', 'leftHip'),
    ('leftHip', 'leftKnee'),
    ('leftKnee', 'leftAnkle'),
    # Right side
    ('nose', 'rightShoulder'),
    ('rightShoulder', 'rightElbow'),
    ('rightElbow', 'rightWrist'),
    ('rightShoulder', 'rightHip'),
    ('rightHip', 'rightKnee'),
    ('rightKnee', 'rightAnkle'),
)

# ===== Decoder Defaults =====
# Values used by the PoseNet MobileNet model at 641x481 input
DEFAULT_OUTPUT_STRIDE = 16
DEFAULT_MAX_POSE_DETECTIONS = 20
DEFAULT_MIN_POSE_SCORE = 0.10
DEFAULT_HEATMAP_SCORE_THRESHOLD = 0.35
DEFAULT_NMS_RADIUS = 20
DEFAULT_FEATURE_HEIGHT = 31
DEFAULT_FEATURE_WIDTH = 41
DEFAULT_LOCAL_MAX_RADIUS = 1

DEFAULT_MODEL_INPUT_WIDTH = 641
DEFAULT_MODEL_INPUT_HEIGHT = 481

# Raw displacement tensor holds 4 channel groups per edge:
# forward (y, x) followed by backward (y, x)
DISPLACEMENT_GROUPS = 4

# ===== String Constants =====
ENV_PREFIX = 'MULTIPOSE_'

# CSV column names
CSV_POSE_COLUMNS = [
    'frame', 'pose_id', 'pose_score'
] + [f'{kpt}_{field}' for kpt in KEYPOINT_NAMES for field in ['x', 'y', 'score']]
