"""
Tests for pose decoding: propagation, NMS and the decode_poses entry point
"""

from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest

from multipose.core.config import DecoderConfig
from multipose.core.exceptions import ConfigError, TensorShapeError, ResourceExhaustedError
from multipose.pose import (
    DecodedPose,
    InstanceAssembler,
    PoseGraph,
    PoseDecoder,
    PoseInstance,
    decode_poses,
    get_pose_graph,
    instance_score,
    poses_to_array,
    root_is_suppressed,
)
from multipose.scoring import Candidate, select_candidates
from multipose.tensors import reshape_offsets, reshape_displacements
from multipose.tests.synthetic import empty_outputs, person_outputs, random_outputs

# Heatmap given as probabilities: 1.0 peak, 0.0 elsewhere
PROB = dict(normalize_heatmap=False)


def _build_decoder(config, heatmap, offsets, displacements):
    bwd, fwd = reshape_displacements(displacements, config)
    return PoseDecoder(config, get_pose_graph(), heatmap.reshape(-1),
                       reshape_offsets(offsets, config), bwd, fwd)


# ===== Single clean peak =====

def test_single_clean_peak_from_logits():
    """Large logits normalize to exactly 1.0 and 0.0"""
    config = DecoderConfig()
    heatmap, offsets, displacements = person_outputs(config, [(10, 20, 100.0)],
                                                     background=-100.0)

    poses = decode_poses(heatmap, offsets, displacements, config)

    assert len(poses) == 1
    pose = poses[0]
    assert pose.pose_score == 1.0
    assert len(pose.keypoints) == 17
    for kpt in pose.keypoints:
        assert (kpt.x, kpt.y) == (20 * 16, 10 * 16)
        assert kpt.score == 1.0
    print("✓ Single clean peak")


def test_single_clean_peak_from_probabilities():
    config = DecoderConfig(**PROB)
    heatmap, offsets, displacements = person_outputs(config, [(0, 0, 1.0)])

    poses = decode_poses(heatmap, offsets, displacements, config)

    assert len(poses) == 1
    assert poses[0].pose_score == 1.0
    assert all((k.x, k.y) == (0, 0) for k in poses[0].keypoints)


def test_scale_back_to_source_frame():
    config = DecoderConfig(**PROB)
    heatmap, offsets, displacements = person_outputs(config, [(10, 20, 1.0)])

    poses = decode_poses(heatmap, offsets, displacements, config,
                         scale_x=2.0, scale_y=1.5)

    nose = poses[0].keypoint('nose')
    assert (nose.x, nose.y) == (640, 240)


def test_short_range_offsets_refine_coordinates():
    config = DecoderConfig(**PROB)
    heatmap, offsets, displacements = person_outputs(config, [(10, 20, 1.0)])
    offsets[10, 20, 0, :] = 3.4    # y
    offsets[10, 20, 1, :] = -2.6   # x

    poses = decode_poses(heatmap, offsets, displacements, config)

    for kpt in poses[0].keypoints:
        assert (kpt.x, kpt.y) == (317, 163)


# ===== Propagation =====

def test_forward_displacement_moves_child():
    config = DecoderConfig(min_pose_score=0.05, heatmap_score_threshold=0.3, **PROB)
    graph = get_pose_graph()
    nose, left_eye = graph.keypoint_id('nose'), graph.keypoint_id('leftEye')

    heatmap, offsets, displacements = empty_outputs(config)
    heatmap[5, 5, nose] = 0.9
    heatmap[5, 8, left_eye] = 0.8
    # edge 0 is nose -> leftEye; forward x displacement of 3 cells
    displacements[5, 5, 1, 0] = 48.0

    poses = decode_poses(heatmap, offsets, displacements, config)

    assert len(poses) == 1
    pose = poses[0]
    assert (pose.keypoint('nose').x, pose.keypoint('nose').y) == (80, 80)
    assert (pose.keypoint('leftEye').x, pose.keypoint('leftEye').y) == (128, 80)
    assert pose.keypoint('leftEye').score == pytest.approx(0.8)
    # zero-score keypoints stay where their source pointed, and stop propagation
    assert pose.keypoint('rightEye').score == 0.0
    assert pose.keypoint('leftEar').score == 0.0
    assert pose.pose_score == pytest.approx((0.9 + 0.8) / 17)


def test_backward_displacement_moves_parent():
    config = DecoderConfig(min_pose_score=0.05, heatmap_score_threshold=0.3, **PROB)
    graph = get_pose_graph()
    nose, left_eye = graph.keypoint_id('nose'), graph.keypoint_id('leftEye')

    heatmap, offsets, displacements = empty_outputs(config)
    heatmap[5, 8, left_eye] = 0.8
    heatmap[5, 5, nose] = 0.6
    # edge 0 backward (leftEye -> nose): x displacement of -3 cells
    displacements[5, 8, 3, 0] = -48.0

    poses = decode_poses(heatmap, offsets, displacements, config)

    assert len(poses) == 1
    pose = poses[0]
    assert (pose.keypoint('leftEye').x, pose.keypoint('leftEye').y) == (128, 80)
    assert (pose.keypoint('nose').x, pose.keypoint('nose').y) == (80, 80)
    assert pose.keypoint('nose').score == pytest.approx(0.6)


def test_displaced_point_is_clamped_to_grid():
    config = DecoderConfig(feature_height=6, feature_width=6, min_pose_score=0.0,
                           heatmap_score_threshold=0.3, **PROB)
    heatmap, offsets, displacements = empty_outputs(config)
    heatmap[2, 2, 0] = 0.9
    heatmap[5, 0, 1] = 0.7
    # nose -> leftEye jumps far outside the map
    displacements[2, 2, 0, 0] = 1000.0
    displacements[2, 2, 1, 0] = -1000.0

    decoder = _build_decoder(config, heatmap, offsets, displacements)
    pose = decoder.decode(Candidate(row=2, col=2, keypoint_id=0, score=0.9))

    assert pose.keypoint_scores[1] == pytest.approx(0.7)
    np.testing.assert_array_equal(pose.keypoint_coords[1], [80.0, 0.0])


@pytest.mark.parametrize("root_id", range(17))
def test_every_root_reaches_all_keypoints(root_id):
    config = DecoderConfig(feature_height=9, feature_width=11, **PROB)
    rng = np.random.default_rng(root_id)
    heatmap, offsets, displacements = empty_outputs(config)
    heatmap[:] = rng.uniform(0.5, 1.0, size=heatmap.shape)
    displacements[:] = rng.normal(0.0, 20.0, size=displacements.shape)
    offsets[:] = rng.normal(0.0, 4.0, size=offsets.shape)

    decoder = _build_decoder(config, heatmap, offsets, displacements)
    pose = decoder.decode(Candidate(row=4, col=5, keypoint_id=root_id,
                                    score=float(heatmap[4, 5, root_id])))

    assert np.all(pose.keypoint_scores > 0)


def test_root_coords():
    config = DecoderConfig(**PROB)
    heatmap, offsets, displacements = empty_outputs(config)
    offsets[3, 7, 0, 4] = 1.5
    offsets[3, 7, 1, 4] = -0.5

    decoder = _build_decoder(config, heatmap, offsets, displacements)
    coords = decoder.root_coords(Candidate(row=3, col=7, keypoint_id=4, score=0.9))

    np.testing.assert_array_equal(coords, [3 * 16 + 1.5, 7 * 16 - 0.5])


# ===== NMS =====

def test_roots_of_one_person_yield_one_pose():
    """17 root candidates on the same cell, only the first is decoded"""
    config = DecoderConfig(nms_radius=20, **PROB)
    heatmap, offsets, displacements = person_outputs(config, [(10, 20, 1.0)])

    assert len(select_candidates(config, heatmap.reshape(-1))) == 17
    assert len(decode_poses(heatmap, offsets, displacements, config)) == 1


def test_nearby_person_is_suppressed_by_overlap_score():
    """
    Two cells apart: the root pre-filter does not fire, but every
    keypoint overlaps, so the instance score is zero
    """
    heatmap, offsets, displacements = person_outputs(
        DecoderConfig(**PROB), [(10, 20, 1.0), (10, 22, 0.9)]
    )

    wide = DecoderConfig(nms_radius=50, **PROB)
    assert len(decode_poses(heatmap, offsets, displacements, wide)) == 1

    narrow = DecoderConfig(nms_radius=20, **PROB)
    poses = decode_poses(heatmap, offsets, displacements, narrow)
    assert len(poses) == 2
    assert poses[1].pose_score == pytest.approx(0.9)


def test_root_prefilter_uses_doubly_squared_distance():
    pose = DecodedPose.empty(17)
    pose.keypoint_coords[3] = [100.0, 100.0]

    # distance 4: (4**2) ** 2 = 256 < 400
    assert root_is_suppressed([pose], 3, np.array([100.0, 104.0]), 400)
    # distance 5: (5**2) ** 2 = 625 >= 400, though 5 < nms_radius 20
    assert not root_is_suppressed([pose], 3, np.array([103.0, 104.0]), 400)
    assert not root_is_suppressed([], 3, np.array([100.0, 100.0]), 400)


def test_instance_score_counts_only_non_overlapped_keypoints():
    accepted = DecodedPose.empty(4)
    accepted.keypoint_coords[:] = [[0, 0], [0, 0], [50, 50], [0, 0]]

    pose = DecodedPose.empty(4)
    pose.keypoint_scores[:] = [0.8, 0.6, 0.4, 0.2]
    pose.keypoint_coords[:] = [[0, 30], [0, 10], [50, 50], [0, 20]]

    # squared radius 400: keypoint 0 (900) counts, 3 (400) does not
    score = instance_score([accepted], pose, 400, 4)
    assert score == pytest.approx(0.8 / 4)

    assert instance_score([], pose, 400, 4) == pytest.approx(2.0 / 4)


def test_instance_score_must_clear_every_accepted_pose():
    first = DecodedPose.empty(2)
    second = DecodedPose.empty(2)
    second.keypoint_coords[:] = [[100, 100], [100, 100]]

    pose = DecodedPose.empty(2)
    pose.keypoint_scores[:] = [1.0, 1.0]
    pose.keypoint_coords[:] = [[100, 100], [50, 50]]

    # keypoint 0 overlaps the second pose, keypoint 1 clears both
    assert instance_score([first, second], pose, 400, 2) == pytest.approx(0.5)


# ===== Acceptance =====

def test_max_detections_cap():
    config = DecoderConfig(max_pose_detections=3, **PROB)
    scores = [0.7, 0.95, 0.8, 0.9, 0.75, 0.85]
    peaks = [(15, 2 + 6 * i, s) for i, s in enumerate(scores)]
    heatmap, offsets, displacements = person_outputs(config, peaks)

    poses = decode_poses(heatmap, offsets, displacements, config)

    assert len(poses) == 3
    assert [p.pose_score for p in poses] == pytest.approx([0.95, 0.9, 0.85])
    assert [p.keypoint('nose').x for p in poses] == [8 * 16, 20 * 16, 32 * 16]
    print("✓ Max detections cap")


def test_all_well_separated_peaks_without_cap():
    config = DecoderConfig(**PROB)
    peaks = [(5, 5, 0.9), (5, 30, 0.8), (25, 5, 0.7), (25, 30, 0.6)]
    heatmap, offsets, displacements = person_outputs(config, peaks)

    poses = decode_poses(heatmap, offsets, displacements, config)

    assert len(poses) == 4
    assert [(p.keypoint('nose').y, p.keypoint('nose').x) for p in poses] == [
        (80, 80), (80, 480), (400, 80), (400, 480)
    ]


def test_heatmap_threshold_is_strict():
    config = DecoderConfig(heatmap_score_threshold=0.5, **PROB)
    heatmap, offsets, displacements = person_outputs(config, [(10, 20, 0.5)])

    assert decode_poses(heatmap, offsets, displacements, config) == []


def test_min_pose_score_is_strict():
    heatmap, offsets, displacements = person_outputs(
        DecoderConfig(**PROB), [(10, 20, 0.5)]
    )

    at_threshold = DecoderConfig(heatmap_score_threshold=0.25, min_pose_score=0.5, **PROB)
    assert decode_poses(heatmap, offsets, displacements, at_threshold) == []

    below = DecoderConfig(heatmap_score_threshold=0.25, min_pose_score=0.49, **PROB)
    poses = decode_poses(heatmap, offsets, displacements, below)
    assert len(poses) == 1
    assert poses[0].pose_score == 0.5


def test_no_candidates_gives_no_poses():
    config = DecoderConfig()
    heatmap, offsets, displacements = empty_outputs(config, background=-10.0)

    assert decode_poses(heatmap, offsets, displacements, config) == []


def test_assembler_ties_keep_emission_order():
    config = DecoderConfig(max_pose_detections=1, **PROB)
    heatmap, offsets, displacements = person_outputs(
        config, [(5, 5, 0.8), (20, 30, 0.8)]
    )
    decoder = _build_decoder(config, heatmap, offsets, displacements)
    candidates = [
        Candidate(row=20, col=30, keypoint_id=0, score=0.8),
        Candidate(row=5, col=5, keypoint_id=0, score=0.8),
    ]

    poses = InstanceAssembler(config).assemble(candidates, decoder)

    assert len(poses) == 1
    np.testing.assert_array_equal(poses[0].keypoint_coords[0], [320.0, 480.0])


# ===== Determinism, purity, errors =====

def test_decode_is_deterministic_and_pure():
    config = DecoderConfig()
    heatmap, offsets, displacements = random_outputs(config, seed=3)
    originals = [heatmap.copy(), offsets.copy(), displacements.copy()]

    first = decode_poses(heatmap, offsets, displacements, config)
    second = decode_poses(heatmap, offsets, displacements, config)

    assert first == second
    assert len(first) > 0
    for before, after in zip(originals, (heatmap, offsets, displacements)):
        assert before.tobytes() == after.tobytes()


def test_decode_is_thread_safe():
    config = DecoderConfig()
    frames = [random_outputs(config, seed=s) for s in range(4)]
    expected = [decode_poses(*frame, config) for frame in frames]

    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(lambda frame: decode_poses(*frame, config), frames * 3))

    assert results == expected * 3


def test_results_are_sorted_by_acceptance_and_bounded():
    config = DecoderConfig()
    heatmap, offsets, displacements = random_outputs(config, seed=11)

    poses = decode_poses(heatmap, offsets, displacements, config)

    assert len(poses) <= config.max_pose_detections
    for pose in poses:
        assert isinstance(pose, PoseInstance)
        assert pose.pose_score > config.min_pose_score
        assert all(isinstance(k.x, int) and isinstance(k.y, int) for k in pose.keypoints)


def test_nan_heatmap_values_do_not_raise():
    config = DecoderConfig(**PROB)
    heatmap, offsets, displacements = person_outputs(config, [(10, 20, 1.0)])
    heatmap[10, 20, 5] = np.nan

    poses = decode_poses(heatmap, offsets, displacements, config)

    # the NaN keypoint makes the mean NaN, which fails "> min_pose_score"
    assert poses == []


def test_flat_inputs_are_accepted():
    config = DecoderConfig(**PROB)
    heatmap, offsets, displacements = person_outputs(config, [(10, 20, 1.0)])

    shaped = decode_poses(heatmap, offsets, displacements, config)
    flat = decode_poses(heatmap.ravel().tolist(), offsets.ravel(), displacements.ravel(),
                        config)

    assert flat == shaped


def test_tensor_size_mismatch():
    config = DecoderConfig()
    heatmap, offsets, displacements = empty_outputs(config)

    with pytest.raises(TensorShapeError):
        decode_poses(heatmap[:-1], offsets, displacements, config)
    with pytest.raises(TensorShapeError):
        decode_poses(heatmap, offsets, displacements[..., :-1], config)


def test_keypoint_count_must_match_graph():
    config = DecoderConfig(num_keypoints=5)
    heatmap, offsets, displacements = empty_outputs(config)

    with pytest.raises(ConfigError):
        decode_poses(heatmap, offsets, displacements, config)


def test_allocation_failure_does_not_exit(monkeypatch):
    config = DecoderConfig()
    heatmap, offsets, displacements = random_outputs(config)

    def no_memory(*args, **kwargs):
        raise MemoryError()

    monkeypatch.setattr(np, "ascontiguousarray", no_memory)
    with pytest.raises(ResourceExhaustedError):
        decode_poses(heatmap, offsets, displacements, config)


@pytest.mark.parametrize("target", [
    "multipose.scoring.score_field.maximum_filter_2d",
    "multipose.pose.types.DecodedPose.empty",
    "multipose.pose.assembler.reshape_displacements",
])
def test_any_allocation_failure_is_reported(monkeypatch, target):
    config = DecoderConfig()
    heatmap, offsets, displacements = random_outputs(config)

    def no_memory(*args, **kwargs):
        raise MemoryError()

    monkeypatch.setattr(target, no_memory)
    with pytest.raises(ResourceExhaustedError):
        decode_poses(heatmap, offsets, displacements, config)


# ===== Custom pose graphs =====

def test_custom_graph_labels_results():
    graph = PoseGraph(('head', 'neck', 'hip'), (('head', 'neck'), ('neck', 'hip')))
    config = DecoderConfig(feature_height=8, feature_width=10, num_keypoints=3, **PROB)
    heatmap, offsets, displacements = person_outputs(config, [(3, 4, 1.0)])
    offsets[3, 4, 1, 2] = 5.0   # hip x

    poses = decode_poses(heatmap, offsets, displacements, config, graph=graph)

    assert len(poses) == 1
    pose = poses[0]
    assert pose.keypoint_names == ('head', 'neck', 'hip')
    assert (pose.keypoint('neck').x, pose.keypoint('neck').y) == (64, 48)
    assert pose.to_dict() == {
        'head': (64, 48, 1.0),
        'neck': (64, 48, 1.0),
        'hip': (69, 48, 1.0),
    }
    assert poses_to_array(poses).shape == (1, 3, 3)
    with pytest.raises(KeyError):
        pose.keypoint('nose')
    print("✓ Custom graph labels")
