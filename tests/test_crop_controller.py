import math
import random
import threading

import pytest

from iCrop.core.controller import (
    ClampIntent,
    CropController,
    CropperConfig,
    FitIntent,
    PanIntent,
    RotateIntent,
    RotateToIntent,
    WheelIntent,
    ZoomByIntent,
    ZoomIntent,
    reduce,
    scale_bounds,
)
from iCrop.core.cover import covers_crop, min_cover_scale
from iCrop.core.transform import Size, apply, build_matrix, inverse
from iCrop.errors import GeometryError, InvalidSourceError


def _image_point_under(transform, viewport_point):
    return apply(inverse(build_matrix(transform)), *viewport_point)


@pytest.fixture
def controller(landscape, square_crop):
    return CropController(landscape, square_crop)


def test_initial_state_is_cover_fit(controller, landscape, square_crop):
    t = controller.transform
    assert t.scale == pytest.approx(0.8)
    assert t.rotation == 0.0
    assert covers_crop(t, landscape, square_crop)


def test_scale_limits(controller):
    lower, upper = controller.scale_limits()
    assert lower == pytest.approx(0.8)
    assert upper == pytest.approx(8.0)


def test_set_scale_clamps_to_bounds(controller):
    assert controller.set_scale(0.01).scale == pytest.approx(0.8)
    assert controller.set_scale(100.0).scale == pytest.approx(8.0)


def test_cover_bound_wins_over_max_zoom():
    lower, upper = scale_bounds(0.0, Size(10, 10), Size(400, 400), CropperConfig())
    assert lower == pytest.approx(40.0)
    assert upper == lower


def test_wheel_steps_are_multiplicative(controller):
    start = controller.set_scale(2.0).scale
    assert controller.wheel_zoom(-120).scale == pytest.approx(start * 1.05)
    assert controller.wheel_zoom(120).scale == pytest.approx(start * 1.05 * 0.95)


def test_wheel_zoom_out_stops_at_cover(controller):
    for _ in range(10):
        controller.wheel_zoom(1)
    assert controller.transform.scale == pytest.approx(0.8)


def test_zero_wheel_delta_is_ignored(controller):
    before = controller.transform
    assert controller.wheel_zoom(0) == before


def test_zoom_keeps_anchor_stationary(controller):
    anchor = (100.0, 150.0)
    before = _image_point_under(controller.transform, anchor)
    after_t = controller.zoom_by(2.0, anchor=anchor)
    after = _image_point_under(after_t, anchor)
    assert after_t.scale == pytest.approx(1.6)
    assert after[0] == pytest.approx(before[0])
    assert after[1] == pytest.approx(before[1])


def test_rotation_pivots_around_crop_centre(controller, square_crop):
    controller.zoom_by(4.0)
    before = _image_point_under(controller.transform, square_crop.center)
    t = controller.rotate_by(0.3)
    after = _image_point_under(t, square_crop.center)
    assert t.rotation == pytest.approx(0.3)
    assert t.scale == pytest.approx(3.2)
    assert after[0] == pytest.approx(before[0])
    assert after[1] == pytest.approx(before[1])


def test_rotation_raises_scale_to_new_cover_bound(landscape):
    crop = Size(800, 200)
    controller = CropController(landscape, crop)
    assert controller.transform.scale == pytest.approx(0.8)

    t = controller.rotate_by(math.pi / 2)

    assert t.scale == pytest.approx(1.6)
    assert t.scale >= min_cover_scale(landscape, crop, t.rotation) - 1e-9
    assert covers_crop(t, landscape, crop)


def test_rotation_is_normalised(controller):
    t = controller.rotate_by(3 * math.pi)
    assert abs(t.rotation) == pytest.approx(math.pi)
    t = controller.set_rotation(-0.5)
    assert t.rotation == pytest.approx(-0.5)


def test_rotation_kept_raw_when_normalisation_disabled(landscape, square_crop):
    controller = CropController(landscape, square_crop, CropperConfig(normalize_rotation=False))
    assert controller.rotate_by(3 * math.pi).rotation == pytest.approx(3 * math.pi)


def test_pan_is_clamped(controller, landscape, square_crop):
    t = controller.pan_by(10_000.0, -10_000.0)
    assert covers_crop(t, landscape, square_crop)


def test_pan_moves_freely_inside_slack(controller):
    start = controller.transform
    t = controller.pan_by(-50.0, 0.0)
    assert t.tx == pytest.approx(start.tx - 50.0)
    assert t.ty == pytest.approx(start.ty)


def test_fit_is_idempotent(controller):
    controller.zoom_by(3.0)
    controller.pan_by(40.0, 12.0)
    first = controller.fit()
    assert controller.fit() == first


def test_allow_padding_unlocks_zoom_out_and_pan(landscape, square_crop):
    controller = CropController(landscape, square_crop, CropperConfig(allow_padding=True))
    assert controller.set_scale(0.01).scale == pytest.approx(0.01)
    assert controller.set_scale(1e-5).scale == pytest.approx(0.002)
    before = controller.transform
    after = controller.pan_by(10_000.0, 0.0)
    assert after.tx == pytest.approx(before.tx + 10_000.0)


def test_on_change_fires_only_for_real_changes(landscape, square_crop):
    seen = []
    controller = CropController(landscape, square_crop, on_change=seen.append)
    controller.pan_by(0.0, 25.0)
    assert seen == []
    controller.zoom_by(2.0)
    assert seen == [controller.transform]


def test_set_crop_size_refits_and_keeps_rotation(landscape):
    controller = CropController(landscape, Size(400, 400), initial_rotation=0.5)
    controller.zoom_by(3.0)

    new_crop = Size(300, 200)
    t = controller.set_crop_size(new_crop)

    assert controller.crop_size == new_crop
    assert t.rotation == pytest.approx(0.5)
    assert t.scale == pytest.approx(min_cover_scale(landscape, new_crop, 0.5))
    cx, cy = apply(build_matrix(t), *landscape.center)
    assert (cx, cy) == pytest.approx(new_crop.center)


def test_set_image_size_refits(controller, square_crop):
    t = controller.set_image_size(Size(300, 900))
    assert t.scale == pytest.approx(400 / 300)
    assert covers_crop(t, Size(300, 900), square_crop)


def test_reduce_rejects_unknown_intent(landscape, square_crop):
    with pytest.raises(TypeError):
        reduce(CropController(landscape, square_crop).transform, object(), landscape, square_crop, CropperConfig())


def _random_intents(seed, count):
    rng = random.Random(seed)
    intents = []
    for _ in range(count):
        kind = rng.randrange(8)
        if kind == 0:
            intents.append(ZoomIntent(rng.uniform(0.0, 10.0), (rng.uniform(0, 400), rng.uniform(0, 400))))
        elif kind == 1:
            intents.append(WheelIntent(rng.choice([-120.0, 120.0, -1.0, 3.0])))
        elif kind == 2:
            intents.append(PanIntent(rng.uniform(-300, 300), rng.uniform(-300, 300)))
        elif kind == 3:
            intents.append(RotateIntent(rng.uniform(-1.0, 1.0)))
        elif kind == 4:
            intents.append(ClampIntent())
        elif kind == 5:
            intents.append(ZoomByIntent(rng.uniform(0.5, 2.0)))
        elif kind == 6:
            intents.append(RotateToIntent(rng.uniform(-4.0, 4.0)))
        else:
            intents.append(FitIntent())
    return intents


@pytest.mark.parametrize("seed", [1, 2, 3])
def test_every_intent_preserves_cover(landscape, square_crop, seed):
    controller = CropController(landscape, square_crop)
    for intent in _random_intents(seed, 150):
        t = controller.dispatch(intent)
        lower, upper = controller.scale_limits()
        assert lower - 1e-9 <= t.scale <= upper + 1e-9
        assert covers_crop(t, landscape, square_crop)


def test_replay_is_deterministic(landscape, square_crop):
    intents = _random_intents(11, 80)
    first = CropController(landscape, square_crop).replay(intents)
    second = CropController(landscape, square_crop).replay(intents)
    assert first == second


def test_concurrent_dispatch_keeps_cover(landscape, square_crop):
    controller = CropController(landscape, square_crop)
    controller.zoom_by(2.5)

    def worker(seed):
        rng = random.Random(seed)
        for _ in range(100):
            controller.pan_by(rng.uniform(-80, 80), rng.uniform(-80, 80))

    threads = [threading.Thread(target=worker, args=(seed,)) for seed in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert covers_crop(controller.transform, landscape, square_crop)


def test_relative_and_absolute_intents(controller):
    assert controller.dispatch(ZoomByIntent(2.0)).scale == pytest.approx(1.6)
    assert controller.dispatch(RotateToIntent(0.7)).rotation == pytest.approx(0.7)
    assert controller.dispatch(RotateToIntent(0.7)).rotation == pytest.approx(0.7)


def test_concurrent_zoom_by_loses_no_updates(landscape, square_crop):
    controller = CropController(landscape, square_crop)
    controller.zoom_by(2.0)
    expected = controller.transform.scale
    for _ in range(200):
        expected *= 1.001

    def worker():
        for _ in range(50):
            controller.zoom_by(1.001)

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert controller.transform.scale == pytest.approx(expected)


@pytest.mark.parametrize("image", [Size(0, 0), Size(0, 300), Size(300, 0)])
def test_undecoded_image_is_rejected(image, square_crop):
    with pytest.raises(InvalidSourceError):
        CropController(image, square_crop)


def test_size_changes_to_empty_are_rejected(controller, landscape, square_crop):
    before = controller.transform
    with pytest.raises(InvalidSourceError):
        controller.set_image_size(Size(0, 500))
    with pytest.raises(GeometryError):
        controller.set_crop_size(Size(0, 0))
    assert controller.transform == before
    assert controller.image_size == landscape
    assert controller.crop_size == square_crop
