# tests/test_renderer.py

import constants
from renderer import hud_lines, interpolate_color, wavelength_to_rgb


def test_interpolate_color_between_and_beyond_keyframes():
    keyframes = [(0.0, (0, 0, 0)), (10.0, (200, 100, 50))]
    assert interpolate_color(5.0, keyframes) == (100, 50, 25)
    assert interpolate_color(-1.0, keyframes) == (0, 0, 0)
    assert interpolate_color(11.0, keyframes) == (200, 100, 50)


def test_wavelength_colors():
    assert wavelength_to_rgb(645.0) == (255, 0, 0)
    assert wavelength_to_rgb(200.0) == (150, 120, 200)
    assert wavelength_to_rgb(900.0) == constants.SPECTRUM_KEYFRAMES[-1][1]


def test_millikan_hud_shows_the_stopwatch(make_engine):
    engine = make_engine("millikan")
    engine.tick(0.0)
    engine.toggle_stopwatch()
    for t in range(100, 1600, 100):
        engine.tick(float(t))
    lines = hud_lines(engine.snapshot)
    assert "stopwatch: 00:01.50" in lines
    assert lines[0].startswith("millikan")


def test_hud_skips_values_the_snapshot_lacks(make_engine):
    # No drop selected, so no radius line.
    lines = hud_lines(make_engine("millikan").tick(0.0))
    assert not any(line.startswith("r:") for line in lines)
    assert "U: 0 V" in lines
