import math

import pytest

from path_tracker.models import AnchorFix, LatLng, TrajectoryPoint, Vector3
from path_tracker.projection import (
    METERS_PER_DEGREE,
    haversine_distance,
    meters_per_degree_lon,
    path_length,
    project,
    project_path,
    unproject,
)

ANCHOR = AnchorFix(52.0, 13.0)


def test_zero_displacement_is_anchor():
    assert project(ANCHOR, Vector3(0.0, 0.0, 0.0)) == LatLng(52.0, 13.0)


def test_east_displacement():
    position = project(ANCHOR, Vector3(111.32, 0.0, 0.0))
    expected = 13.0 + 111.32 / (METERS_PER_DEGREE * math.cos(math.radians(52.0)))
    assert position.longitude == pytest.approx(expected)
    assert position.latitude == 52.0


def test_north_displacement():
    position = project(ANCHOR, Vector3(0.0, 111.32, 0.0))
    assert position.latitude == pytest.approx(52.001)
    assert position.longitude == 13.0


def test_vertical_component_ignored():
    assert project(ANCHOR, Vector3(0.0, 0.0, 500.0)) == project(ANCHOR, Vector3(0.0, 0.0, 0.0))


def test_pole_does_not_divide_by_zero():
    pole = AnchorFix(90.0, 20.0)
    assert meters_per_degree_lon(90.0) == 0.0
    position = project(pole, Vector3(250.0, -100.0, 0.0))
    assert position.longitude == 20.0
    assert math.isfinite(position.latitude)


def test_longitude_wraps_at_antimeridian():
    anchor = AnchorFix(0.0, 179.9999)
    position = project(anchor, Vector3(1000.0, 0.0, 0.0))
    assert -180.0 <= position.longitude < 180.0
    assert position.longitude < 0


def test_unproject_inverts_project():
    displacement = Vector3(-321.5, 87.25, 0.0)
    back = unproject(ANCHOR, project(ANCHOR, displacement))
    assert back.x == pytest.approx(displacement.x)
    assert back.y == pytest.approx(displacement.y)


def test_project_path_accepts_points_and_vectors():
    points = [TrajectoryPoint(Vector3(0.0, float(i), 0.0), timestamp=float(i)) for i in range(3)]
    from_points = project_path(ANCHOR, points)
    from_vectors = project_path(ANCHOR, [p.displacement for p in points])
    assert from_points == from_vectors
    assert len(from_points) == 3


def test_haversine_roughly_matches_flat_projection():
    start = LatLng(ANCHOR.latitude, ANCHOR.longitude)
    end = project(ANCHOR, Vector3(300.0, 400.0, 0.0))
    assert haversine_distance(start, end) == pytest.approx(500.0, rel=1e-2)

    track = [start, project(ANCHOR, Vector3(0.0, 100.0, 0.0)), project(ANCHOR, Vector3(100.0, 100.0, 0.0))]
    assert path_length(track) == pytest.approx(200.0, rel=1e-2)
    assert path_length([start]) == 0.0
