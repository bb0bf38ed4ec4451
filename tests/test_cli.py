import pytest

from roofseg import ply
from roofseg.cli import Paths, main, parse_paths
from roofseg.geometry import Vec3
from roofseg.pointset import PointSet


def test_parse_paths():
    paths = parse_paths(["input=a.ply", "output=b.ply"])
    assert paths == Paths("a.ply", "b.ply")


def test_parse_paths_takes_second_field():
    paths = parse_paths(["in=x=y", "out=z"])
    assert paths.read_path == "x"
    assert paths.save_path == "z"


def test_parse_paths_needs_separator():
    with pytest.raises(ValueError):
        parse_paths(["a.ply", "output=b.ply"])


def test_parse_paths_needs_two_arguments():
    with pytest.raises(ValueError):
        parse_paths(["input=a.ply"])


def test_main_bad_usage():
    assert main(["only-one"]) == 2


def test_main_missing_input(tmp_path):
    out = tmp_path / "out.ply"
    status = main([f"input={tmp_path / 'missing.ply'}", f"output={out}"])
    assert status == 1
    assert not out.exists()


def test_main_colours_flat_roof(tmp_path):
    points = [Vec3(0.125 * i, 0.125 * j, 2.0) for i in range(25) for j in range(25)]
    src = tmp_path / "in.ply"
    out = tmp_path / "out.ply"
    ply.write(PointSet(points), src)

    assert main([f"input={src}", f"output={out}"]) == 0

    result = ply.read(out)
    assert len(result) == len(points)
    assert result.bounding_box().min == Vec3(0, 0, 0)
    colours = set(result.colors)
    assert len(colours) == 1
    (colour,) = colours
    assert all(55 <= c < 255 for c in colour)