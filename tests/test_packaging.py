from pathlib import Path

import cv2
import pytest

tomllib = pytest.importorskip("tomllib")

PYPROJECT = Path(__file__).resolve().parent.parent / "pyproject.toml"


def project_table():
    with open(PYPROJECT, "rb") as f:
        return tomllib.load(f)["project"]


def test_opencv_pinned_below_5():
    opencv = [dep for dep in project_table()["dependencies"] if dep.startswith("opencv")]

    assert len(opencv) == 1
    assert "<5" in opencv[0]


def test_installed_opencv_has_cascade_api():
    assert hasattr(cv2, "CascadeClassifier")
    assert hasattr(cv2, "data")


def test_requests_only_in_example_extra():
    project = project_table()

    assert not any(dep.startswith("requests") for dep in project["dependencies"])
    assert any(dep.startswith("requests") for dep in project["optional-dependencies"]["example"])
