#!/usr/bin/env -S uv run --script

# /// script
# requires-python = ">=3.12"
# dependencies = [
#     "click",
#     "pytest",
# ]
# ///

import sys
from pathlib import Path

import pytest

from python_packages import (
    Package,
    expand_patterns,
    is_import_name,
    is_test_file,
    load_package,
)
from rename_errors import PackageError


@pytest.fixture
def project(tmp_path):
    """Create a small project tree with packages, tests and noise."""
    files = [
        "app/__init__.py",
        "app/models.py",
        "app/test_models.py",
        "app/models_test.py",
        "app/tests/test_app.py",
        "app/core/__init__.py",
        "app/core/engine.py",
        "app/__pycache__/models.py",
        ".venv/lib/site.py",
        "docs/readme.txt",
        "script.py",
    ]
    for name in files:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("x = 1\n")
    return tmp_path


def test_is_test_file():
    """Test classification of test module names."""
    assert is_test_file("test_models.py")
    assert is_test_file("models_test.py")
    assert is_test_file("conftest.py")
    assert not is_test_file("models.py")
    assert not is_test_file("latest.py")


def test_is_import_name():
    """Test recognition of dotted import names."""
    assert is_import_name("json")
    assert is_import_name("email.mime")
    assert not is_import_name("./src")
    assert not is_import_name("src/app")
    assert not is_import_name("app...")


def test_load_package_directory(project):
    """Test a directory splits into sources, tests and external tests."""
    package = load_package(str(project / "app"))

    assert package.directory == (project / "app").resolve()
    assert package.source_files == ("__init__.py", "models.py")
    assert package.test_files == ("models_test.py", "test_models.py")
    assert package.external_test_files == ("tests/test_app.py",)
    assert package.files() == [
        package.directory / "__init__.py",
        package.directory / "models.py",
        package.directory / "models_test.py",
        package.directory / "test_models.py",
        package.directory / "tests" / "test_app.py",
    ]


def test_load_package_single_file(project):
    """Test a single .py file is a package of one file."""
    package = load_package(str(project / "script.py"))

    assert package.source_files == ("script.py",)
    assert package.files() == [project.resolve() / "script.py"]


def test_load_package_import_name():
    """Test dotted import names resolve through sys.path."""
    package = load_package("json")

    assert isinstance(package, Package)
    assert "__init__.py" in package.source_files
    assert "decoder.py" in package.source_files


@pytest.mark.parametrize(
    "location",
    [
        "no_such_package_12345",
        "/nonexistent_directory_12345/pkg.py",
        "./missing/dir",
        "sys",
    ],
)
def test_load_package_errors(location):
    """Test unresolvable locations raise PackageError."""
    with pytest.raises(PackageError) as excinfo:
        load_package(location)
    assert excinfo.value.path == location
    assert location in str(excinfo.value)


def test_load_package_without_python_files(project):
    """Test a directory with no Python files is an error."""
    with pytest.raises(PackageError, match="no Python source files"):
        load_package(str(project / "docs"))


def test_expand_patterns_default():
    """Test no patterns means the current directory."""
    assert expand_patterns([]) == ["."]


def test_expand_patterns_recursive(project):
    """Test dir/... finds every package below dir and skips noise."""
    locations = expand_patterns([f"{project}/..."])

    assert locations == [
        str(project),
        str(project / "app"),
        str(project / "app" / "core"),
    ]


def test_expand_patterns_glob(project, monkeypatch):
    """Test glob patterns match directories and .py files."""
    monkeypatch.chdir(project)

    assert expand_patterns(["app/c*"]) == [str(Path("app/core"))]
    assert expand_patterns(["app/*_test.py"]) == [str(Path("app/models_test.py"))]
    assert expand_patterns(["*.py"]) == ["script.py"]
    assert expand_patterns(["app/__py*"]) == []


def test_expand_patterns_no_match(project, capsys):
    """Test a wildcard that matches nothing warns and yields no packages."""
    assert expand_patterns([f"{project}/nothing*"]) == []
    assert "matched no packages" in capsys.readouterr().err


def test_expand_patterns_dedup(project):
    """Test literal locations pass through once and keep their order."""
    app = str(project / "app")
    assert expand_patterns([app, "json", app]) == [app, "json"]


def test_expand_patterns_keeps_tests_without_parent_package(tmp_path):
    """Test tests/ is its own package when its parent holds no Python files."""
    for name in ["proj/src/pkg/m.py", "proj/tests/test_m.py"]:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("x = 1\n")

    locations = expand_patterns([f"{tmp_path / 'proj'}/..."])

    assert locations == [
        str(tmp_path / "proj" / "src" / "pkg"),
        str(tmp_path / "proj" / "tests"),
    ]
    assert load_package(locations[1]).test_files == ("test_m.py",)


if __name__ == "__main__":
    # Run pytest when this script is executed directly
    sys.exit(pytest.main(["-v", __file__]))
