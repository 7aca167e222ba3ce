"""Tests for the prpscene command line."""

import json
import logging
import os
import pathlib
import subprocess
import sys
import textwrap

import pytest

import scenetest
from prpscene.__main__ import main


@pytest.fixture(autouse=True)
def restore_logging():
    logger = logging.getLogger("prpscene")
    handlers = list(logger.handlers)
    level = logger.level
    yield
    for handler in logger.handlers:
        if handler not in handlers:
            handler.close()
    logger.handlers[:] = handlers
    logger.setLevel(level)


@pytest.fixture
def scene_files(tmp_path):
    types = tmp_path / "types.json"
    types.write_text(json.dumps({
        "types": scenetest.SCENE_TYPES,
        "hashes": scenetest.SCENE_HASHES,
    }))
    listing = tmp_path / "level.prp"
    listing.write_text(textwrap.dedent(scenetest.TREE_LISTING))
    gms, buf = scenetest.build_geom_files(scenetest.TREE_GEOMS)
    (tmp_path / "level.gms").write_bytes(gms)
    (tmp_path / "level.buf").write_bytes(buf)
    return tmp_path


def scene_args(path, *extra):
    return [
        str(path / "types.json"), str(path / "level.prp"),
        "--gms", str(path / "level.gms"), "--buf", str(path / "level.buf"),
        *extra,
    ]


def test_show_tree(scene_files, capsys):
    assert main(scene_args(scene_files)) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == "ROOT <ZROOM 0x00001001> id=10"
    assert lines[1] == "  door <ZGEOM 0x00001000> id=11"
    assert lines[2] == "    +ZDoorCtrl"
    assert lines[3] == "    box <ZBox 0x00001002> id=12"
    assert lines[4] == "  lamp <ZGEOM 0x00001000> id=13"


def test_show_values(scene_files, capsys):
    assert main(scene_args(scene_files, "--values")) == 0
    out = capsys.readouterr().out
    assert "  .Name = 'root'" in out
    assert "      .State = 'OPEN'" in out
    assert "      .Flags = ('Visible',)" in out


def test_show_types(scene_files, capsys):
    assert main([str(scene_files / "types.json"), "--types"]) == 0
    out = capsys.readouterr().out
    assert "COMPLEX   ZBox 0x00001002" in out.splitlines()
    assert "COMPLEX   Controllers::ZDoorCtrl (ZDoorCtrl)" in out.splitlines()
    assert "PRIMITIVE Int32" in out.splitlines()


def test_show_listing(scene_files, capsys):
    assert main([str(scene_files / "types.json"), str(scene_files / "level.prp"),
                 "--listing"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines[:3] == ["BeginObject", "    Int32 1", '    String "root"']


def test_show_lark_tree(scene_files, capsys):
    assert main([str(scene_files / "types.json"), str(scene_files / "level.prp"),
                 "--lark", "--pos"]) == 0
    out = capsys.readouterr().out
    assert out.startswith("start:")
    assert "  instruction: 'BeginObject' @2:1" in out


def test_load_error(scene_files, capsys):
    (scene_files / "level.prp").write_text("BeginObject\nContainer 0\n")
    assert main(scene_args(scene_files)) == 1
    err = capsys.readouterr().err
    assert "Error: object #0: Properties do not match type 'ZROOM'" in err


def test_listing_syntax_error(scene_files, capsys):
    (scene_files / "level.prp").write_text("BeginObject\nInt32 @\n")
    assert main(scene_args(scene_files)) == 1
    assert "line 2" in capsys.readouterr().err


def test_missing_file(scene_files, capsys):
    assert main([str(scene_files / "nothing.json"), "--types"]) == 1
    assert "Error:" in capsys.readouterr().err


def test_geometry_required(scene_files, capsys):
    with pytest.raises(SystemExit) as exc:
        main([str(scene_files / "types.json"), str(scene_files / "level.prp")])
    assert exc.value.code == 2
    assert "--gms and --buf" in capsys.readouterr().err


def test_verbose_log_file(scene_files):
    log_file = scene_files / "scene.log"
    assert main(scene_args(scene_files, "-v", "--log-file", str(log_file))) == 0
    for handler in logging.getLogger("prpscene").handlers:
        handler.flush()
    assert "Loaded 4 scene objects" in log_file.read_text()


def test_module_entry_point(scene_files):
    env = dict(os.environ)
    src = pathlib.Path(__file__).resolve().parents[1] / "src"
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(src), env.get("PYTHONPATH")]))
    result = subprocess.run(
        [sys.executable, "-m", "prpscene", *scene_args(scene_files)],
        capture_output=True, text=True, env=env, check=False)
    assert result.returncode == 0, result.stderr
    assert result.stdout.splitlines()[0] == "ROOT <ZROOM 0x00001001> id=10"
