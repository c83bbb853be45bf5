import os
import zipfile
from datetime import date

import numpy as np
import pytest

from stagestudio.core import BackgroundLayer, IssueCode, PackageFormat
from stagestudio.core.errors import ExportBlockedError, ExportCancelledError, ExportIOError, SpriteEncodingError
from stagestudio.core.exporter import build_sprites, export_stage, snapshot
from stagestudio.core.image_codec import DEFAULT_CODEC
from stagestudio.core.sff_writer import read_sff
from stagestudio.utils import file_tools

from helpers import make_image


def _accept(warnings):
    return True


def _reject(warnings):
    return False


def test_zip_export(stage_document, tmp_path):
    destination = tmp_path / "out" / "Night_Market.zip"
    outcome = export_stage(stage_document, destination, version_date=date(2024, 5, 1))

    assert outcome.output_path == destination
    assert outcome.stage_name == "Night_Market"
    assert outcome.sprite_count == 2
    assert outcome.warnings == ()
    with zipfile.ZipFile(destination) as archive:
        assert sorted(archive.namelist()) == ["Night_Market/Night_Market.def", "Night_Market/Night_Market.sff"]
        sff = archive.read("Night_Market/Night_Market.sff")
        definition = archive.read("Night_Market/Night_Market.def").decode("utf-8")

    assert len(sff) == outcome.sff_size
    contents = read_sff(sff)
    assert [(s.group, s.index) for s in contents.sprites] == [(0, 0), (9000, 1)]
    assert (contents.sprites[0].width, contents.sprites[0].height) == (800, 600)
    assert (contents.sprites[1].width, contents.sprites[1].height) == (240, 100)
    assert contents.sprites[1].format_code == 12
    assert "spr = Night_Market.sff" in definition
    assert "versiondate = 05,01,2024" in definition
    assert sorted(p.name for p in destination.parent.iterdir()) == ["Night_Market.zip"]


def test_folder_export(stage_document, tmp_path):
    destination = tmp_path / "stages" / "market"
    outcome = export_stage(stage_document, destination, package=PackageFormat.FOLDER)

    assert sorted(p.name for p in destination.iterdir()) == ["Night_Market.def", "Night_Market.sff"]
    assert (destination / "Night_Market.sff").stat().st_size == outcome.sff_size
    assert sorted(p.name for p in destination.parent.iterdir()) == ["market"]


def test_folder_export_replaces_previous_folder(stage_document, tmp_path):
    destination = tmp_path / "market"
    destination.mkdir()
    (destination / "stale.txt").write_text("old", encoding="utf-8")

    export_stage(stage_document, destination, package=PackageFormat.FOLDER)
    assert sorted(p.name for p in destination.iterdir()) == ["Night_Market.def", "Night_Market.sff"]
    assert sorted(p.name for p in tmp_path.iterdir()) == ["market"]


def test_failed_folder_swap_restores_previous_folder(stage_document, tmp_path, monkeypatch):
    destination = tmp_path / "market"
    destination.mkdir()
    (destination / "stale.txt").write_text("old", encoding="utf-8")

    real_replace = os.replace
    calls = []

    def flaky_replace(src, dst):
        calls.append((src, dst))
        if len(calls) == 2:
            raise OSError("device busy")
        return real_replace(src, dst)

    monkeypatch.setattr(file_tools.os, "replace", flaky_replace)
    with pytest.raises(ExportIOError):
        export_stage(stage_document, destination, package=PackageFormat.FOLDER)

    assert len(calls) == 3
    assert (destination / "stale.txt").read_text(encoding="utf-8") == "old"
    assert sorted(p.name for p in tmp_path.iterdir()) == ["market"]


def test_folder_swap_leaves_unrelated_siblings_alone(stage_document, tmp_path):
    destination = tmp_path / "market"
    destination.mkdir()
    sibling = tmp_path / ".market.old"
    sibling.mkdir()
    (sibling / "keep.txt").write_text("mine", encoding="utf-8")

    export_stage(stage_document, destination, package=PackageFormat.FOLDER)
    assert (sibling / "keep.txt").read_text(encoding="utf-8") == "mine"
    assert sorted(p.name for p in tmp_path.iterdir()) == [".market.old", "market"]


def test_exported_background_keeps_source_pixels(stage_image, stage_document, tmp_path):
    destination = tmp_path / "stage"
    export_stage(stage_document, destination, package=PackageFormat.FOLDER)

    contents = read_sff((destination / "Night_Market.sff").read_bytes())
    background = contents.sprites[0]
    decoded = DEFAULT_CODEC.decode(background.payload, "background sprite")
    assert decoded.size == stage_image.size
    assert decoded.has_alpha == stage_image.has_alpha
    assert np.array_equal(decoded.pixels, stage_image.pixels)
    assert background.declared_size == stage_image.width * stage_image.height * 4

    thumbnail = DEFAULT_CODEC.decode(contents.sprites[1].payload, "thumbnail sprite")
    assert thumbnail.size == (240, 100)
    assert thumbnail.has_alpha


def test_blocked_export_writes_nothing(stage_document, tmp_path):
    stage_document.name = ""
    with pytest.raises(ExportBlockedError) as excinfo:
        export_stage(stage_document, tmp_path / "stage.zip")
    assert excinfo.value.kind == "validation"
    assert excinfo.value.result.errors[0].code is IssueCode.MISSING_NAME
    assert list(tmp_path.iterdir()) == []


def test_warnings_need_confirmation(stage_document, tmp_path):
    stage_document.edit("players.p1_x", -400)
    destination = tmp_path / "stage.zip"

    with pytest.raises(ExportCancelledError):
        export_stage(stage_document, destination)
    with pytest.raises(ExportCancelledError) as excinfo:
        export_stage(stage_document, destination, confirm_warnings=_reject)
    assert excinfo.value.kind == "cancelled"
    assert list(tmp_path.iterdir()) == []

    outcome = export_stage(stage_document, destination, confirm_warnings=_accept)
    assert [issue.code for issue in outcome.warnings] == [IssueCode.PLAYER_OUT_OF_BOUNDS]
    assert destination.exists()


def test_existing_destination_without_overwrite(stage_document, tmp_path):
    destination = tmp_path / "stage.zip"
    destination.write_bytes(b"keep me")
    with pytest.raises(ExportIOError):
        export_stage(stage_document, destination, overwrite=False)
    assert destination.read_bytes() == b"keep me"


def test_write_failure_leaves_no_partial_output(stage_document, tmp_path, monkeypatch):
    def fail(stage_dir, target):
        raise OSError("disk full")

    monkeypatch.setattr("stagestudio.core.exporter._write_zip", fail)
    destination = tmp_path / "stage.zip"
    with pytest.raises(ExportIOError) as excinfo:
        export_stage(stage_document, destination)
    assert "disk full" in excinfo.value.detail
    assert excinfo.value.kind == "io"
    assert list(tmp_path.iterdir()) == []


def test_encoding_failure_names_the_sprite(stage_document, tmp_path):
    class BrokenCodec:
        def encode(self, image):
            raise ValueError("encoder unavailable")

    with pytest.raises(SpriteEncodingError) as excinfo:
        export_stage(stage_document, tmp_path / "stage.zip", codec=BrokenCodec())
    assert "background 'Background'" in str(excinfo.value)
    assert excinfo.value.kind == "encoding"
    assert list(tmp_path.iterdir()) == []


def test_hidden_layers_are_not_encoded(stage_document):
    stage_document.add_layer(BackgroundLayer(name="Hidden", image=make_image(320, 240), visible=False))
    sprites = build_sprites(snapshot(stage_document))
    assert [(s.group, s.index) for s in sprites] == [(0, 0), (9000, 1)]


def test_snapshot_of_a_spec_is_the_spec(stage_document):
    spec = stage_document.freeze()
    assert snapshot(spec) is spec
