from dataclasses import FrozenInstanceError

import pytest

from stagestudio.core import BackgroundLayer, Resolution
from stagestudio.core.document import StageDocument

from helpers import make_document, make_image


def test_first_layer_applies_defaults(stage_document):
    assert stage_document.ground_line_y == 420
    assert (stage_document.camera.bound_left, stage_document.camera.bound_right) == (-80, 80)
    assert stage_document.camera.bound_high == -120
    assert stage_document.layers[0].position == (-400, -120)
    assert not stage_document.overrides


def test_resolution_change_recomputes_defaults(stage_document):
    stage_document.set_resolution(Resolution.CLASSIC)
    assert stage_document.ground_line_y == 180
    assert stage_document.camera.bound_right == 240


def test_manual_edits_survive_resolution_change(stage_document):
    stage_document.edit("camera.bound_left", -50)
    stage_document.edit("ground_line_y", 400)
    stage_document.set_resolution(Resolution.CLASSIC)
    assert stage_document.camera.bound_left == -50
    assert stage_document.ground_line_y == 400
    assert stage_document.camera.bound_right == 240
    assert stage_document.overrides == {"camera.bound_left", "ground_line_y"}


def test_clear_overrides_restores_defaults(stage_document):
    stage_document.edit("camera.bound_left", -50)
    stage_document.edit("players.p1_x", -30)
    stage_document.clear_overrides("camera.bound_left")
    assert stage_document.camera.bound_left == -80
    assert stage_document.players.p1_x == -30
    stage_document.clear_overrides()
    assert stage_document.players.p1_x == -70


def test_replacing_the_image_recomputes_defaults(stage_document):
    stage_document.replace_primary_image(make_image(1000, 700))
    assert stage_document.camera.bound_right == 180
    assert stage_document.layers[0].position == (-500, -220)


def test_removing_the_primary_layer_promotes_the_next(stage_document):
    stage_document.add_layer(BackgroundLayer(name="Wide", image=make_image(1040, 480)))
    stage_document.remove_layer(stage_document.layers[0].id)
    assert stage_document.primary_layer.name == "Wide"
    assert stage_document.camera.bound_right == 200
    assert stage_document.camera.bound_high == 0


def test_non_default_fields_are_not_overrides(stage_document):
    stage_document.edit("camera.tension", 80)
    assert stage_document.camera.tension == 80
    assert not stage_document.overrides


def test_fixed_fields_cannot_be_edited(stage_document):
    with pytest.raises(AttributeError):
        stage_document.edit("camera.bound_low", 10)
    with pytest.raises(AttributeError):
        stage_document.edit("camera.no_such_field", 1)


def test_freeze_isolates_the_snapshot(stage_document):
    spec = stage_document.freeze()
    stage_document.name = "Renamed"
    stage_document.edit("camera.tension", 99)
    stage_document.edit_layer(stage_document.layers[0].id, position=(0, 0))
    stage_document.add_layer(BackgroundLayer(name="Extra", image=make_image(400, 300)))

    assert spec.name == "Night Market"
    assert spec.camera.tension == 50
    assert spec.layers[0].position == (-400, -120)
    assert len(spec.layers) == 1


def test_snapshot_cannot_be_mutated(stage_document):
    spec = stage_document.freeze()
    with pytest.raises(FrozenInstanceError):
        spec.camera.bound_left = 5
    with pytest.raises(FrozenInstanceError):
        spec.layers[0].visible = False
    with pytest.raises(FrozenInstanceError):
        spec.players.p1_x = 0
    with pytest.raises(FrozenInstanceError):
        spec.shadow.intensity = 0
    with pytest.raises(ValueError):
        spec.layers[0].image.pixels[0, 0, 0] = 1
    assert spec.camera.bound_left == -80
    assert spec.layers[0].visible


def test_edit_layer_swaps_in_a_copy(stage_document):
    layer_id = stage_document.layers[0].id
    spec = stage_document.freeze()
    updated = stage_document.edit_layer(layer_id, position=[10, 20], delta=(0.5, 1))
    assert updated.id == layer_id
    assert stage_document.layers[0].position == (10, 20)
    assert stage_document.layers[0].delta == (0.5, 1.0)
    assert "layer.position" in stage_document.overrides
    assert spec.layers[0].position == (-400, -120)
    with pytest.raises(KeyError):
        stage_document.edit_layer("missing", visible=False)
    with pytest.raises(AttributeError):
        stage_document.edit_layer(layer_id, image=make_image(10, 10))


def test_document_without_layers_has_no_geometry():
    document = StageDocument(name="Empty")
    assert document.geometry() is None
    assert document.apply_defaults() is None
    with pytest.raises(ValueError):
        document.replace_primary_image(make_image(10, 10))


def test_helper_document_uses_sd(stage_document):
    assert stage_document.resolution is Resolution.SD
    assert make_document().layers == []
