from dataclasses import replace

from stagestudio.core import IssueCode, Resolution
from stagestudio.core.validation import validate
from stagestudio.utils.file_tools import safe_stage_name

from helpers import make_document, sized_image


def _codes(issues):
    return [issue.code for issue in issues]


def test_valid_stage_has_no_issues(stage_document):
    result = validate(stage_document.freeze())
    assert result.is_valid
    assert not result.has_warnings


def test_empty_name_and_no_layers():
    result = validate(make_document(name="").freeze())
    assert len(result.errors) >= 2
    assert _codes(result.errors)[:2] == [IssueCode.MISSING_NAME, IssueCode.NO_LAYERS]
    assert result.warnings == ()


def test_whitespace_name_counts_as_missing(stage_document):
    stage_document.name = "   "
    assert IssueCode.MISSING_NAME in _codes(validate(stage_document.freeze()).errors)


def test_path_separator_in_name_is_rejected(stage_document):
    stage_document.name = "My Stage/Bad"
    result = validate(stage_document.freeze())
    assert _codes(result.errors) == [IssueCode.INVALID_NAME]
    assert safe_stage_name("My Stage/Bad") == safe_stage_name("My Stage/Bad") == "My_Stage_Bad"


def test_small_image_is_an_error():
    document = make_document(image=sized_image(300, 200), resolution=Resolution.CLASSIC)
    assert IssueCode.IMAGE_TOO_SMALL in _codes(validate(document.freeze()).errors)


def test_large_image_is_a_warning():
    document = make_document(image=sized_image(5000, 1200), resolution=Resolution.HD)
    result = validate(document.freeze())
    assert result.is_valid
    assert _codes(result.warnings) == [IssueCode.IMAGE_TOO_LARGE]


def test_ground_line_outside_image(stage_document):
    stage_document.edit("ground_line_y", 601)
    assert _codes(validate(stage_document.freeze()).errors) == [IssueCode.INVALID_GROUND_LINE]
    stage_document.edit("ground_line_y", -1)
    assert _codes(validate(stage_document.freeze()).errors) == [IssueCode.INVALID_GROUND_LINE]


def test_camera_bounds_past_image_edges_warn(stage_document):
    stage_document.edit("camera.bound_right", 500)
    result = validate(stage_document.freeze())
    assert result.is_valid
    assert _codes(result.warnings) == [IssueCode.BOUNDS_EXCEED_IMAGE]


def test_each_player_out_of_bounds_is_reported(stage_document):
    stage_document.edit("players.p1_x", -400)
    stage_document.edit("players.p2_x", 400)
    result = validate(stage_document.freeze())
    assert _codes(result.warnings) == [IssueCode.PLAYER_OUT_OF_BOUNDS, IssueCode.PLAYER_OUT_OF_BOUNDS]
    assert "Player 1" in result.warnings[0].message
    assert "Player 2" in result.warnings[1].message


def test_image_matching_screen_leaves_camera_no_room():
    document = make_document(image=sized_image(1280, 720), resolution=Resolution.HD)
    result = validate(document.freeze())
    assert _codes(result.errors) == [IssueCode.INVALID_BOUNDS, IssueCode.INVALID_BOUNDS]
    assert "left" in result.errors[0].message
    assert "right" in result.errors[1].message


def test_hidden_layers_only(stage_document):
    stage_document.edit_layer(stage_document.layers[0].id, visible=False)
    assert IssueCode.NO_VISIBLE_LAYERS in _codes(validate(stage_document.freeze()).errors)


def test_errors_come_in_rule_order():
    document = make_document(name="a:b", image=sized_image(300, 200), resolution=Resolution.HD)
    document.edit("ground_line_y", 5000)
    spec = document.freeze()
    assert _codes(validate(spec).errors) == [
        IssueCode.INVALID_NAME,
        IssueCode.IMAGE_TOO_SMALL,
        IssueCode.INVALID_GROUND_LINE,
        IssueCode.INVALID_BOUNDS,
        IssueCode.INVALID_BOUNDS,
    ]
    assert validate(spec) == validate(replace(spec))
