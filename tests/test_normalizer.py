# tests/test_normalizer.py
import json

import pytest

from plantid.core.config import DEFAULT_FALLBACK_MESSAGES
from plantid.schemas.identification import Identification, IdentificationError, dump_result
from plantid.services.normalizer import normalize_model_output, strip_code_fence

MANGO = {
    "name": "Mango",
    "scientific_name": "Mangifera indica",
    "description": "A tropical fruit.",
    "edible": "Edible",
    "origin": "South Asia",
}
MANGO_TEXT = json.dumps(MANGO)


def test_plain_json_equals_direct_parse():
    res = normalize_model_output(MANGO_TEXT)
    assert isinstance(res, Identification)
    assert dump_result(res) == {"kind": "identification", **MANGO}


@pytest.mark.parametrize(
    "wrapped",
    [
        f"```json\n{MANGO_TEXT}\n```",
        f"```\n{MANGO_TEXT}\n```",
        f"```json\n{MANGO_TEXT}```",
        f"  \n```JSON\n{MANGO_TEXT}\n\n```\n",
        f"```json {MANGO_TEXT}```",
        f"```{MANGO_TEXT}```",
    ],
)
def test_fenced_json_equals_inner_body(wrapped):
    assert normalize_model_output(wrapped) == normalize_model_output(MANGO_TEXT)


def test_strip_code_fence_leaves_unfenced_text():
    assert strip_code_fence('  {"a": 1}  ') == '{"a": 1}'


def test_strip_code_fence_missing_closing_fence_is_untouched():
    text = '```json\n{"a": 1}'
    assert strip_code_fence(text) == text


def test_strip_code_fence_keeps_nested_fence_in_body():
    text = "```markdown\nsee:\n```json\n{}\n```\n```"
    assert strip_code_fence(text) == "see:\n```json\n{}\n```"


def test_fence_only_in_the_middle_is_not_stripped():
    res = normalize_model_output('Here you go: ```json\n{"name": "x"}\n```')
    assert isinstance(res, IdentificationError)
    assert res.error_code == "AI Service Error"


@pytest.mark.parametrize("raw", ["{not json", "", "   ", "```json\n```", None])
def test_malformed_output_is_error_variant_with_message(raw):
    res = normalize_model_output(raw)
    assert isinstance(res, IdentificationError)
    assert res.error_code == "AI Service Error"
    assert res.message


@pytest.mark.parametrize("raw", ['{"description": "no name"}', '{"name": "Only name"}', "[1, 2]", "42", "{}"])
def test_object_without_name_or_error_is_parse_failure(raw):
    res = normalize_model_output(raw)
    assert isinstance(res, IdentificationError)
    assert res.error_code == "AI Service Error"


def test_model_reported_error_is_error_variant():
    res = normalize_model_output('{"error": "Unable to identify", "message": "Not a plant."}')
    assert isinstance(res, IdentificationError)
    assert dump_result(res) == {"kind": "error", "error": "Unable to identify", "message": "Not a plant."}


def test_falsy_error_field_is_ignored():
    res = normalize_model_output('{"error": "", "name": "Banana", "description": "Yellow."}')
    assert isinstance(res, Identification)
    assert res.name == "Banana"


def test_missing_optional_fields_stay_absent():
    res = normalize_model_output('{"name": "Lime", "description": "Sour citrus."}')
    out = dump_result(res)
    assert "scientific_name" not in out
    assert "edible" not in out
    assert "origin" not in out


def test_camel_case_keys_accepted():
    res = normalize_model_output('{"name": "Lime", "description": "Sour.", "scientificName": "Citrus aurantiifolia"}')
    assert res.scientific_name == "Citrus aurantiifolia"


def test_canonical_fallback_message_is_localized():
    english = next(iter(DEFAULT_FALLBACK_MESSAGES))
    raw = json.dumps({"error": "Unable to identify", "message": english})
    res = normalize_model_output(raw, DEFAULT_FALLBACK_MESSAGES)
    assert res.message == DEFAULT_FALLBACK_MESSAGES[english]
    assert res.error_code == "Unable to identify"


def test_fallback_mapping_is_configurable_and_exact():
    mapping = {"Blurry.": "Floue."}
    res = normalize_model_output('{"error": "x", "message": "Blurry."}', mapping)
    assert res.message == "Floue."
    res = normalize_model_output('{"error": "x", "message": "Blurry!"}', mapping)
    assert res.message == "Blurry!"


def test_result_never_missing_both_name_and_error_code():
    samples = [MANGO_TEXT, "{bad", '{"error": true}', '{"foo": 1}', "null", '"text"']
    for raw in samples:
        res = normalize_model_output(raw)
        assert getattr(res, "name", None) or getattr(res, "error_code", None)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ('{"name": "Mango", "description": "A fruit.", "edible": true}', {"edible": "True"}),
        ('{"name": "Mango", "description": "A fruit.", "origin": 42}', {"origin": "42"}),
        ('{"name": "Mango", "description": "A fruit.", "scientific_name": 1.5}', {"scientific_name": "1.5"}),
    ],
)
def test_non_string_optional_fields_are_kept_as_text(raw, expected):
    res = normalize_model_output(raw)
    assert isinstance(res, Identification)
    out = dump_result(res)
    for key, value in expected.items():
        assert out[key] == value


@pytest.mark.parametrize("wrapped", [f"```json{MANGO_TEXT}```", f"```json[{MANGO_TEXT}]```"])
def test_one_line_fence_with_tag_touching_body(wrapped):
    assert strip_code_fence(wrapped).startswith(("{", "["))


def test_one_line_fence_with_tag_touching_body_parses():
    assert normalize_model_output(f"```json{MANGO_TEXT}```") == normalize_model_output(MANGO_TEXT)


def test_parse_failure_messages_name_the_cause():
    res = normalize_model_output("{not json")
    assert res.message.startswith("Could not parse AI response as JSON: ")
    res = normalize_model_output('{"description": "no name"}')
    assert res.message.startswith("AI response has an unexpected shape: ")
    assert "name" in res.message
