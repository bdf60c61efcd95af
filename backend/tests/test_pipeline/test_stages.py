"""Tests for the individual generation stages against a scripted model."""

from __future__ import annotations

import asyncio

import pytest

from storylens.errors import InputError, UpstreamGenerationError
from storylens.models.caption import DetectedObject
from storylens.pipeline.analysis import analyze_image
from storylens.pipeline.bbox import assign_ids, locate_objects
from storylens.pipeline.explain import explain_selection
from storylens.pipeline.narrative import generate_narrative
from storylens.media.normalizer import normalize_image
from tests.conftest import (
    THREE_OBJECTS,
    ScriptedVisionModel,
    analysis_reply,
    bbox_reply,
    caption_reply,
    make_image_bytes,
)


@pytest.fixture
def image():
    return normalize_image(make_image_bytes(800, 600))


def _objects():
    return [DetectedObject(label=o, descriptor=d, context=c) for o, d, c in THREE_OBJECTS]


def test_analysis_parses_objects_and_label(image):
    model = ScriptedVisionModel({"analyze": analysis_reply()})
    analysis = asyncio.run(analyze_image(model, image))
    assert [o.label for o in analysis.objects] == ["apple", "window", "cat"]
    assert analysis.whole_image_label == "Kitchen still life"
    assert all(o.id is None and o.box is None for o in analysis.objects)
    assert model.calls[0]["image_b64"]


def test_analysis_unusable_reply_is_empty(image):
    model = ScriptedVisionModel({"analyze": "I could not do it."})
    analysis = asyncio.run(analyze_image(model, image))
    assert analysis.objects == []
    assert analysis.whole_image_label == ""


def test_assign_ids_is_positional():
    assert [o.id for o in assign_ids(_objects())] == [1, 2, 3]


def test_locate_objects_sets_ids_and_boxes(image):
    model = ScriptedVisionModel({"bbox": bbox_reply()})
    located = asyncio.run(locate_objects(model, image, _objects()))
    assert [o.id for o in located] == [1, 2, 3]
    assert located[0].box == (100.0, 100.0, 400.0, 400.0)
    assert "800" not in model.calls[0]["user"]
    assert f"{image.width}x{image.height}" in model.calls[0]["user"]


def test_locate_objects_skips_call_for_no_objects(image):
    model = ScriptedVisionModel()
    assert asyncio.run(locate_objects(model, image, [])) == []
    assert model.calls == []


def test_locate_objects_unusable_reply_keeps_objects_unboxed(image):
    model = ScriptedVisionModel({"bbox": "<output>```json\n[{\"object\": \"apple\"}]\n```</output>"})
    located = asyncio.run(locate_objects(model, image, _objects()))
    assert [(o.id, o.label, o.box) for o in located] == [(1, "apple", None), (2, "window", None), (3, "cat", None)]


def test_locate_objects_rejects_overflowing_box(image):
    boxes = [(10**400, 0, 1, 1), (0, 0, 1, 1), (0, 0, 1, 1)]
    model = ScriptedVisionModel({"bbox": bbox_reply(boxes=boxes)})
    located = asyncio.run(locate_objects(model, image, _objects()))
    assert [(o.id, o.box) for o in located] == [(1, None), (2, None), (3, None)]


def test_analysis_with_blank_label_is_empty(image):
    model = ScriptedVisionModel({"analyze": analysis_reply(objects=[(" ", "shiny", "table")])})
    analysis = asyncio.run(analyze_image(model, image))
    assert analysis.objects == []


def test_narrative_keeps_known_markers(image):
    objects = assign_ids(_objects())
    model = ScriptedVisionModel({"caption": caption_reply()})
    caption = asyncio.run(generate_narrative(model, image, objects, 2))
    assert '<mark id="3">sleepy orange cat</mark>' in caption
    assert "id:1" in model.calls[0]["user"]


def test_narrative_drops_unknown_markers(image):
    objects = assign_ids(_objects()[:1])
    model = ScriptedVisionModel({"caption": caption_reply('A <mark id="1">red apple</mark> and <mark id="9">a dog</mark>.')})
    caption = asyncio.run(generate_narrative(model, image, objects, 1))
    assert caption == 'A <mark id="1">red apple</mark> and a dog.'


def test_narrative_without_delimiter_is_fatal(image):
    model = ScriptedVisionModel({"caption": "A lovely scene."})
    with pytest.raises(UpstreamGenerationError):
        asyncio.run(generate_narrative(model, image, [], 2))


def test_narrative_with_empty_output_is_fatal(image):
    model = ScriptedVisionModel({"caption": "<output>  </output>"})
    with pytest.raises(UpstreamGenerationError):
        asyncio.run(generate_narrative(model, image, [], 2))


def test_narrative_with_markup_only_output_is_fatal(image):
    objects = assign_ids(_objects())
    model = ScriptedVisionModel({"caption": caption_reply('<mark id="1"></mark>')})
    with pytest.raises(UpstreamGenerationError):
        asyncio.run(generate_narrative(model, image, objects, 2))


def test_narrative_unwraps_oversized_marker_id(image):
    objects = assign_ids(_objects())
    huge = "1" * 5000
    model = ScriptedVisionModel({"caption": caption_reply(f'A <mark id="{huge}">ghost</mark> by <mark id="1">the apple</mark>.')})
    caption = asyncio.run(generate_narrative(model, image, objects, 2))
    assert caption == 'A ghost by <mark id="1">the apple</mark>.'


def test_explain_selection_is_text_only():
    model = ScriptedVisionModel({"explain": "  Dozes means sleeps lightly.\n"})
    text = asyncio.run(explain_selection(model, 'The <mark id="1">cat</mark> dozes.', "dozes"))
    assert text == "Dozes means sleeps lightly."
    assert model.calls[0]["image_b64"] is None
    assert "<mark" not in model.calls[0]["user"]


def test_explain_selection_requires_both_inputs():
    with pytest.raises(InputError):
        asyncio.run(explain_selection(ScriptedVisionModel(), "", "cat"))
