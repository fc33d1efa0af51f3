"""Tests for the project file artifact and the per-file baseline."""

from __future__ import annotations

import json

import pytest

from pagesmith.model.models import FieldType
from pagesmith.sync.baseline import Baseline
from pagesmith.sync.project_file import fold_project_file, render_project_file

pytestmark = pytest.mark.unit


# ---------------------------------------------------------------------------
# render / fold
# ---------------------------------------------------------------------------


def test_render_is_deterministic(model_project):
    assert render_project_file(model_project) == render_project_file(model_project.model_copy(deep=True))


def test_render_skips_archived_models(model_project):
    model_project.data_models[0].archived = True
    data = json.loads(render_project_file(model_project))
    assert data["data_models"] == []


def test_fold_unchanged_data_is_identity(model_project):
    data = json.loads(render_project_file(model_project))
    folded = fold_project_file(model_project, data)
    assert folded.pages == model_project.pages
    assert folded.data_models == model_project.data_models


def test_fold_new_model_and_archival(model_project):
    data = json.loads(render_project_file(model_project))
    data["data_models"] = [{"name": "Invoice", "fields": [{"name": "total", "type": "Float"}]}]
    folded = fold_project_file(model_project, data)
    task, invoice = folded.data_models
    assert task.archived
    assert invoice.name == "Invoice"
    assert invoice.fields[0].type is FieldType.FLOAT


def test_fold_ignores_unknown_pages(model_project):
    data = json.loads(render_project_file(model_project))
    data["pages"].append({"id": "ghost", "name": "Ghost", "path": "/ghost"})
    folded = fold_project_file(model_project, data)
    assert [p.name for p in folded.pages] == ["Home"]


@pytest.mark.parametrize(
    "mutate",
    [
        lambda d: d.update(pages="nope"),
        lambda d: d["pages"][0].update(path="no-slash"),
        lambda d: d["data_models"][0]["fields"].append({"name": "x", "type": "money"}),
        lambda d: d["data_models"][0]["fields"].append({"name": "title"}),
        lambda d: d["data_models"].append({"fields": []}),
    ],
)
def test_fold_rejects_bad_data(model_project, mutate):
    data = json.loads(render_project_file(model_project))
    mutate(data)
    with pytest.raises(ValueError):
        fold_project_file(model_project, data)


# ---------------------------------------------------------------------------
# Baseline
# ---------------------------------------------------------------------------


def test_baseline_missing_file_is_empty(tmp_path):
    assert Baseline.load(tmp_path / "none.json").files == {}


def test_baseline_save_load(tmp_path):
    baseline = Baseline()
    baseline.record("b.txt", "111")
    baseline.record("a.txt", "222", "333")
    path = tmp_path / "state" / "baseline.json"
    baseline.save(path)

    loaded = Baseline.load(path)
    assert loaded.get("a.txt").model_hash == "333"
    assert loaded.get("b.txt").model_hash == "111"
    assert list(json.loads(path.read_text())["files"]) == ["a.txt", "b.txt"]


def test_baseline_corrupt_file(tmp_path):
    path = tmp_path / "baseline.json"
    path.write_text("[]", encoding="utf-8")
    with pytest.raises(ValueError):
        Baseline.load(path)
