"""Tests for domain models, task adapters and identity helpers."""

import pytest
from pydantic import ValidationError

from core.domain.identity import ensure_scheme, find_duplicate, normalize_name, normalize_url
from core.domain.models import Domain, DomainInput, Task, TaskPatch
from core.domain.tasks import (
    DEFAULT_TASKS,
    calculate_progress,
    humanize_task_key,
    tasks_from_legacy_map,
    tasks_to_legacy_map,
)


def _tasks(done: int, total: int) -> list[Task]:
    return [Task(id=f"t{i}", name=f"Task {i}", completed=i < done) for i in range(total)]


@pytest.mark.parametrize(
    ("done", "total", "expected"),
    [
        (0, 0, 0),
        (0, 8, 0),
        (1, 8, 13),
        (3, 8, 38),
        (5, 8, 63),
        (2, 3, 67),
        (8, 8, 100),
    ],
)
def test_progress_rounds_half_up(done, total, expected):
    """Progress is round(100 * done / total), 0 without tasks."""
    assert calculate_progress(_tasks(done, total)) == expected


def test_new_domain_gets_default_checklist():
    domain = Domain.new(DomainInput(name="example.com", url="https://example.com", da=12))

    assert [t.name for t in domain.tasks] == [label for _, label in DEFAULT_TASKS]
    assert len({t.id for t in domain.tasks}) == 8
    assert not any(t.completed for t in domain.tasks)
    assert domain.created_at == domain.updated_at
    assert domain.da == 12
    assert domain.progress == 0


def test_legacy_task_map_is_converted_on_validation():
    domain = Domain.model_validate(
        {
            "id": "abc",
            "name": "a.com",
            "url": "https://a.com",
            "tasks": {"installation": True, "gscSetup": False, "customThing": True},
        }
    )

    assert [t.id for t in domain.tasks] == ["installation", "gscSetup", "customThing"]
    assert [t.name for t in domain.tasks] == ["Installation", "GSC/CF Setup", "Custom Thing"]
    assert domain.progress == 67


def test_legacy_map_round_trip():
    legacy = {"installation": True, "wwwStatus": False, "traffic": True}
    assert tasks_to_legacy_map(tasks_from_legacy_map(legacy)) == legacy
    assert tasks_to_legacy_map(_tasks(1, 2)) == {"t0": True, "t1": False}


def test_humanize_task_key():
    assert humanize_task_key("uxPublishing") == "UX/WH Publishing"
    assert humanize_task_key("someNewStep") == "Some New Step"


def test_json_dict_uses_camel_case_keys():
    data = Domain.new(DomainInput(name="a", url="https://a.com")).to_json_dict()

    assert {"createdAt", "updatedAt", "remoteId"} <= set(data)
    assert isinstance(data["tasks"], list)
    assert Domain.model_validate(data).to_json_dict() == data


def test_task_patch_rejects_immutable_fields():
    with pytest.raises(ValidationError):
        TaskPatch.model_validate({"name": "renamed"})

    task = Task(id="t1", name="Content", completed=False)
    patched = TaskPatch(completed=True).apply(task)
    assert patched.completed is True
    assert patched.name == "Content"
    assert patched.notes is None


def test_domain_input_validates_scores():
    with pytest.raises(ValidationError):
        DomainInput(name="a", url="https://a.com", da=150)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("https://Example.com/", "example.com"),
        ("http://example.com", "example.com"),
        ("example.com", "example.com"),
        ("  EXAMPLE.com/  ", "example.com"),
        ("https://example.com/blog/", "example.com/blog"),
    ],
)
def test_normalize_url(raw, expected):
    assert normalize_url(raw) == expected


def test_ensure_scheme_and_name_folding():
    assert ensure_scheme("a.com") == "https://a.com"
    assert ensure_scheme("http://a.com") == "http://a.com"
    assert ensure_scheme("HTTPS://A.com") == "HTTPS://A.com"
    assert ensure_scheme("httpbin.org") == "https://httpbin.org"
    assert normalize_name("  Straße ") == "strasse"


def test_find_duplicate_matches_url_or_name():
    a = Domain.new(DomainInput(name="Alpha", url="https://alpha.com"))
    b = Domain.new(DomainInput(name="Beta", url="https://beta.com"))

    assert find_duplicate([a, b], url="alpha.com/") is a
    assert find_duplicate([a, b], url="https://other.com", name="BETA") is b
    assert find_duplicate([a, b], url="https://other.com", name="gamma") is None


def test_from_url_builds_name_and_scheme():
    data = DomainInput.from_url("https://LatestExam.de/")
    assert data.name == "latestexam.de"
    assert data.url == "https://LatestExam.de/"

    bare = DomainInput.from_url("xcomputer.site")
    assert bare.url == "https://xcomputer.site"
