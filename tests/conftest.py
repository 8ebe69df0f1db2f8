"""Shared factories for the test suite."""
import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from wk_jlpt.models import Assignment, Subject  # noqa: E402


def _subject(id, characters, type="vocabulary", level=1, **data):
    payload = {"characters": characters, "level": level, "slug": characters or f"subject-{id}"}
    payload.update(data)
    return Subject.from_api({"id": id, "object": type, "data": payload})


def _assignment(id, subject_id, unlocked=True, started=False, srs_stage=0, subject_type="vocabulary"):
    return Assignment.from_api(
        {
            "id": id,
            "object": "assignment",
            "data": {
                "subject_id": subject_id,
                "subject_type": subject_type,
                "srs_stage": srs_stage,
                "unlocked_at": "2024-01-01T00:00:00.000000Z" if unlocked else None,
                "started_at": "2024-01-02T00:00:00.000000Z" if started else None,
            },
        }
    )


class FakeClient:
    """Records write calls; optionally fails on one assignment id."""

    def __init__(self, fail_on=None):
        self.fail_on = fail_on
        self.started = []
        self.created = []
        self.updated = []

    def start_assignment(self, assignment_id):
        if assignment_id == self.fail_on:
            raise RuntimeError(f"boom {assignment_id}")
        self.started.append(assignment_id)
        return {"id": assignment_id}

    def create_study_material(self, subject_id, fields):
        self.created.append((subject_id, fields))
        return {}

    def update_study_material(self, study_material_id, fields):
        self.updated.append((study_material_id, fields))
        return {}


@pytest.fixture
def make_subject():
    return _subject


@pytest.fixture
def make_assignment():
    return _assignment


@pytest.fixture
def fake_client():
    return FakeClient()


@pytest.fixture
def failing_client():
    def build(fail_on):
        return FakeClient(fail_on=fail_on)

    return build
