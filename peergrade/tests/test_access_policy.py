"""
Unit Tests for the Access Policy

Permission matrix over transient objects; no database needed.
"""
import pytest

from peergrade.errors import NotAuthorizedError
from peergrade.orm.deliverable import Deliverable
from peergrade.orm.evaluation import Evaluation
from peergrade.orm.jury_assignment import JuryAssignment
from peergrade.orm.project import Project
from peergrade.orm.user import UserRole
from peergrade.security.access_policy import AccessPolicy, Action, Subject

OWNER = Subject(user_id=1, role=UserRole.student)
JUROR = Subject(user_id=2, role=UserRole.student)
OTHER_STUDENT = Subject(user_id=3, role=UserRole.student)
PROFESSOR = Subject(user_id=4, role=UserRole.professor)


@pytest.fixture
def policy() -> AccessPolicy:
    return AccessPolicy()


@pytest.fixture
def project() -> Project:
    return Project(id=10, title="Capstone", user_id=OWNER.user_id)


@pytest.fixture
def deliverable(project) -> Deliverable:
    return Deliverable(id=20, title="Milestone", project=project)


@pytest.fixture
def assignment(deliverable) -> JuryAssignment:
    return JuryAssignment(id=30, deliverable=deliverable, jury_member_id=JUROR.user_id)


@pytest.fixture
def evaluation(assignment) -> Evaluation:
    return Evaluation(id=40, assignment=assignment)


@pytest.mark.parametrize("action", [
    Action.MANAGE_PROJECT,
    Action.MANAGE_DELIVERABLE,
    Action.SELECT_JURY,
    Action.ADVANCE_LIFECYCLE,
])
def test_owner_only_actions(policy, deliverable, action):
    assert policy.is_allowed(OWNER, action, deliverable)
    for outsider in (JUROR, OTHER_STUDENT, PROFESSOR):
        assert not policy.is_allowed(outsider, action, deliverable)


def test_owner_actions_on_project(policy, project):
    assert policy.is_allowed(OWNER, Action.MANAGE_PROJECT, project)
    assert not policy.is_allowed(PROFESSOR, Action.MANAGE_PROJECT, project)


def test_evaluator_only_actions(policy, assignment, evaluation):
    assert policy.is_allowed(JUROR, Action.SUBMIT_EVALUATION, assignment)
    assert policy.is_allowed(JUROR, Action.READ_EVALUATION, evaluation)
    for outsider in (OWNER, OTHER_STUDENT, PROFESSOR):
        assert not policy.is_allowed(outsider, Action.SUBMIT_EVALUATION, assignment)
        assert not policy.is_allowed(outsider, Action.READ_EVALUATION, evaluation)


def test_grade_visible_to_owner_and_professor(policy, deliverable):
    assert policy.is_allowed(OWNER, Action.VIEW_GRADE, deliverable)
    assert policy.is_allowed(PROFESSOR, Action.VIEW_GRADE, deliverable)
    assert not policy.is_allowed(JUROR, Action.VIEW_GRADE, deliverable)
    assert not policy.is_allowed(OTHER_STUDENT, Action.VIEW_GRADE, deliverable)


def test_deliverable_visible_to_jury_members(policy, deliverable):
    jury = [JUROR.user_id]
    assert policy.is_allowed(JUROR, Action.VIEW_DELIVERABLE, deliverable, jury)
    assert policy.is_allowed(OWNER, Action.VIEW_DELIVERABLE, deliverable, jury)
    assert policy.is_allowed(PROFESSOR, Action.VIEW_DELIVERABLE, deliverable, jury)
    assert not policy.is_allowed(OTHER_STUDENT, Action.VIEW_DELIVERABLE, deliverable, jury)


def test_oversight_is_professor_only(policy):
    assert policy.is_allowed(PROFESSOR, Action.OVERSEE)
    assert not policy.is_allowed(OWNER, Action.OVERSEE)


def test_require_raises_with_message(policy, deliverable):
    with pytest.raises(NotAuthorizedError) as exc_info:
        policy.require(JUROR, Action.SELECT_JURY, deliverable)

    assert exc_info.value.status_code == 403
    assert exc_info.value.code == "NOT_AUTHORIZED"
    assert exc_info.value.message == "You cannot select jury for this deliverable"


def test_require_passes_silently(policy, deliverable):
    assert policy.require(OWNER, Action.SELECT_JURY, deliverable) is None


def test_subject_of_user_carries_role():
    class FakeUser:
        id = 7
        role = UserRole.professor

    assert Subject.of(FakeUser()) == Subject(user_id=7, role=UserRole.professor)
