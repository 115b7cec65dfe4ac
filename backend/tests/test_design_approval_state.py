"""
Tests for DesignApprovalStateMachine.

Covers:
- Transition table
- Approve / reject / needs_changes from pending
- Current-approved flag moves to the newest approval (supersede)
- Rejection leaves the previous current-approved file in place
- Terminal states cannot be changed again
- At most one current-approved file per category
- A decision committed by another session is seen under the category lock
"""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.database import Base
from app.models.design_file import DesignFile, ApprovalStatus
from app.models.project import Project
from app.models.user import User, UserRole
from app.services.design_approval_state import (
    DesignApprovalStateMachine,
    TRANSITIONS,
    can_transition,
)
from app.services.design_errors import DesignNotFound, DesignValidationError, InvalidTransitionError


def _current_approved(db, project_id, category):
    return db.query(DesignFile).filter(
        DesignFile.project_id == project_id,
        DesignFile.category == category,
        DesignFile.is_current_approved == True
    ).all()


class TestTransitionTable:

    def test_all_statuses_present(self):
        assert set(TRANSITIONS) == set(ApprovalStatus.ALL)

    def test_pending_reaches_every_terminal_state(self):
        for target in ApprovalStatus.TERMINAL:
            assert can_transition(ApprovalStatus.PENDING, target)

    def test_terminal_states_have_no_exits(self):
        for current in ApprovalStatus.TERMINAL:
            for target in ApprovalStatus.ALL:
                assert not can_transition(current, target)


class TestSetStatus:

    def test_approve_sets_flag_and_reviewer(self, db, manager, make_design):
        design = make_design(version_number=1)

        updated = DesignApprovalStateMachine(db, design.id).set_status(ApprovalStatus.APPROVED, manager)

        assert updated.approval_status == ApprovalStatus.APPROVED
        assert updated.is_current_approved is True
        assert updated.approved_by == manager.id
        assert updated.approved_at is not None

    def test_approve_with_comment_stores_it(self, db, manager, make_design):
        design = make_design()
        updated = DesignApprovalStateMachine(db, design.id).set_status(
            ApprovalStatus.APPROVED, manager, "Looks great"
        )
        assert updated.admin_comments == "Looks great"

    def test_reject_stores_comment_without_flag(self, db, manager, make_design):
        design = make_design()

        updated = DesignApprovalStateMachine(db, design.id).set_status(
            ApprovalStatus.REJECTED, manager, "wrong dimensions"
        )

        assert updated.approval_status == ApprovalStatus.REJECTED
        assert updated.admin_comments == "wrong dimensions"
        assert updated.is_current_approved is False

    def test_needs_changes_accepts_empty_comment(self, db, manager, make_design):
        design = make_design()
        updated = DesignApprovalStateMachine(db, design.id).set_status(ApprovalStatus.NEEDS_CHANGES, manager)
        assert updated.approval_status == ApprovalStatus.NEEDS_CHANGES
        assert updated.admin_comments is None

    def test_unknown_status_rejected(self, db, manager, make_design):
        design = make_design()
        with pytest.raises(DesignValidationError):
            DesignApprovalStateMachine(db, design.id).set_status("archived", manager)

    def test_unknown_design(self, db, manager):
        with pytest.raises(DesignNotFound):
            DesignApprovalStateMachine(db, 999).set_status(ApprovalStatus.APPROVED, manager)


class TestCurrentApproved:

    def test_newer_approval_supersedes_older(self, db, project, manager, make_design):
        """Approve v1, upload v2, approve v2: the flag moves to v2."""
        v1 = make_design(version_number=1)
        DesignApprovalStateMachine(db, v1.id).set_status(ApprovalStatus.APPROVED, manager)

        v2 = make_design(version_number=2)
        db.refresh(v1)
        assert v1.is_current_approved is True
        assert v2.is_current_approved is False

        DesignApprovalStateMachine(db, v2.id).set_status(ApprovalStatus.APPROVED, manager)
        db.refresh(v1)
        db.refresh(v2)

        assert v2.is_current_approved is True
        assert v1.is_current_approved is False
        # Superseded files keep their historical status
        assert v1.approval_status == ApprovalStatus.APPROVED

    def test_rejection_keeps_previous_current_approved(self, db, project, manager, make_design):
        """Approve v1, upload v2, reject v2: v1 stays current-approved."""
        v1 = make_design(version_number=1)
        DesignApprovalStateMachine(db, v1.id).set_status(ApprovalStatus.APPROVED, manager)
        v2 = make_design(version_number=2)

        DesignApprovalStateMachine(db, v2.id).set_status(ApprovalStatus.REJECTED, manager, "No")
        db.refresh(v1)

        assert v1.is_current_approved is True
        assert [d.id for d in _current_approved(db, project.id, "Kitchen")] == [v1.id]

    def test_other_categories_untouched(self, db, project, manager, make_design):
        kitchen = make_design(category="Kitchen")
        bath = make_design(category="Bath")
        DesignApprovalStateMachine(db, kitchen.id).set_status(ApprovalStatus.APPROVED, manager)
        DesignApprovalStateMachine(db, bath.id).set_status(ApprovalStatus.APPROVED, manager)
        db.refresh(kitchen)

        assert kitchen.is_current_approved is True

    def test_at_most_one_current_approved(self, db, project, manager, make_design):
        designs = [make_design(version_number=v) for v in range(1, 5)]
        for d in designs:
            DesignApprovalStateMachine(db, d.id).set_status(ApprovalStatus.APPROVED, manager)
            flagged = _current_approved(db, project.id, "Kitchen")
            assert [f.id for f in flagged] == [d.id]


class TestTerminalStates:

    @pytest.mark.parametrize("first,second", [
        (ApprovalStatus.APPROVED, ApprovalStatus.REJECTED),
        (ApprovalStatus.REJECTED, ApprovalStatus.APPROVED),
        (ApprovalStatus.NEEDS_CHANGES, ApprovalStatus.APPROVED),
        (ApprovalStatus.APPROVED, ApprovalStatus.APPROVED),
    ])
    def test_second_decision_raises(self, db, manager, make_design, first, second):
        design = make_design()
        DesignApprovalStateMachine(db, design.id).set_status(first, manager, "first")

        with pytest.raises(InvalidTransitionError) as exc:
            DesignApprovalStateMachine(db, design.id).set_status(second, manager, "second")

        assert exc.value.current == first
        db.refresh(design)
        assert design.approval_status == first
        assert design.admin_comments == "first"

    def test_rejected_file_cannot_become_current(self, db, project, manager, make_design):
        """Rejecting v1 then trying to approve it leaves no current-approved file."""
        v1 = make_design(version_number=1)
        DesignApprovalStateMachine(db, v1.id).set_status(ApprovalStatus.REJECTED, manager)

        with pytest.raises(InvalidTransitionError):
            DesignApprovalStateMachine(db, v1.id).set_status(ApprovalStatus.APPROVED, manager)

        assert _current_approved(db, project.id, "Kitchen") == []


@pytest.fixture
def two_sessions(tmp_path):
    """Two independent sessions on a file-backed database."""
    engine = create_engine(f"sqlite:///{tmp_path / 'reviews.db'}")
    Base.metadata.create_all(bind=engine)
    SessionFactory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    first, second = SessionFactory(), SessionFactory()
    try:
        yield first, second
    finally:
        first.close()
        second.close()
        engine.dispose()


class TestConcurrentReviewers:

    def _seed(self, session):
        reviewer = User(email="pm@studio.test", name="Pm", role=UserRole.PROJECT_MANAGER, is_active=True)
        session.add(reviewer)
        session.flush()
        project = Project(name="Harbour Loft", owner_id=reviewer.id)
        session.add(project)
        session.flush()
        design = DesignFile(
            project_id=project.id,
            category="Kitchen",
            version_number=1,
            file_name="kitchen_v1.pdf",
            file_url="https://files.test/Kitchen/v1.pdf",
            approval_status=ApprovalStatus.PENDING,
            is_current_approved=False,
            is_frozen=False,
            uploaded_by=reviewer.id
        )
        session.add(design)
        session.commit()
        return reviewer.id, design.id

    def test_late_decision_sees_committed_approval(self, two_sessions):
        first, second = two_sessions
        reviewer_id, design_id = self._seed(second)

        # First reviewer has the file loaded while it is still pending
        stale = first.get(DesignFile, design_id)
        assert stale.approval_status == ApprovalStatus.PENDING

        DesignApprovalStateMachine(second, design_id).set_status(
            ApprovalStatus.APPROVED, second.get(User, reviewer_id)
        )

        with pytest.raises(InvalidTransitionError) as exc:
            DesignApprovalStateMachine(first, design_id).set_status(
                ApprovalStatus.REJECTED, first.get(User, reviewer_id), "late"
            )

        assert exc.value.current == ApprovalStatus.APPROVED
        second.expire_all()
        design = second.get(DesignFile, design_id)
        assert design.approval_status == ApprovalStatus.APPROVED
        assert design.is_current_approved is True
        assert design.admin_comments is None
