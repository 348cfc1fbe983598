# capstone/services/proposal_workflow_service.py
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from capstone.core.errors import (
    DomainError,
    ForbiddenError,
    InvalidStateError,
    InvalidTransitionError,
    NotFoundError,
    ConflictError,
    ValidationError,
)
from capstone.core.proposal_graph import (
    HEAD_REVIEWABLE_STATUSES,
    OUTLINE_SUBMITTABLE_STATUSES,
    TERMINAL_STATUSES,
    TOPIC_EDITABLE_STATUSES,
    assert_transition,
)
from capstone.db.transaction import unit_of_work
from capstone.models.enums import (
    MemberAction,
    MemberRole,
    MemberStatus,
    ProposalOutlineStatus,
    ProposedProjectStatus as S,
    ReviewDecision,
    STUDENT_MEMBER_ROLES,
)
from capstone.models.project import Project, ProjectMember
from capstone.models.proposal_outline import ProposalOutline
from capstone.models.proposed_project import (
    ProposedProject,
    ProposedProjectComment,
    ProposedProjectMember,
)
from capstone.policies import proposal_policy as policy
from capstone.policies.rbac import Principal
from capstone.services.audit_service import AuditAction, AuditService

logger = logging.getLogger(__name__)

PLACEHOLDER_TITLE = "Topic not yet defined"

OUTLINE_FIELDS = ("introduction", "objectives", "methodology", "expected_results")

# advisor decision -> (project status, outline status)
OUTLINE_REVIEW_OUTCOMES = {
    ReviewDecision.approve: (S.OUTLINE_APPROVED, ProposalOutlineStatus.APPROVED),
    # outline goes back to the student for editing
    ReviewDecision.request_changes: (S.OUTLINE_REQUESTED_CHANGES, ProposalOutlineStatus.DRAFT),
    ReviewDecision.reject: (S.OUTLINE_REJECTED, ProposalOutlineStatus.REJECTED),
}

TOPIC_REVIEW_OUTCOMES = {
    ReviewDecision.approve: S.TOPIC_APPROVED,
    ReviewDecision.request_changes: S.TOPIC_REQUESTED_CHANGES,
}

HEAD_REVIEW_OUTCOMES = {
    ReviewDecision.request_changes: S.REQUESTED_CHANGES_HEAD,
    ReviewDecision.reject: S.REJECTED_BY_HEAD,
}


def _now():
    return datetime.now(timezone.utc)


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


class ProposalWorkflowService:
    """
    Owns ProposedProject.status and the ProposalOutline sub-status.

    Every public mutation runs as one unit of work:
    - row(s) re-read under FOR UPDATE
    - optional expected_version compared (ConflictError)
    - authorization, input validation, status precondition, in that order
    - mutation + audit row, single commit
    A failed check raises before anything is written.
    """

    def __init__(self, audit: Optional[AuditService] = None):
        self.audit = audit or AuditService()

    # ─────────────────────────────────────────────
    # INTERNAL READ HELPERS
    # ─────────────────────────────────────────────

    def _get_proposal_for_update(self, db: Session, project_id: uuid.UUID) -> ProposedProject:
        proposal = db.execute(
            select(ProposedProject)
            .where(ProposedProject.id == project_id)
            .with_for_update()
        ).scalar_one_or_none()
        if not proposal:
            raise NotFoundError("ProposedProject", project_id)
        return proposal

    def _get_outline_for_update(self, db: Session, outline_id: uuid.UUID) -> ProposalOutline:
        outline = db.execute(
            select(ProposalOutline)
            .where(ProposalOutline.id == outline_id)
            .with_for_update()
        ).scalar_one_or_none()
        if not outline:
            raise NotFoundError("ProposalOutline", outline_id)
        return outline

    @staticmethod
    def _check_version(proposal: ProposedProject, expected_version: Optional[int]) -> None:
        if expected_version is not None and proposal.version != expected_version:
            raise ConflictError(
                "Proposal was modified since it was read; reload and retry.",
                details={"expected": expected_version, "actual": proposal.version},
            )

    @staticmethod
    def _require_advisor(principal: Principal, proposal: ProposedProject, what: str) -> None:
        if not policy.is_advisor(principal, proposal):
            raise ForbiddenError(f"Only the proposal's advisor may review the {what}.")

    @staticmethod
    def _require_head(principal: Principal, proposal: ProposedProject, what: str) -> None:
        if not policy.is_department_head_for(principal, proposal):
            raise ForbiddenError(f"Only the department head may {what}.")

    # ─────────────────────────────────────────────
    # INTERNAL WRITE HELPERS
    # ─────────────────────────────────────────────

    def _move(
        self,
        db: Session,
        proposal: ProposedProject,
        target: S,
        *,
        principal: Principal,
        action: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        current = proposal.status_enum
        assert_transition(current, target)
        proposal.status = target.value

        self.audit.write(
            db,
            entity_type="proposed_project",
            entity_id=proposal.id,
            actor_id=principal.user_id,
            action=action,
            details={"from": current, "to": target, **(details or {})},
        )
        logger.info(
            "proposal status changed",
            extra={
                "proposed_project_id": str(proposal.id),
                "from_status": current.value,
                "to_status": target.value,
                "actor_id": principal.user_id,
            },
        )

    def _comment(
        self,
        db: Session,
        proposal: ProposedProject,
        principal: Principal,
        content: Optional[str],
    ) -> Optional[ProposedProjectComment]:
        if _blank(content):
            return None
        row = ProposedProjectComment(
            proposed_project=proposal,
            author_id=principal.user_id,
            author_role=principal.primary_role,
            content=content.strip(),
        )
        db.add(row)
        return row

    @staticmethod
    def _require_comment(decision: ReviewDecision, comment: Optional[str]) -> None:
        if decision != ReviewDecision.approve and _blank(comment):
            raise ValidationError(
                "A comment is required unless the decision is approve.",
                details={"decision": decision.value},
            )

    # ─────────────────────────────────────────────
    # GUARDS (shared by single and bulk operations)
    # ─────────────────────────────────────────────

    def _guard_topic_review(
        self, principal: Principal, proposal: ProposedProject, decision: ReviewDecision, comment: Optional[str]
    ) -> S:
        self._require_advisor(principal, proposal, "topic")
        if decision not in TOPIC_REVIEW_OUTCOMES:
            raise ValidationError(
                "Topic review decision must be approve or request_changes.",
                details={"decision": decision.value},
            )
        self._require_comment(decision, comment)
        if proposal.status_enum != S.TOPIC_PENDING_ADVISOR:
            raise InvalidTransitionError(
                "Topic is not awaiting advisor review.",
                details={"status": proposal.status},
            )
        return TOPIC_REVIEW_OUTCOMES[decision]

    def _guard_outline_review(
        self,
        principal: Principal,
        proposal: ProposedProject,
        outline: Optional[ProposalOutline],
        decision: ReviewDecision,
        comment: Optional[str],
    ) -> None:
        self._require_advisor(principal, proposal, "outline")
        self._require_comment(decision, comment)
        if outline is None or outline.status != ProposalOutlineStatus.PENDING_REVIEW.value:
            raise InvalidTransitionError(
                "Outline is not pending review.",
                details={"outline_status": outline.status if outline else None},
            )
        target, _ = OUTLINE_REVIEW_OUTCOMES[decision]
        assert_transition(proposal.status_enum, target)

    def _guard_head_decision(
        self, principal: Principal, proposal: ProposedProject, decision: ReviewDecision, comment: Optional[str]
    ) -> S:
        self._require_head(principal, proposal, "review this proposal")
        if decision not in HEAD_REVIEW_OUTCOMES:
            raise ValidationError(
                "Department head decision must be request_changes or reject; use final approval to approve.",
                details={"decision": decision.value},
            )
        if _blank(comment):
            raise ValidationError("A comment is required for a department head decision.")
        if proposal.status_enum not in HEAD_REVIEWABLE_STATUSES:
            raise InvalidTransitionError(
                "Proposal is not awaiting department head review.",
                details={"status": proposal.status},
            )
        return HEAD_REVIEW_OUTCOMES[decision]

    def _guard_final_approval(self, principal: Principal, proposal: ProposedProject) -> None:
        self._require_head(principal, proposal, "give final approval")
        if proposal.status_enum == S.APPROVED_BY_HEAD:
            raise InvalidTransitionError("Proposal is already approved.")
        if proposal.status_enum not in HEAD_REVIEWABLE_STATUSES:
            raise InvalidTransitionError(
                "Proposal is not awaiting department head review.",
                details={"status": proposal.status},
            )
        outline = proposal.outline
        if outline is None or outline.status not in {
            ProposalOutlineStatus.APPROVED.value,
            ProposalOutlineStatus.LOCKED.value,
        }:
            raise InvalidStateError("The proposal outline has not been approved.")

    # ─────────────────────────────────────────────
    # APPLY (no commit; callers wrap in unit_of_work)
    # ─────────────────────────────────────────────

    def _apply_topic_review(self, db, principal, proposal, decision, comment) -> None:
        target = self._guard_topic_review(principal, proposal, decision, comment)
        self._move(
            db, proposal, target,
            principal=principal,
            action=AuditAction.TOPIC_REVIEWED,
            details={"decision": decision},
        )
        self._comment(db, proposal, principal, comment)

    def _apply_outline_review(self, db, principal, proposal, outline, decision, comment) -> None:
        self._guard_outline_review(principal, proposal, outline, decision, comment)
        target, outline_status = OUTLINE_REVIEW_OUTCOMES[decision]
        # one edge, two entities
        outline.status = outline_status.value
        self._move(
            db, proposal, target,
            principal=principal,
            action=AuditAction.OUTLINE_REVIEWED,
            details={"decision": decision, "outline_id": outline.id, "outline_status": outline_status},
        )
        self._comment(db, proposal, principal, comment)

    def _apply_head_decision(self, db, principal, proposal, decision, comment) -> None:
        target = self._guard_head_decision(principal, proposal, decision, comment)
        self._move(
            db, proposal, target,
            principal=principal,
            action=AuditAction.HEAD_REVIEWED,
            details={"decision": decision},
        )
        self._comment(db, proposal, principal, comment)

    def _apply_final_approval(self, db, principal, proposal, comment) -> Project:
        self._guard_final_approval(principal, proposal)
        self._move(
            db, proposal, S.APPROVED_BY_HEAD,
            principal=principal,
            action=AuditAction.FINAL_APPROVED,
        )
        proposal.approved_at = _now()
        proposal.approved_by_id = principal.user_id
        self._comment(db, proposal, principal, comment)
        return self._create_official_project(db, proposal, principal)

    def _create_official_project(
        self, db: Session, proposal: ProposedProject, principal: Principal
    ) -> Project:
        project = Project(
            proposed_project_id=proposal.id,
            title=proposal.title,
            description=proposal.description,
            approved_by_id=principal.user_id,
            faculty_id=proposal.faculty_id or principal.faculty_id,
        )
        for m in proposal.active_members():
            project.members.append(
                ProjectMember(user_id=m.user_id, role=m.role, status=MemberStatus.ACTIVE.value)
            )
        db.add(project)
        return project

    # ─────────────────────────────────────────────
    # CREATION
    # ─────────────────────────────────────────────

    def create_proposal(
        self,
        db: Session,
        principal: Principal,
        *,
        title: Optional[str],
        student_ids: Sequence[str],
        advisor_id: Optional[str],
        description: Optional[str] = None,
        allocation_id: Optional[str] = None,
        faculty_id: Optional[str] = None,
        proposal_deadline: Optional[datetime] = None,
        topic_lock_date: Optional[datetime] = None,
    ) -> ProposedProject:
        """
        Open a proposal for an allocated student (or group) with their advisor.
        Status starts at TOPIC_SUBMISSION_PENDING.
        """
        with unit_of_work(db):
            if not policy.can_create_proposal(principal):
                raise ForbiddenError("Only faculty members may open a proposal.")

            students = [s for s in student_ids if s]
            if not students:
                raise ValidationError("At least one student is required.")
            if len(set(students)) != len(students):
                raise ValidationError("Duplicate student ids.")
            if advisor_id and advisor_id in students:
                raise ValidationError("The advisor cannot also be a student member.")

            if allocation_id:
                exists = db.execute(
                    select(ProposedProject.id).where(ProposedProject.allocation_id == allocation_id)
                ).first()
                if exists:
                    raise ValidationError(
                        "A proposal already exists for this allocation.",
                        details={"allocation_id": allocation_id},
                    )

            proposal = ProposedProject(
                title=title.strip() if not _blank(title) else PLACEHOLDER_TITLE,
                description=description,
                status=S.TOPIC_SUBMISSION_PENDING.value,
                created_by_id=principal.user_id,
                faculty_id=faculty_id or principal.faculty_id,
                allocation_id=allocation_id,
                proposal_deadline=proposal_deadline,
                topic_lock_date=topic_lock_date,
            )
            group = len(students) > 1
            for idx, sid in enumerate(students):
                role = MemberRole.LEADER if group and idx == 0 else MemberRole.STUDENT
                proposal.members.append(ProposedProjectMember(user_id=sid, role=role.value))
            if advisor_id:
                proposal.members.append(
                    ProposedProjectMember(user_id=advisor_id, role=MemberRole.ADVISOR.value)
                )
            db.add(proposal)
            db.flush()

            self.audit.write(
                db,
                entity_type="proposed_project",
                entity_id=proposal.id,
                actor_id=principal.user_id,
                action=AuditAction.PROPOSAL_CREATED,
                details={"students": students, "advisor_id": advisor_id},
            )

        logger.info(
            "proposal created",
            extra={"proposed_project_id": str(proposal.id), "actor_id": principal.user_id},
        )
        return proposal

    def get_proposal(self, db: Session, principal: Principal, project_id: uuid.UUID) -> ProposedProject:
        proposal = db.get(ProposedProject, project_id)
        if not proposal:
            raise NotFoundError("ProposedProject", project_id)
        if not policy.is_participant(principal, proposal):
            raise ForbiddenError("Not a participant of this proposal.")
        return proposal

    # ─────────────────────────────────────────────
    # TOPIC
    # ─────────────────────────────────────────────

    def submit_topic(
        self,
        db: Session,
        principal: Principal,
        project_id: uuid.UUID,
        *,
        title: str,
        description: Optional[str] = None,
        submit_to_advisor: bool = False,
        expected_version: Optional[int] = None,
    ) -> ProposedProject:
        with unit_of_work(db):
            proposal = self._get_proposal_for_update(db, project_id)
            if not policy.is_student_member(principal, proposal):
                raise ForbiddenError("Only student members may edit the topic.")
            self._check_version(proposal, expected_version)

            if _blank(title):
                raise ValidationError("Title must not be empty.")
            if proposal.status_enum not in TOPIC_EDITABLE_STATUSES:
                raise InvalidTransitionError(
                    "The topic can no longer be edited in the current status.",
                    details={"status": proposal.status},
                )

            proposal.title = title.strip()
            proposal.description = description

            if submit_to_advisor:
                self._move(
                    db, proposal, S.TOPIC_PENDING_ADVISOR,
                    principal=principal,
                    action=AuditAction.TOPIC_SUBMITTED,
                )
            else:
                self.audit.write(
                    db,
                    entity_type="proposed_project",
                    entity_id=proposal.id,
                    actor_id=principal.user_id,
                    action=AuditAction.TOPIC_SAVED,
                )
        return proposal

    def review_topic(
        self,
        db: Session,
        principal: Principal,
        project_id: uuid.UUID,
        *,
        decision: ReviewDecision,
        comment: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> ProposedProject:
        with unit_of_work(db):
            proposal = self._get_proposal_for_update(db, project_id)
            self._require_advisor(principal, proposal, "topic")
            self._check_version(proposal, expected_version)
            self._apply_topic_review(db, principal, proposal, decision, comment)
        return proposal

    # ─────────────────────────────────────────────
    # OUTLINE
    # ─────────────────────────────────────────────

    def submit_outline(
        self,
        db: Session,
        principal: Principal,
        project_id: uuid.UUID,
        *,
        introduction: Optional[str] = None,
        objectives: Optional[str] = None,
        methodology: Optional[str] = None,
        expected_results: Optional[str] = None,
        file_id: Optional[str] = None,
        submit_for_review: bool = False,
        expected_version: Optional[int] = None,
    ) -> ProposalOutline:
        """
        Save (draft) or submit the outline. Draft saves may be partial:
        omitted fields keep their stored value. Submission requires all four
        text fields after merging.
        """
        provided = {
            "introduction": introduction,
            "objectives": objectives,
            "methodology": methodology,
            "expected_results": expected_results,
        }

        with unit_of_work(db):
            proposal = self._get_proposal_for_update(db, project_id)
            if not policy.is_student_member(principal, proposal):
                raise ForbiddenError("Only student members may submit the outline.")
            self._check_version(proposal, expected_version)

            current = proposal.status_enum
            if current not in OUTLINE_SUBMITTABLE_STATUSES:
                raise InvalidTransitionError(
                    "The outline can only be submitted once the topic is approved.",
                    details={"status": proposal.status},
                )

            outline = proposal.outline
            if outline is not None and outline.status == ProposalOutlineStatus.LOCKED.value:
                raise InvalidStateError("The outline is locked and can no longer change.")

            merged = {
                name: value if value is not None else (getattr(outline, name) if outline else None)
                for name, value in provided.items()
            }
            if submit_for_review:
                missing = [name for name in OUTLINE_FIELDS if _blank(merged[name])]
                if missing:
                    raise ValidationError(
                        "All outline sections are required for review submission.",
                        details={"missing": missing},
                    )

            if outline is None:
                outline = ProposalOutline(proposed_project=proposal)
                db.add(outline)
            for name, value in merged.items():
                setattr(outline, name, value)
            if file_id is not None:
                outline.file_id = file_id

            if submit_for_review:
                outline.status = ProposalOutlineStatus.PENDING_REVIEW.value
                if current == S.TOPIC_APPROVED:
                    self._move(
                        db, proposal, S.OUTLINE_PENDING_SUBMISSION,
                        principal=principal,
                        action=AuditAction.OUTLINE_SAVED,
                    )
                self._move(
                    db, proposal, S.OUTLINE_PENDING_ADVISOR,
                    principal=principal,
                    action=AuditAction.OUTLINE_SUBMITTED,
                )
            else:
                outline.status = ProposalOutlineStatus.DRAFT.value
                if current in {S.TOPIC_APPROVED, S.OUTLINE_APPROVED}:
                    self._move(
                        db, proposal, S.OUTLINE_PENDING_SUBMISSION,
                        principal=principal,
                        action=AuditAction.OUTLINE_SAVED,
                    )
                else:
                    self.audit.write(
                        db,
                        entity_type="proposed_project",
                        entity_id=proposal.id,
                        actor_id=principal.user_id,
                        action=AuditAction.OUTLINE_SAVED,
                    )
        return outline

    def review_outline(
        self,
        db: Session,
        principal: Principal,
        outline_id: uuid.UUID,
        *,
        decision: ReviewDecision,
        comment: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> ProposalOutline:
        """
        Advisor decision on a PENDING_REVIEW outline. Outline and project
        status change together in one transaction.
        """
        with unit_of_work(db):
            outline = self._get_outline_for_update(db, outline_id)
            proposal = self._get_proposal_for_update(db, outline.proposed_project_id)
            self._require_advisor(principal, proposal, "outline")
            self._check_version(proposal, expected_version)
            self._apply_outline_review(db, principal, proposal, outline, decision, comment)
        return outline

    def lock_outline(
        self,
        db: Session,
        principal: Principal,
        outline_id: uuid.UUID,
    ) -> ProposalOutline:
        with unit_of_work(db):
            outline = self._get_outline_for_update(db, outline_id)
            proposal = self._get_proposal_for_update(db, outline.proposed_project_id)

            if not policy.can_lock_outline(principal, proposal):
                raise ForbiddenError("Only the dean may lock an outline.")
            if outline.status != ProposalOutlineStatus.APPROVED.value:
                raise InvalidTransitionError(
                    "Only an approved outline can be locked.",
                    details={"outline_status": outline.status},
                )

            outline.status = ProposalOutlineStatus.LOCKED.value
            self.audit.write(
                db,
                entity_type="proposal_outline",
                entity_id=outline.id,
                actor_id=principal.user_id,
                action=AuditAction.OUTLINE_LOCKED,
                details={"proposed_project_id": proposal.id},
            )
        return outline

    # ─────────────────────────────────────────────
    # DEPARTMENT HEAD
    # ─────────────────────────────────────────────

    def submit_to_head(
        self,
        db: Session,
        principal: Principal,
        project_id: uuid.UUID,
        *,
        expected_version: Optional[int] = None,
    ) -> ProposedProject:
        """
        OUTLINE_APPROVED or REQUESTED_CHANGES_HEAD -> PENDING_HEAD.
        """
        with unit_of_work(db):
            proposal = self._get_proposal_for_update(db, project_id)
            if not (policy.is_student_member(principal, proposal) or policy.is_advisor(principal, proposal)):
                raise ForbiddenError("Only the proposal's students or advisor may forward it to the head.")
            self._check_version(proposal, expected_version)

            self._move(
                db, proposal, S.PENDING_HEAD,
                principal=principal,
                action=AuditAction.SUBMITTED_TO_HEAD,
            )
        return proposal

    def department_head_review(
        self,
        db: Session,
        principal: Principal,
        project_id: uuid.UUID,
        *,
        decision: ReviewDecision,
        comment: Optional[str],
        expected_version: Optional[int] = None,
    ) -> ProposedProject:
        with unit_of_work(db):
            proposal = self._get_proposal_for_update(db, project_id)
            self._require_head(principal, proposal, "review this proposal")
            self._check_version(proposal, expected_version)
            self._apply_head_decision(db, principal, proposal, decision, comment)
        return proposal

    def final_approval(
        self,
        db: Session,
        principal: Principal,
        project_id: uuid.UUID,
        *,
        comment: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> ProposedProject:
        """
        Single terminal success edge. Creates the official Project.
        Calling it again fails with InvalidTransitionError.
        """
        with unit_of_work(db):
            proposal = self._get_proposal_for_update(db, project_id)
            self._require_head(principal, proposal, "give final approval")
            self._check_version(proposal, expected_version)
            project = self._apply_final_approval(db, principal, proposal, comment)
            db.flush()
            logger.info(
                "official project created",
                extra={"proposed_project_id": str(proposal.id), "project_id": str(project.id)},
            )
        return proposal

    # ─────────────────────────────────────────────
    # COMMENTS / MEMBERS
    # ─────────────────────────────────────────────

    def add_comment(
        self,
        db: Session,
        principal: Principal,
        project_id: uuid.UUID,
        *,
        content: str,
    ) -> ProposedProjectComment:
        with unit_of_work(db):
            proposal = self._get_proposal_for_update(db, project_id)
            if not policy.is_participant(principal, proposal):
                raise ForbiddenError("Only participants may comment on this proposal.")
            if _blank(content):
                raise ValidationError("Comment content must not be empty.")
            row = self._comment(db, proposal, principal, content)
        return row

    def manage_member(
        self,
        db: Session,
        principal: Principal,
        project_id: uuid.UUID,
        *,
        action: MemberAction,
        student_id: str,
        role: Optional[MemberRole] = None,
    ) -> ProposedProjectMember:
        role = role or MemberRole.STUDENT

        with unit_of_work(db):
            proposal = self._get_proposal_for_update(db, project_id)

            if not policy.can_manage_members(principal, proposal):
                raise ForbiddenError("Only the proposal owner or advisor may manage members.")
            if _blank(student_id):
                raise ValidationError("studentId is required.")
            if role not in STUDENT_MEMBER_ROLES:
                raise ValidationError(
                    "Only student-side roles can be managed here.",
                    details={"role": role.value},
                )
            if proposal.status_enum in TERMINAL_STATUSES:
                raise InvalidStateError(
                    "Members of a closed proposal cannot change.",
                    details={"status": proposal.status},
                )

            existing = next((m for m in proposal.members if m.user_id == student_id), None)

            if action == MemberAction.add:
                if existing is not None and existing.status == MemberStatus.ACTIVE.value:
                    raise ValidationError(
                        "Student is already a member of this proposal.",
                        details={"student_id": student_id},
                    )
                if existing is not None:
                    existing.status = MemberStatus.ACTIVE.value
                    existing.role = role.value
                    member = existing
                else:
                    member = ProposedProjectMember(user_id=student_id, role=role.value)
                    proposal.members.append(member)
                audit_action = AuditAction.MEMBER_ADDED
            else:
                if existing is None or existing.status != MemberStatus.ACTIVE.value:
                    raise NotFoundError("ProposedProjectMember", student_id)
                if existing.role == MemberRole.ADVISOR.value:
                    raise ValidationError("The advisor cannot be removed through member management.")
                existing.status = MemberStatus.REMOVED.value
                member = existing
                audit_action = AuditAction.MEMBER_REMOVED

            self.audit.write(
                db,
                entity_type="proposed_project",
                entity_id=proposal.id,
                actor_id=principal.user_id,
                action=audit_action,
                details={"student_id": student_id, "role": role},
            )
        return member

    # ─────────────────────────────────────────────
    # BULK
    # ─────────────────────────────────────────────

    def bulk_review(
        self,
        db: Session,
        principal: Principal,
        *,
        project_ids: Sequence[uuid.UUID],
        target_status: S,
        comment: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Apply one advisor/head decision to many proposals. Every proposal is
        checked first; if any check fails, nothing is written and the error
        lists each failing proposal.
        """
        check, apply = self._bulk_plan(principal, target_status, comment)
        ids = list(dict.fromkeys(project_ids))
        if not ids:
            raise ValidationError("projectIds must not be empty.")

        with unit_of_work(db):
            proposals: List[ProposedProject] = []
            failures: List[Dict[str, Any]] = []
            for pid in ids:
                try:
                    proposal = self._get_proposal_for_update(db, pid)
                    proposals.append(proposal)
                    check(proposal)
                except DomainError as e:
                    failures.append({"id": str(pid), "code": e.code, "message": e.message})

            if failures:
                codes = {f["code"] for f in failures}
                if codes == {ForbiddenError.code}:
                    raise ForbiddenError(
                        "Not authorized for some proposals in the batch.",
                        details={"failures": failures},
                    )
                raise ValidationError(
                    "Some proposals cannot take this decision.",
                    details={"failures": failures},
                )

            results = []
            for proposal in proposals:
                old_status = proposal.status
                apply(db, proposal)
                results.append(
                    {
                        "id": str(proposal.id),
                        "title": proposal.title,
                        "oldStatus": old_status,
                        "newStatus": proposal.status,
                        "success": True,
                    }
                )

        logger.info(
            "bulk review applied",
            extra={"count": len(results), "target_status": target_status.value, "actor_id": principal.user_id},
        )
        return {"processed": len(results), "total": len(ids), "results": results}

    def _bulk_plan(self, principal: Principal, target_status: S, comment: Optional[str]):
        """
        Map a bulk target status onto a (check, apply) pair built from the
        single-proposal guards.
        """
        topic = {v: k for k, v in TOPIC_REVIEW_OUTCOMES.items()}
        outline = {v[0]: k for k, v in OUTLINE_REVIEW_OUTCOMES.items()}
        head = {v: k for k, v in HEAD_REVIEW_OUTCOMES.items()}

        if target_status in topic:
            decision = topic[target_status]
            return (
                lambda p: self._guard_topic_review(principal, p, decision, comment),
                lambda db, p: self._apply_topic_review(db, principal, p, decision, comment),
            )
        if target_status in outline:
            decision = outline[target_status]
            return (
                lambda p: self._guard_outline_review(principal, p, p.outline, decision, comment),
                lambda db, p: self._apply_outline_review(db, principal, p, p.outline, decision, comment),
            )
        if target_status in head:
            decision = head[target_status]
            return (
                lambda p: self._guard_head_decision(principal, p, decision, comment),
                lambda db, p: self._apply_head_decision(db, principal, p, decision, comment),
            )
        if target_status == S.APPROVED_BY_HEAD:
            return (
                lambda p: self._guard_final_approval(principal, p),
                lambda db, p: self._apply_final_approval(db, principal, p, comment),
            )

        raise ValidationError(
            "Status is not a reviewer decision.",
            details={"status": target_status.value},
        )
