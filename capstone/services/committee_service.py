from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from capstone.core.errors import InvalidStateError, NotFoundError, ValidationError
from capstone.db.transaction import unit_of_work
from capstone.models.defense_committee import DefenseCommittee, DefenseCommitteeMember
from capstone.models.enums import CommitteeRole, DefenseCommitteeStatus, ProjectStatus, UserRole
from capstone.models.project import Project
from capstone.policies.rbac import Principal, require_role
from capstone.services.audit_service import AuditAction, AuditService

logger = logging.getLogger(__name__)

# roles a committee may hold only once
SINGLE_SEAT_ROLES = {CommitteeRole.CHAIRMAN, CommitteeRole.SECRETARY}

# a committee in one of these cannot be deleted
UNDELETABLE_STATUSES = {DefenseCommitteeStatus.ONGOING.value, DefenseCommitteeStatus.FINISHED.value}


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


class CommitteeService:
    """
    Defense committee scheduling and seating.

    Only the dean or a department head manages committees. Once the project
    is COMPLETED, or the committee is FINISHED/CANCELLED, seats are frozen.
    """

    def __init__(self, audit: Optional[AuditService] = None):
        self.audit = audit or AuditService()

    def _get_project_for_update(self, db: Session, project_id: uuid.UUID) -> Project:
        project = db.execute(
            select(Project).where(Project.id == project_id).with_for_update()
        ).scalar_one_or_none()
        if not project:
            raise NotFoundError("Project", project_id)
        return project

    @staticmethod
    def _get_committee(project: Project) -> DefenseCommittee:
        if project.committee is None:
            raise NotFoundError("DefenseCommittee", project.id)
        return project.committee

    @staticmethod
    def _require_open(project: Project, committee: DefenseCommittee) -> None:
        if project.status == ProjectStatus.COMPLETED.value:
            raise InvalidStateError(
                "The project has been evaluated; its committee can no longer change.",
                details={"project_status": project.status},
            )
        if committee.is_closed:
            raise InvalidStateError(
                "The committee is closed.",
                details={"committee_status": committee.status},
            )

    def _audit(self, db, principal, project, action, details=None):
        self.audit.write(
            db,
            entity_type="project",
            entity_id=project.id,
            actor_id=principal.user_id,
            action=action,
            details=details,
        )

    # ─────────────────────────────────────────────
    # COMMITTEE
    # ─────────────────────────────────────────────

    def create_committee(
        self,
        db: Session,
        principal: Principal,
        project_id: uuid.UUID,
        *,
        name: str,
        description: Optional[str] = None,
        defense_date: Optional[datetime] = None,
        location: Optional[str] = None,
    ) -> DefenseCommittee:
        with unit_of_work(db):
            project = self._get_project_for_update(db, project_id)
            require_role(principal, UserRole.DEAN, UserRole.DEPARTMENT_HEAD)

            if project.status != ProjectStatus.WAITING_FOR_EVALUATION.value:
                raise InvalidStateError(
                    "A committee can only be scheduled while the project awaits evaluation.",
                    details={"project_status": project.status},
                )
            if project.committee is not None:
                raise ValidationError(
                    "The project already has a defense committee.",
                    details={"committee_id": str(project.committee.id)},
                )
            if _blank(name):
                raise ValidationError("Committee name is required.")

            committee = DefenseCommittee(
                name=name.strip(),
                description=description,
                defense_date=defense_date,
                location=location,
                status=DefenseCommitteeStatus.PREPARING.value,
                created_by_id=principal.user_id,
            )
            project.committee = committee
            db.flush()

            self._audit(db, principal, project, AuditAction.COMMITTEE_CREATED, {"committee_id": committee.id})

        logger.info(
            "defense committee created",
            extra={"project_id": str(project_id), "committee_id": str(committee.id)},
        )
        return committee

    def update_committee(
        self,
        db: Session,
        principal: Principal,
        project_id: uuid.UUID,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
        defense_date: Optional[datetime] = None,
        location: Optional[str] = None,
        status: Optional[DefenseCommitteeStatus] = None,
    ) -> DefenseCommittee:
        """Partial update; omitted fields keep their stored value."""
        with unit_of_work(db):
            project = self._get_project_for_update(db, project_id)
            require_role(principal, UserRole.DEAN, UserRole.DEPARTMENT_HEAD)
            committee = self._get_committee(project)
            self._require_open(project, committee)

            if name is not None and _blank(name):
                raise ValidationError("Committee name must not be empty.")

            changed = {}
            for field, value in (
                ("name", name.strip() if name is not None else None),
                ("description", description),
                ("defense_date", defense_date),
                ("location", location),
                ("status", status.value if status is not None else None),
            ):
                if value is not None:
                    setattr(committee, field, value)
                    changed[field] = value.isoformat() if isinstance(value, datetime) else value

            self._audit(db, principal, project, AuditAction.COMMITTEE_UPDATED, changed)
        return committee

    def delete_committee(
        self,
        db: Session,
        principal: Principal,
        project_id: uuid.UUID,
    ) -> None:
        with unit_of_work(db):
            project = self._get_project_for_update(db, project_id)
            require_role(principal, UserRole.DEAN, UserRole.DEPARTMENT_HEAD)
            committee = self._get_committee(project)

            if committee.status in UNDELETABLE_STATUSES:
                raise InvalidStateError(
                    "An ongoing or finished committee cannot be deleted.",
                    details={"committee_status": committee.status},
                )

            committee_id = committee.id
            project.committee = None
            db.flush()

            self._audit(db, principal, project, AuditAction.COMMITTEE_DELETED, {"committee_id": committee_id})

    # ─────────────────────────────────────────────
    # MEMBERS
    # ─────────────────────────────────────────────

    def assign_committee_member(
        self,
        db: Session,
        principal: Principal,
        project_id: uuid.UUID,
        *,
        faculty_member_id: str,
        role: CommitteeRole,
    ) -> DefenseCommitteeMember:
        with unit_of_work(db):
            project = self._get_project_for_update(db, project_id)
            require_role(principal, UserRole.DEAN, UserRole.DEPARTMENT_HEAD)
            committee = self._get_committee(project)
            self._require_open(project, committee)

            if _blank(faculty_member_id):
                raise ValidationError("facultyMemberId is required.")

            for m in committee.members:
                if m.faculty_member_id == faculty_member_id:
                    raise ValidationError(
                        "Faculty member already sits on this committee.",
                        details={"faculty_member_id": faculty_member_id},
                    )
                if role in SINGLE_SEAT_ROLES and m.role == role.value:
                    raise ValidationError(
                        f"The committee already has a {role.value}.",
                        details={"role": role.value},
                    )

            member = DefenseCommitteeMember(faculty_member_id=faculty_member_id, role=role.value)
            committee.members.append(member)
            db.flush()

            self._audit(
                db, principal, project, AuditAction.COMMITTEE_MEMBER_ASSIGNED,
                {"faculty_member_id": faculty_member_id, "role": role},
            )
        return member

    def remove_committee_member(
        self,
        db: Session,
        principal: Principal,
        project_id: uuid.UUID,
        *,
        faculty_member_id: str,
    ) -> None:
        with unit_of_work(db):
            project = self._get_project_for_update(db, project_id)
            require_role(principal, UserRole.DEAN, UserRole.DEPARTMENT_HEAD)
            committee = self._get_committee(project)
            self._require_open(project, committee)

            member = next(
                (m for m in committee.members if m.faculty_member_id == faculty_member_id),
                None,
            )
            if member is None:
                raise NotFoundError("DefenseCommitteeMember", faculty_member_id)

            committee.members.remove(member)
            db.flush()

            self._audit(
                db, principal, project, AuditAction.COMMITTEE_MEMBER_REMOVED,
                {"faculty_member_id": faculty_member_id, "role": member.role},
            )
