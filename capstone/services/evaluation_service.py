# capstone/services/evaluation_service.py
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from capstone.core.config import get_settings
from capstone.core.errors import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from capstone.db.transaction import unit_of_work
from capstone.models.enums import (
    DefenseCommitteeStatus,
    EvaluationStatus,
    EvaluatorRole,
    ProjectStatus,
)
from capstone.models.evaluation import EvaluationScore, ProjectEvaluation
from capstone.models.project import Project
from capstone.policies import evaluation_policy as policy
from capstone.policies.rbac import Principal
from capstone.services import scoring
from capstone.services.audit_service import AuditAction, AuditService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EvaluationSummary:
    evaluation: ProjectEvaluation
    advisor_average: Optional[float]
    committee_average: Optional[float]
    projected_score: Optional[float]


def _check_weight(name: str, value: Optional[float]) -> None:
    if value is None:
        return
    if not 0.0 <= float(value) <= 1.0:
        raise ValidationError(f"{name} must be between 0 and 1.", details={name: value})


class EvaluationService:
    """
    Defense scoring for an official Project.

    PENDING -> EVALUATED is one-way; after finalize every write on the
    evaluation (scores, weights, a second finalize) raises InvalidStateError.
    """

    def __init__(self, audit: Optional[AuditService] = None):
        self.audit = audit or AuditService()

    def _get_project(self, db: Session, project_id: uuid.UUID) -> Project:
        project = db.get(Project, project_id)
        if not project:
            raise NotFoundError("Project", project_id)
        return project

    def _get_evaluation_for_update(self, db: Session, evaluation_id: uuid.UUID) -> ProjectEvaluation:
        evaluation = db.execute(
            select(ProjectEvaluation)
            .where(ProjectEvaluation.id == evaluation_id)
            .with_for_update()
        ).scalar_one_or_none()
        if not evaluation:
            raise NotFoundError("ProjectEvaluation", evaluation_id)
        return evaluation

    @staticmethod
    def _require_pending(evaluation: ProjectEvaluation) -> None:
        if evaluation.status != EvaluationStatus.PENDING.value:
            raise InvalidStateError(
                "Evaluation is already finalized.",
                details={"status": evaluation.status},
            )

    @staticmethod
    def _averages(evaluation: ProjectEvaluation):
        return (
            scoring.compute_role_average(evaluation.scores, EvaluatorRole.ADVISOR),
            scoring.compute_role_average(evaluation.scores, EvaluatorRole.COMMITTEE),
        )

    # ─────────────────────────────────────────────
    # CREATE
    # ─────────────────────────────────────────────

    def create_evaluation(
        self,
        db: Session,
        principal: Principal,
        project_id: uuid.UUID,
        *,
        advisor_weight: Optional[float] = None,
        committee_weight: Optional[float] = None,
    ) -> ProjectEvaluation:
        with unit_of_work(db):
            project = self._get_project(db, project_id)

            if not policy.can_create_evaluation(principal, project):
                raise ForbiddenError("Only the advisor or committee chairman may open the evaluation.")
            _check_weight("advisor_weight", advisor_weight)
            _check_weight("committee_weight", committee_weight)

            exists = db.execute(
                select(ProjectEvaluation.id).where(ProjectEvaluation.project_id == project.id)
            ).first()
            if exists:
                raise ValidationError(
                    "An evaluation already exists for this project.",
                    details={"project_id": str(project.id)},
                )

            evaluation = ProjectEvaluation(
                project_id=project.id,
                status=EvaluationStatus.PENDING.value,
                advisor_weight=advisor_weight,
                committee_weight=committee_weight,
            )
            db.add(evaluation)
            db.flush()

            self.audit.write(
                db,
                entity_type="project_evaluation",
                entity_id=evaluation.id,
                actor_id=principal.user_id,
                action=AuditAction.EVALUATION_CREATED,
                details={"project_id": project.id},
            )

        logger.info(
            "evaluation created",
            extra={"evaluation_id": str(evaluation.id), "project_id": str(project_id)},
        )
        return evaluation

    def update_weights(
        self,
        db: Session,
        principal: Principal,
        evaluation_id: uuid.UUID,
        *,
        advisor_weight: Optional[float] = None,
        committee_weight: Optional[float] = None,
    ) -> ProjectEvaluation:
        """Adjust the stored weights while the evaluation is still PENDING."""
        with unit_of_work(db):
            evaluation = self._get_evaluation_for_update(db, evaluation_id)
            project = self._get_project(db, evaluation.project_id)

            if not policy.can_create_evaluation(principal, project):
                raise ForbiddenError("Only the advisor or committee chairman may update the evaluation.")
            self._require_pending(evaluation)
            _check_weight("advisor_weight", advisor_weight)
            _check_weight("committee_weight", committee_weight)

            changed = {}
            if advisor_weight is not None:
                evaluation.advisor_weight = float(advisor_weight)
                changed["advisor_weight"] = float(advisor_weight)
            if committee_weight is not None:
                evaluation.committee_weight = float(committee_weight)
                changed["committee_weight"] = float(committee_weight)

            self.audit.write(
                db,
                entity_type="project_evaluation",
                entity_id=evaluation.id,
                actor_id=principal.user_id,
                action=AuditAction.EVALUATION_UPDATED,
                details=changed,
            )
        return evaluation

    # ─────────────────────────────────────────────
    # SCORES
    # ─────────────────────────────────────────────

    def submit_score(
        self,
        db: Session,
        principal: Principal,
        evaluation_id: uuid.UUID,
        *,
        role: EvaluatorRole,
        score: float,
        comment: Optional[str] = None,
        evaluator_id: Optional[str] = None,
    ) -> EvaluationScore:
        """
        Upsert keyed by (evaluation, evaluator): a second submission by the
        same evaluator overwrites the first. Two concurrent first submissions
        collide on the unique constraint; the loser retries as an update.
        """
        evaluator_id = evaluator_id or principal.user_id
        if evaluator_id != principal.user_id:
            raise ForbiddenError("Scores can only be submitted for yourself.")

        for attempt in range(2):
            try:
                with unit_of_work(db):
                    row = self._upsert_score(
                        db, principal, evaluation_id,
                        evaluator_id=evaluator_id,
                        role=role,
                        score=score,
                        comment=comment,
                    )
                return row
            except IntegrityError:
                if attempt:
                    raise ConflictError("Concurrent score submission; retry.")
                logger.warning(
                    "score insert collided, retrying as update",
                    extra={"evaluation_id": str(evaluation_id), "evaluator_id": evaluator_id},
                )

    def _upsert_score(
        self,
        db: Session,
        principal: Principal,
        evaluation_id: uuid.UUID,
        *,
        evaluator_id: str,
        role: EvaluatorRole,
        score: float,
        comment: Optional[str],
    ) -> EvaluationScore:
        settings = get_settings()

        evaluation = self._get_evaluation_for_update(db, evaluation_id)
        project = self._get_project(db, evaluation.project_id)

        if not policy.can_score_as(principal, project, role):
            raise ForbiddenError(
                f"Not allowed to score as {role.value}.",
                details={"role": role.value},
            )
        self._require_pending(evaluation)
        if score is None or not settings.score_min <= float(score) <= settings.score_max:
            raise ValidationError(
                f"Score must be between {settings.score_min:g} and {settings.score_max:g}.",
                details={"score": score},
            )

        row = db.execute(
            select(EvaluationScore).where(
                EvaluationScore.evaluation_id == evaluation.id,
                EvaluationScore.evaluator_id == evaluator_id,
            )
        ).scalar_one_or_none()

        if row is None:
            row = EvaluationScore(
                evaluation_id=evaluation.id,
                evaluator_id=evaluator_id,
                role=role.value,
                score=float(score),
                comment=comment,
            )
            db.add(row)
        else:
            row.role = role.value
            row.score = float(score)
            row.comment = comment
        db.flush()

        self.audit.write(
            db,
            entity_type="project_evaluation",
            entity_id=evaluation.id,
            actor_id=principal.user_id,
            action=AuditAction.SCORE_SUBMITTED,
            details={"role": role, "score": float(score)},
        )
        return row

    # ─────────────────────────────────────────────
    # FINALIZE
    # ─────────────────────────────────────────────

    def finalize(
        self,
        db: Session,
        principal: Principal,
        evaluation_id: uuid.UUID,
        *,
        advisor_weight: float,
        committee_weight: float,
    ) -> EvaluationSummary:
        """
        Lock the evaluation with the given weights.

        - weights must sum to 1 within the configured tolerance
        - both ADVISOR and COMMITTEE need at least one score
        - final = A·wA + C·wC, weights verbatim
        Marks the project COMPLETED.
        """
        settings = get_settings()

        with unit_of_work(db):
            evaluation = self._get_evaluation_for_update(db, evaluation_id)
            project = self._get_project(db, evaluation.project_id)

            if not policy.can_finalize(principal, project):
                raise ForbiddenError("Only the committee secretary or the dean may finalize.")
            self._require_pending(evaluation)
            _check_weight("advisor_weight", advisor_weight)
            _check_weight("committee_weight", committee_weight)
            if not scoring.weights_sum_to_one(advisor_weight, committee_weight, settings.weight_tolerance):
                raise ValidationError(
                    "Weights must sum to 1.",
                    details={"advisor_weight": advisor_weight, "committee_weight": committee_weight},
                )

            if not evaluation.scores:
                raise ValidationError("No scores have been submitted.")
            advisor_avg, committee_avg = self._averages(evaluation)
            missing = [
                role.value
                for role, avg in ((EvaluatorRole.ADVISOR, advisor_avg), (EvaluatorRole.COMMITTEE, committee_avg))
                if avg is None
            ]
            if missing:
                raise ValidationError(
                    "Every evaluator role needs at least one score before finalizing.",
                    details={"missing_roles": missing},
                )

            final = scoring.weighted_final_score(advisor_avg, committee_avg, advisor_weight, committee_weight)

            evaluation.advisor_weight = float(advisor_weight)
            evaluation.committee_weight = float(committee_weight)
            evaluation.final_score = final
            evaluation.status = EvaluationStatus.EVALUATED.value
            project.status = ProjectStatus.COMPLETED.value
            if project.committee is not None:
                project.committee.status = DefenseCommitteeStatus.FINISHED.value

            self.audit.write(
                db,
                entity_type="project_evaluation",
                entity_id=evaluation.id,
                actor_id=principal.user_id,
                action=AuditAction.EVALUATION_FINALIZED,
                details={
                    "final_score": final,
                    "advisor_average": advisor_avg,
                    "committee_average": committee_avg,
                    "advisor_weight": advisor_weight,
                    "committee_weight": committee_weight,
                },
            )

        logger.info(
            "evaluation finalized",
            extra={"evaluation_id": str(evaluation.id), "final_score": final},
        )
        return EvaluationSummary(
            evaluation=evaluation,
            advisor_average=advisor_avg,
            committee_average=committee_avg,
            projected_score=final,
        )

    # ─────────────────────────────────────────────
    # READ
    # ─────────────────────────────────────────────

    def evaluation_summary(
        self,
        db: Session,
        principal: Principal,
        evaluation_id: uuid.UUID,
    ) -> EvaluationSummary:
        evaluation = db.get(ProjectEvaluation, evaluation_id)
        if not evaluation:
            raise NotFoundError("ProjectEvaluation", evaluation_id)
        project = self._get_project(db, evaluation.project_id)
        if not policy.can_view_evaluation(principal, project):
            raise ForbiddenError("Not allowed to view this evaluation.")

        settings = get_settings()
        advisor_avg, committee_avg = self._averages(evaluation)
        aw = evaluation.advisor_weight if evaluation.advisor_weight is not None else settings.default_advisor_weight
        cw = evaluation.committee_weight if evaluation.committee_weight is not None else settings.default_committee_weight

        return EvaluationSummary(
            evaluation=evaluation,
            advisor_average=advisor_avg,
            committee_average=committee_avg,
            projected_score=scoring.projected_final_score(advisor_avg, committee_avg, aw, cw),
        )
