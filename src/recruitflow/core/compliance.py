"""Sanction clearance, background check and contract chain guarding a hire."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

import structlog

from ..errors import InvalidTransitionError, PreconditionError, ValidationError
from ..identifiers import issue_code, utc_timestamp
from ..repositories import Repositories
from ..schemas import BackgroundCheck, EmploymentContract, ReferenceCheck, SanctionDeclaration
from ..schemas.hiring import MIN_REFERENCES, background_check_problems

logger = structlog.get_logger(__name__)


@dataclass
class ComplianceConfig:
    min_references: int = MIN_REFERENCES

    def __post_init__(self) -> None:
        if self.min_references < MIN_REFERENCES:
            raise ValidationError(f"min_references must be at least {MIN_REFERENCES}")


class ComplianceGateChain:
    """Three-link barrier: sanction cleared, background check completed, contract."""

    def __init__(self, repositories: Repositories, *, config: ComplianceConfig | None = None) -> None:
        self._repos = repositories
        self._config = config or ComplianceConfig()

    @property
    def config(self) -> ComplianceConfig:
        return self._config

    # sanction -----------------------------------------------------------

    async def declare_sanction(self, application_id: str, **fields: Any) -> SanctionDeclaration:
        application = await self._repos.applications.get(application_id)
        offers = await self._repos.offers.by_index("application_id", application_id)
        if not offers or offers[-1].status != "accepted":
            raise PreconditionError("offer for this candidate must be accepted")
        if await self._repos.sanctions.first_by_index("application_id", application_id):
            raise ValidationError(f"sanction declaration already exists for {application_id}")
        return await self._repos.sanctions.create(
            {
                **fields,
                "recruitment_id": application.recruitment_id,
                "application_id": application_id,
                "status": "pending",
            }
        )

    async def verify_sanction(
        self, declaration_id: str, *, is_clear: bool, verified_by: str | None = None
    ) -> SanctionDeclaration:
        declaration = await self._repos.sanctions.get(declaration_id)
        target = "cleared" if is_clear else "flagged"
        if declaration.status != "pending":
            raise InvalidTransitionError("sanction declaration", declaration.status, target)
        updated = await self._repos.sanctions.update(
            declaration_id,
            {"status": target, "verified_by": verified_by, "verified_at": utc_timestamp()},
            expected_updated_at=declaration.updated_at,
        )
        logger.info("compliance.sanction_verified", application_id=declaration.application_id, status=target)
        return updated

    # background check ---------------------------------------------------

    async def open_background_check(self, application_id: str, **fields: Any) -> BackgroundCheck:
        sanction = await self._repos.sanctions.first_by_index("application_id", application_id)
        if sanction is None or sanction.status != "cleared":
            status = sanction.status if sanction else "missing"
            raise PreconditionError(f"sanction declaration must be cleared (status is {status})")
        if await self._repos.background_checks.first_by_index("application_id", application_id):
            raise ValidationError(f"background check already exists for {application_id}")
        return await self._repos.background_checks.create(
            {
                **fields,
                "recruitment_id": sanction.recruitment_id,
                "application_id": application_id,
                "sanction_declaration_id": sanction.id,
                "min_references": self._config.min_references,
            }
        )

    async def add_reference(self, check_id: str, reference: ReferenceCheck | Mapping[str, Any]) -> BackgroundCheck:
        check = await self._open_check(check_id)
        entry = ReferenceCheck.model_validate(reference)
        references = [*check.model_dump(mode="json")["references"], entry.model_dump(mode="json")]
        return await self._update_check(check, {"references": references})

    async def update_reference(self, check_id: str, index: int, **changes: Any) -> BackgroundCheck:
        check = await self._open_check(check_id)
        references = check.model_dump(mode="json")["references"]
        if not 0 <= index < len(references):
            raise ValidationError(f"background check {check_id} has no reference #{index}")
        references[index] = {**references[index], **changes}
        return await self._update_check(check, {"references": references})

    async def set_guarantee_letter(self, check_id: str, **changes: Any) -> BackgroundCheck:
        return await self._update_part(check_id, "guarantee_letter", changes)

    async def set_home_address(self, check_id: str, **changes: Any) -> BackgroundCheck:
        return await self._update_part(check_id, "home_address", changes)

    async def set_criminal_check(self, check_id: str, **changes: Any) -> BackgroundCheck:
        return await self._update_part(check_id, "criminal_check", changes)

    async def complete_background_check(
        self, check_id: str, *, verified_by: str | None = None
    ) -> BackgroundCheck:
        """Stamp the check completed, or raise listing every unmet sub-check."""
        check = await self._repos.background_checks.get(check_id)
        if check.completed_at is not None:
            return check
        problems = background_check_problems(check)
        if problems:
            raise PreconditionError("; ".join(problems))
        updated = await self._repos.background_checks.update(
            check_id,
            {"completed_at": utc_timestamp(), "verified_by": verified_by},
            expected_updated_at=check.updated_at,
        )
        logger.info("compliance.background_check_completed", application_id=check.application_id)
        return updated

    async def _open_check(self, check_id: str) -> BackgroundCheck:
        check = await self._repos.background_checks.get(check_id)
        if check.completed_at is not None:
            raise InvalidTransitionError("background check", "completed", "modified")
        return check

    async def _update_part(self, check_id: str, part: str, changes: Mapping[str, Any]) -> BackgroundCheck:
        check = await self._open_check(check_id)
        current = check.model_dump(mode="json")[part]
        return await self._update_check(check, {part: {**current, **changes}})

    async def _update_check(self, check: BackgroundCheck, changes: Mapping[str, Any]) -> BackgroundCheck:
        updated = await self._repos.background_checks.update(
            check.id, changes, expected_updated_at=check.updated_at
        )
        if updated.status != check.status:
            logger.info(
                "compliance.background_check_status",
                application_id=check.application_id,
                status=updated.status,
            )
        return updated

    # contract -----------------------------------------------------------

    async def ensure_contract_allowed(self, application_id: str) -> BackgroundCheck:
        check = await self._repos.background_checks.first_by_index("application_id", application_id)
        if check is None:
            raise PreconditionError("background check has not been opened for this candidate")
        if check.status != "completed" or check.completed_at is None:
            raise PreconditionError("background check has not been completed for this candidate")
        return check

    async def draft_contract(self, application_id: str, **fields: Any) -> EmploymentContract:
        check = await self.ensure_contract_allowed(application_id)
        if await self._repos.contracts.first_by_index("application_id", application_id):
            raise ValidationError(f"employment contract already exists for {application_id}")
        signed = [name for name in ("employee_signed_at", "employer_signed_at") if fields.get(name)]
        if signed:
            raise ValidationError("signatures are recorded by the signing operations")
        number = await issue_code(self._repos.contracts, "contract_number", "EC")
        contract = await self._repos.contracts.create(
            {
                **fields,
                "recruitment_id": check.recruitment_id,
                "application_id": application_id,
                "contract_number": number,
                "status": "draft",
            }
        )
        logger.info("compliance.contract_drafted", application_id=application_id, contract_number=number)
        return contract

    async def sign_as_employee(self, contract_id: str) -> EmploymentContract:
        return await self._sign(contract_id, "employee_signed_at", {})

    async def sign_as_employer(self, contract_id: str, *, signatory: str | None = None) -> EmploymentContract:
        return await self._sign(contract_id, "employer_signed_at", {"employer_signatory": signatory})

    async def activate(self, contract_id: str) -> EmploymentContract:
        contract = await self._repos.contracts.get(contract_id)
        if contract.status != "signed" or not contract.is_fully_signed:
            raise InvalidTransitionError("employment contract", contract.status, "active")
        return await self._repos.contracts.update(
            contract_id, {"status": "active"}, expected_updated_at=contract.updated_at
        )

    async def _sign(self, contract_id: str, field: str, extra: Mapping[str, Any]) -> EmploymentContract:
        contract = await self._repos.contracts.get(contract_id)
        if contract.status == "active" or getattr(contract, field) is not None:
            raise InvalidTransitionError("employment contract", contract.status, f"set {field}")
        changes: dict[str, Any] = {**extra, field: utc_timestamp()}
        other = "employer_signed_at" if field == "employee_signed_at" else "employee_signed_at"
        changes["status"] = "signed" if getattr(contract, other) else "pending_signature"
        updated = await self._repos.contracts.update(
            contract_id, changes, expected_updated_at=contract.updated_at
        )
        logger.info("compliance.contract_signed", contract_id=contract_id, field=field, status=updated.status)
        return updated
