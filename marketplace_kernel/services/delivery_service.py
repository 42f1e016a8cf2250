"""
DeliveryService -- the delivery/revision sub-flow of an active contract.

Responsibility:
    Lets the freelancer submit (or resubmit) work and the client send it
    back for revision.  Each operation touches only the contract row.

Architecture position:
    Kernel > Services -- imperative shell, owns no transaction.

Invariants enforced:
    MONOTONIC_STATUS      -- delivery moves pending -> delivered,
                             delivered -> revision_requested and
                             revision_requested -> delivered only.
    GUARDED_STATUS_WRITES -- both operations are compare-and-set updates on
                             (status=active, delivery_status, version), so
                             they serialize against each other and against
                             contract completion.
    VERIFIED_PARTY        -- freelancer submits, client requests revision.

Failure modes:
    - InvalidFieldError for delivery text outside the configured bounds.
    - ContractNotFoundError.
    - InvalidStatusError if the contract is not active.
    - NotAuthorizedPartyError for the wrong party.
    - InvalidTransitionError if the delivery state does not permit the step.
    - ConcurrentTransitionError if the row moved after it was read.
"""

from uuid import UUID

from marketplace_kernel.domain.dtos import ContractInfo
from marketplace_kernel.domain.lifecycle import ContractStatus, DeliveryStatus, require_transition
from marketplace_kernel.domain.rules import validate_delivery_text
from marketplace_kernel.exceptions import ContractNotFoundError, InvalidStatusError
from marketplace_kernel.logging_config import get_logger
from marketplace_kernel.models.contract import Contract
from marketplace_kernel.services.base import BaseService

logger = get_logger("services.delivery")


class DeliveryService(BaseService[Contract]):

    def _load_active(self, contract_id: UUID) -> Contract:
        contract = self._fetch(Contract, contract_id)
        if contract is None:
            raise ContractNotFoundError(str(contract_id))
        if contract.status != ContractStatus.ACTIVE:
            raise InvalidStatusError(
                entity_type="Contract",
                entity_id=str(contract_id),
                current_status=contract.status.value,
                required=(ContractStatus.ACTIVE.value,),
            )
        return contract

    def submit_delivery(
        self,
        contract_id: UUID,
        text: str,
        acting_freelancer_id: UUID,
    ) -> ContractInfo:
        """Record the freelancer's delivery; allowed from pending or revision_requested."""
        text = validate_delivery_text(text, self.rules)
        contract = self._load_active(contract_id)
        self._require_party(
            "Contract", contract_id, acting_freelancer_id, contract.freelancer_id, "freelancer"
        )

        previous = contract.delivery_status
        require_transition("ContractDelivery", contract_id, previous, DeliveryStatus.DELIVERED)

        now = self.clock.now()
        self._compare_and_set(
            contract,
            expected={"status": ContractStatus.ACTIVE, "delivery_status": previous},
            values={
                "delivery_status": DeliveryStatus.DELIVERED,
                "delivery_text": text,
                "delivered_at": now,
            },
        )

        logger.info(
            "delivery_submitted",
            extra={
                "contract_id": str(contract_id),
                "resubmission": previous == DeliveryStatus.REVISION_REQUESTED,
                "text_length": len(text),
            },
        )
        return ContractInfo.from_model(contract)

    def request_revision(
        self,
        contract_id: UUID,
        acting_client_id: UUID,
    ) -> ContractInfo:
        """Send a delivered contract back to the freelancer."""
        contract = self._load_active(contract_id)
        self._require_party(
            "Contract", contract_id, acting_client_id, contract.client_id, "client"
        )

        require_transition(
            "ContractDelivery",
            contract_id,
            contract.delivery_status,
            DeliveryStatus.REVISION_REQUESTED,
        )

        self._compare_and_set(
            contract,
            expected={
                "status": ContractStatus.ACTIVE,
                "delivery_status": DeliveryStatus.DELIVERED,
            },
            values={"delivery_status": DeliveryStatus.REVISION_REQUESTED},
        )

        logger.info("revision_requested", extra={"contract_id": str(contract_id)})
        return ContractInfo.from_model(contract)
