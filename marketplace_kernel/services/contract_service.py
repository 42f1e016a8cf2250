"""
Service layer for Contract cancellation and lookup.

The job stays in-progress when its contract is cancelled: the job machine
has no in-progress -> cancelled edge, and completing a job always goes
through its contract.
"""

from uuid import UUID

from marketplace_kernel.domain.dtos import ContractInfo
from marketplace_kernel.domain.lifecycle import ContractStatus, require_transition
from marketplace_kernel.exceptions import ContractNotFoundError, InvalidStatusError
from marketplace_kernel.logging_config import get_logger
from marketplace_kernel.models.contract import Contract
from marketplace_kernel.services.base import BaseService

logger = get_logger("services.contract")


class ContractService(BaseService[Contract]):

    def _get(self, contract_id: UUID) -> Contract:
        contract = self._fetch(Contract, contract_id)
        if contract is None:
            raise ContractNotFoundError(str(contract_id))
        return contract

    def get_contract(self, contract_id: UUID) -> ContractInfo:
        return ContractInfo.from_model(self._get(contract_id))

    def cancel_contract(self, contract_id: UUID, acting_client_id: UUID) -> ContractInfo:
        """
        Cancel an active contract on behalf of its client.

        Raises:
            ContractNotFoundError, InvalidStatusError, NotAuthorizedPartyError,
            ConcurrentTransitionError.
        """
        contract = self._get(contract_id)
        if contract.status != ContractStatus.ACTIVE:
            raise InvalidStatusError(
                entity_type="Contract",
                entity_id=str(contract_id),
                current_status=contract.status.value,
                required=(ContractStatus.ACTIVE.value,),
            )
        self._require_party(
            "Contract", contract_id, acting_client_id, contract.client_id, "client"
        )
        require_transition("Contract", contract_id, contract.status, ContractStatus.CANCELLED)

        self._compare_and_set(
            contract,
            expected={"status": ContractStatus.ACTIVE},
            values={"status": ContractStatus.CANCELLED, "end_date": self.clock.now()},
        )

        logger.info("contract_cancelled", extra={"contract_id": str(contract_id)})
        return ContractInfo.from_model(contract)
