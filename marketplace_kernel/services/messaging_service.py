"""
Service layer for client/freelancer messaging.

Conversations are get-or-create on (client, freelancer, job).  Messages are
append-only; the only later change is the recipient marking one read.
"""

from uuid import UUID

from sqlalchemy import select

from marketplace_kernel.domain.dtos import ConversationInfo, MessageInfo
from marketplace_kernel.domain.rules import validate_message_content
from marketplace_kernel.exceptions import (
    ConversationNotFoundError,
    InvalidFieldError,
    MessageNotFoundError,
    NotAuthorizedPartyError,
)
from marketplace_kernel.logging_config import get_logger
from marketplace_kernel.models.conversation import Conversation, Message
from marketplace_kernel.services.base import BaseService

logger = get_logger("services.messaging")


class MessagingService(BaseService[Message]):

    def start_conversation(
        self,
        client_id: UUID,
        freelancer_id: UUID,
        job_id: UUID | None = None,
        contract_id: UUID | None = None,
    ) -> ConversationInfo:
        """Return the existing conversation for this pair and job, or open one."""
        if client_id == freelancer_id:
            raise InvalidFieldError(
                "freelancer_id", "must differ from client_id", str(freelancer_id)
            )

        stmt = select(Conversation).where(
            Conversation.client_id == client_id,
            Conversation.freelancer_id == freelancer_id,
        )
        if job_id is None:
            stmt = stmt.where(Conversation.job_id.is_(None))
        else:
            stmt = stmt.where(Conversation.job_id == job_id)
        conversation = self.session.execute(stmt.limit(1)).scalar_one_or_none()
        if conversation is not None:
            return ConversationInfo.from_model(conversation)

        now = self.clock.now()
        conversation = Conversation(
            client_id=client_id,
            freelancer_id=freelancer_id,
            job_id=job_id,
            contract_id=contract_id,
            created_at=now,
            updated_at=now,
        )
        self.session.add(conversation)
        self.session.flush()

        logger.info(
            "conversation_started",
            extra={"conversation_id": str(conversation.id)},
        )
        return ConversationInfo.from_model(conversation)

    def send_message(
        self,
        conversation_id: UUID,
        sender_id: UUID,
        content: str,
    ) -> MessageInfo:
        content = validate_message_content(content, self.rules)

        conversation = self.session.get(Conversation, conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(str(conversation_id))
        if not conversation.has_participant(sender_id):
            raise NotAuthorizedPartyError(
                entity_type="Conversation",
                entity_id=str(conversation_id),
                actor_id=str(sender_id),
                role="participant",
            )

        now = self.clock.now()
        message = Message(
            conversation_id=conversation_id,
            sender_id=sender_id,
            content=content,
            is_read=False,
            created_at=now,
            updated_at=now,
        )
        self.session.add(message)
        conversation.last_message_at = now
        self.session.flush()

        logger.info(
            "message_sent",
            extra={
                "conversation_id": str(conversation_id),
                "message_id": str(message.id),
            },
        )
        return MessageInfo.from_model(message)

    def mark_read(self, message_id: UUID, reader_id: UUID) -> MessageInfo:
        """Flip is_read for the recipient.  Marking twice is a no-op."""
        message = self.session.get(Message, message_id)
        if message is None:
            raise MessageNotFoundError(str(message_id))

        conversation = message.conversation
        if not conversation.has_participant(reader_id) or reader_id == message.sender_id:
            raise NotAuthorizedPartyError(
                entity_type="Message",
                entity_id=str(message_id),
                actor_id=str(reader_id),
                role="recipient",
            )

        if not message.is_read:
            message.is_read = True
            message.read_at = self.clock.now()
            self.session.flush()

        return MessageInfo.from_model(message)
