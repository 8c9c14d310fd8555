"""Exceptions spécifiques au domaine Ticket."""
from marketplace.core.exceptions import ConflictException, ForbiddenException, InvalidRequestException, NotFoundException


class TicketNotFoundException(NotFoundException):
    def __init__(self, ticket_id: int):
        super().__init__(f"Ticket introuvable : ID={ticket_id}")
        self.ticket_id = ticket_id


class SupportAgentNotFoundException(NotFoundException):
    def __init__(self, agent_id: int):
        super().__init__(f"Agent de support introuvable : ID={agent_id}")
        self.agent_id = agent_id


class TicketClosedException(InvalidRequestException):
    def __init__(self, ticket_id: int):
        super().__init__(f"Le ticket ID={ticket_id} est fermé et ne peut plus être modifié.")
        self.ticket_id = ticket_id


class TicketAlreadyAssignedException(ConflictException):
    def __init__(self, ticket_id: int):
        super().__init__(f"Le ticket ID={ticket_id} est déjà assigné à un autre agent.")
        self.ticket_id = ticket_id


class AgentOverloadedException(ForbiddenException):
    """L'agent a atteint son nombre maximal de tickets ouverts."""
    def __init__(self, agent_id: int, max_open_tickets: int):
        super().__init__(f"L'agent ID={agent_id} ne peut plus accepter de tickets (maximum {max_open_tickets}).")
        self.agent_id = agent_id


class InvalidEscalationException(InvalidRequestException):
    pass


class TicketAccessDeniedException(ForbiddenException):
    def __init__(self, ticket_id: int):
        super().__init__(f"Le ticket ID={ticket_id} n'appartient pas à cet utilisateur.")
        self.ticket_id = ticket_id
