"""Exceptions spécifiques au domaine Payment."""
from marketplace.core.exceptions import ConflictException, InvalidRequestException, NotFoundException


class PaymentNotFoundException(NotFoundException):
    def __init__(self, payment_id: int):
        super().__init__(f"Paiement introuvable : ID={payment_id}")
        self.payment_id = payment_id


class DuplicateTransactionException(ConflictException):
    def __init__(self, transaction_id: str):
        super().__init__(f"La transaction '{transaction_id}' existe déjà.")
        self.transaction_id = transaction_id


class PaymentStateException(InvalidRequestException):
    """Opération impossible dans le statut actuel du paiement."""
    pass
