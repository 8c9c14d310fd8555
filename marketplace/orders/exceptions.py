"""Exceptions spécifiques au domaine Order."""
from marketplace.core.exceptions import ForbiddenException, InvalidRequestException, NotFoundException


class OrderNotFoundException(NotFoundException):
    def __init__(self, order_id: int):
        super().__init__(f"Commande introuvable : ID={order_id}")
        self.order_id = order_id


class InvalidOrderStatusException(InvalidRequestException):
    def __init__(self, status: str):
        super().__init__(f"Statut de commande invalide : '{status}'")
        self.status = status


class InvalidOrderTransitionException(InvalidRequestException):
    def __init__(self, current: str, target: str):
        super().__init__(f"Transition de commande interdite : {current} -> {target}")
        self.current = current
        self.target = target


class OrderCannotBeCancelledException(InvalidRequestException):
    def __init__(self, order_id: int, status: str):
        super().__init__(f"La commande ID={order_id} ne peut pas être annulée (statut: {status}).")
        self.order_id = order_id
        self.status = status


class OrderAccessForbiddenException(ForbiddenException):
    def __init__(self, order_id: int):
        super().__init__(f"Accès refusé à la commande ID={order_id}.")
        self.order_id = order_id


class MixedMerchantOrderException(InvalidRequestException):
    """Les lignes d'une commande doivent toutes appartenir au même commerçant."""
    def __init__(self, merchant_ids):
        ids = ", ".join(str(m) for m in sorted(merchant_ids))
        super().__init__(f"Une commande ne peut regrouper que les produits d'un seul commerçant (commerçants : {ids}).")
        self.merchant_ids = set(merchant_ids)


class OrderMerchantMismatchException(InvalidRequestException):
    def __init__(self, declared: int, actual: int):
        super().__init__(f"Le commerçant indiqué ({declared}) ne vend pas ces produits (commerçant : {actual}).")
        self.declared = declared
        self.actual = actual
