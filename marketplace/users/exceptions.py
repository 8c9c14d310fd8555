"""Exceptions spécifiques au domaine User."""
from marketplace.core.exceptions import ConflictException, InvalidRequestException, NotFoundException


class UserNotFoundException(NotFoundException):
    def __init__(self, user_id: int):
        super().__init__(f"Utilisateur avec ID {user_id} non trouvé.")
        self.user_id = user_id


class DuplicateEmailException(ConflictException):
    def __init__(self, email: str):
        super().__init__(f"L'email '{email}' est déjà utilisé.")
        self.email = email


class InvalidRoleException(InvalidRequestException):
    def __init__(self, role: str):
        super().__init__(f"Le rôle '{role}' est invalide.")
        self.role = role
