"""
Configuration spécifique au module Livreurs.
"""
ASSIGNMENT_STATUS_IN_PROGRESS: str = "in_progress"
ASSIGNMENT_STATUS_COMPLETED: str = "completed"
ASSIGNMENT_STATUS_CANCELLED: str = "cancelled"

# Statuts qu'un livreur peut poser lui-même sur une livraison
COURIER_ALLOWED_STATUS = ("in_progress", "delivered", "cancelled")
