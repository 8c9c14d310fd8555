"""
Table statique des droits par rôle.

Les routes déclarent les permissions qu'elles exigent ; la vérification se
fait par simple recherche dans cette table.
"""
from typing import Dict, FrozenSet

ROLE_RIGHTS: Dict[str, FrozenSet[str]] = {
    "admin": frozenset({
        # Gestion des utilisateurs
        "getUsers", "manageUsers", "manageClients", "manageCouriers", "viewUserDetails",
        # Gestion des commandes
        "manageOrders", "viewOrderDetails", "updateOrderStatus", "cancelOrder", "assignOrderToLivreur",
        # Gestion des livraisons
        "manageDeliveries",
        # Gestion des produits
        "manageProducts", "manageStores",
        # Promotions et paiements
        "managePromotions", "managePayments", "approveRatings", "manageDiscounts",
        # Panier
        "viewCart", "addToCart", "updateCartItem", "removeFromCart", "clearCart",
        # Rapports et analyses
        "viewReports", "viewAnalytics",
        "manageSettings",
        # Gestion des administrateurs
        "createAdmin", "updateAdminPermissions", "deleteAdmin", "viewAdmins", "viewAdminLogs",
        # Notifications
        "createNotification", "viewAllNotifications", "deleteAllNotifications",
    }),
    "client": frozenset({
        "placeOrder", "trackOrder", "cancelOrder", "requestRefund", "viewOrderHistory",
        "viewOrderDetails", "generateOrderReceipt", "calculateOrderTotal",
        "viewCart", "addToCart", "updateCartItem", "removeFromCart", "clearCart",
        "viewPaymentHistory", "viewDeliveryHistory",
        "viewNotifications", "rateDelivery", "viewRatings",
        "editProfile", "contactSupport",
    }),
    "livreur": frozenset({
        "pickUpOrder", "confirmPickup", "deliverOrder", "confirmDelivery", "updateDeliveryStatus",
        "trackDelivery", "viewOrderDetails", "assignOrder",
        "viewDeliveryHistory", "viewPaymentHistory", "viewEarnings",
        "rateCustomer", "rateClient", "viewRatings",
        "editProfile", "contactSupport",
        "viewNotifications", "markNotificationsAsRead", "deleteNotifications",
    }),
    "merchant": frozenset({
        # Produits et inventaire
        "addProduct", "updateProduct", "removeProduct", "updateProductStock", "setProductVisibility",
        # Commandes
        "viewOrderDetails", "processOrder", "viewOrderHistory", "updateOrderStatus", "managePendingOrders",
        # Promotions et retours
        "createPromotion", "viewPromotionPerformance", "manageReturns",
        "viewSalesAnalytics", "viewCustomerFeedback", "trackRevenue",
        "receiveOrderAlerts", "receiveStockAlerts", "setDeliveryAvailability", "trackDeliveryStatus",
        "resolveComplaints",
        "viewNotifications", "markNotificationsAsRead", "deleteNotifications",
    }),
    "support": frozenset({
        "viewUserDetails", "viewOrderHistory", "manageComplaints", "viewTickets",
        "respondToClients", "resolveIssues", "viewSupportStatistics",
        "viewNotifications", "markNotificationsAsRead", "deleteNotifications",
    }),
}

ROLES = tuple(ROLE_RIGHTS.keys())


def get_role_rights(role: str) -> FrozenSet[str]:
    """Retourne les permissions d'un rôle (ensemble vide si le rôle est inconnu)."""
    return ROLE_RIGHTS.get(role, frozenset())


def has_permission(role: str, permission: str) -> bool:
    return permission in get_role_rights(role)
