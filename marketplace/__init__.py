"""
Backend de la marketplace : commandes clients, inventaire et promotions des
commerçants, livraisons assurées par les livreurs.
"""
