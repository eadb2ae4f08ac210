"""payflow: réconciliation des paiements Stripe avec les paniers et commandes de la boutique."""
