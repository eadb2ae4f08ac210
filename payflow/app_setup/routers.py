"""
Registre central des routers (web, API v1, health).
- Web: payments web_router (validation du retour Stripe)
- API v1: payments api_router (initiation, webhook)
- Health: health_router
"""
from fastapi import FastAPI
from payflow.payments import views as payments_views
from payflow.health.router import router as health_router

def register_routers(app: FastAPI) -> None:
    """
    Agrège tous les routers de l'application.
    - L'ordre n'a pas d'impact sauf conflits de chemins (évités par préfixes).
    """
    # Pages web (HTML / redirections)
    app.include_router(payments_views.web_router)
    # API v1
    app.include_router(payments_views.api_router)
    # Health & monitoring
    app.include_router(health_router)
