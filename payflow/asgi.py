"""
ASGI entrypoint: expose `app` for process managers / deployments.

- En production, un process manager (ex: gunicorn/uvicorn-workers, hypercorn) importe `payflow.asgi:app`.
- Toute la configuration FastAPI (routes, middlewares, handlers) est centralisée
  dans payflow.app_setup.factory, ce fichier ne fait qu'exposer l'instance `app`.
"""

from payflow.app import app

if __name__ == "__main__":
    import os
    import uvicorn
    uvicorn.run(
        "payflow.asgi:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=True,
    )
