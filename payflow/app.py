# module payflow.app
from payflow.app_setup.factory import create_app

# App globale
app = create_app()
