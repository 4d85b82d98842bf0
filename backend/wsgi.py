try:
    from backend.sinfiltro.server import create_app
except ImportError:  # pragma: no cover
    from sinfiltro.server import create_app

app, socketio = create_app()
