"""WSGI entry point for the analysis API."""
from priorart.web import create_app

app = create_app()

if __name__ == "__main__":
    app.run()
