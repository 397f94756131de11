"""
ASGI entry point.

    uvicorn main:app --host 0.0.0.0 --port 5000
"""
from api.app import create_app
from config.settings import settings

app = create_app(settings)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
