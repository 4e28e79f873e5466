# crowdsafe/config/cors.py
import os

from fastapi.middleware.cors import CORSMiddleware

DEV_ORIGINS = [
    "http://localhost:5173",   # React dev server
    "http://127.0.0.1:5173",
    "http://localhost:8080",   # vite preview
]


def env_origins():
    raw = os.getenv("CORS_ORIGINS", "")
    return [o.strip() for o in raw.split(",") if o.strip()]


def add_cors(app, extra_origins=None, allow_all=False):
    """
    Attach CORS middleware to a FastAPI app.

    The gateway allows the dashboard dev servers plus CORS_ORIGINS.
    The analysis function is public like the hosted function was,
    so it passes allow_all=True.
    """
    if allow_all:
        origins = ["*"]
    else:
        origins = list(DEV_ORIGINS)
        origins.extend(env_origins())
        if extra_origins:
            origins.extend(extra_origins)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        # browsers reject credentials with a wildcard origin
        allow_credentials=not allow_all,
        allow_methods=["*"],
        allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
    )
