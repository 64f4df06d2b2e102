from fastapi.middleware.cors import CORSMiddleware


def configure_cors(app, cors_origins: str = ""):
    origins = [o.strip() for o in (cors_origins or "").split(",") if o.strip()]
    # storefront dev server
    if not origins:
        origins = ["http://localhost:3000"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        max_age=86400,
    )
