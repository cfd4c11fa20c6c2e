from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from auth_service.routes.auth import router as auth_router

app = FastAPI(title="Relay Hub Auth Service")

app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["GET", "POST"], allow_headers=["*"])

app.add_api_route("/health", endpoint=lambda: {"status": "ok"}, methods=["GET"])

app.include_router(auth_router, prefix="/api", tags=["auth"])
