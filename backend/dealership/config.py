# backend/dealership/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/dealership.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///dealership.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # bcrypt cost factor; tests lower it to keep fixtures fast
    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

    # Fallback agent commission when neither the item nor the agent carries one (basis points)
    DEFAULT_COMMISSION_BPS = int(os.environ.get("DEFAULT_COMMISSION_BPS", "1000"))

    # External ID-card OCR service (optional)
    OCR_SERVICE_URL = os.environ.get("OCR_SERVICE_URL", "")
    OCR_API_KEY = os.environ.get("OCR_API_KEY", "")
    OCR_TIMEOUT_SECONDS = float(os.environ.get("OCR_TIMEOUT_SECONDS", "15"))

    # Comma separated list of browser origins allowed to call the API
    CORS_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            "CORS_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:4173,http://127.0.0.1:4173",
        ).split(",")
        if origin.strip()
    ]

    COMPANY_NAME = os.environ.get("COMPANY_NAME", "Motor Dealership")
