import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    """Read FIREBASE_* settings, accepting the NEXT_PUBLIC_ prefix used by the web client"""
    return os.getenv(name) or os.getenv(f"NEXT_PUBLIC_{name}") or default


class FirebaseConfigError(RuntimeError):
    """Raised when required Firebase settings are missing"""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(
            f"Missing required Firebase configuration: {', '.join(missing)}. "
            "Please check your .env file and ensure all FIREBASE_* variables are set."
        )


@dataclass(frozen=True)
class FirebaseConfig:
    apiKey: Optional[str]
    authDomain: Optional[str]
    projectId: Optional[str]
    storageBucket: Optional[str]
    messagingSenderId: Optional[str]
    appId: Optional[str]


def load_firebase_config() -> FirebaseConfig:
    return FirebaseConfig(
        apiKey=_env("FIREBASE_API_KEY"),
        authDomain=_env("FIREBASE_AUTH_DOMAIN"),
        projectId=_env("FIREBASE_PROJECT_ID"),
        storageBucket=_env("FIREBASE_STORAGE_BUCKET"),
        messagingSenderId=_env("FIREBASE_MESSAGING_SENDER_ID"),
        appId=_env("FIREBASE_APP_ID"),
    )


def validate_firebase_config(config: FirebaseConfig) -> FirebaseConfig:
    """
    Validate that all required Firebase configuration values are present.

    Raises:
        FirebaseConfigError: listing every missing setting
    """
    missing = [f.name for f in fields(config) if not getattr(config, f.name)]
    if missing:
        raise FirebaseConfigError(missing)
    return config


# Firebase Configuration
FIREBASE_PROJECT_ID = _env("FIREBASE_PROJECT_ID")
GOOGLE_APPLICATION_CREDENTIALS = os.getenv("GOOGLE_APPLICATION_CREDENTIALS")

# Identity Toolkit REST endpoint (point at the auth emulator for local development)
IDENTITY_TOOLKIT_URL = os.getenv(
    "IDENTITY_TOOLKIT_URL", "https://identitytoolkit.googleapis.com/v1"
)

# requestUri sent with Google sign-in; must be an authorized domain of the project
OAUTH_REQUEST_URI = os.getenv("OAUTH_REQUEST_URI", "http://localhost")

# Frontend base URL, used in password reset / verification links
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
