# -*- coding: utf-8 -*-
"""Runtime configuration, read from environment variables with local defaults."""
import os


# Storage - a JSON file standing in for browser local storage
PLANNER_STORAGE_PATH = os.getenv("PLANNER_STORAGE_PATH", "data/planner_storage.json")
PLANNER_STORAGE_KEY = os.getenv("PLANNER_STORAGE_KEY", "teacherPlannerClasses")

# Authentication - a single authorized principal
PLANNER_AUTHORIZED_EMAIL = os.getenv("PLANNER_AUTHORIZED_EMAIL", "teacher@example.org")
PLANNER_PASSWORD_HASH = os.getenv("PLANNER_PASSWORD_HASH", "")
# Signs email sign-in links; unset means a random secret for this process only
PLANNER_AUTH_SECRET = os.getenv("PLANNER_AUTH_SECRET", "")
PLANNER_SIGN_IN_URL = os.getenv("PLANNER_SIGN_IN_URL", "http://localhost:8004/auth/complete")
PLANNER_LINK_TTL_SECONDS = int(os.getenv("PLANNER_LINK_TTL_SECONDS", "3600"))

# Service
PLANNER_SERVICE_HOST = os.getenv("PLANNER_SERVICE_HOST", "127.0.0.1")
PLANNER_SERVICE_PORT = int(os.getenv("PLANNER_SERVICE_PORT", "8004"))

PLANNER_LOG_LEVEL = os.getenv("PLANNER_LOG_LEVEL", "INFO")
