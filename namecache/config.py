"""App configuration"""

import os
from datetime import timedelta

from dotenv import load_dotenv

load_dotenv()

REQUIRED_ENV = (
    "TWITCH_CLIENT_ID",
    "TWITCH_OAUTH_TOKEN",
)

env: dict[str, str] = {name: os.getenv(name, "") for name in REQUIRED_ENV}

TWITCH_CLIENT_ID = env["TWITCH_CLIENT_ID"]
TWITCH_OAUTH_TOKEN = env["TWITCH_OAUTH_TOKEN"].removeprefix("oauth:")

# Checked by the CLI, importing the library never raises
missing_env = [name for name, value in env.items() if not value]

# === Twitch API configuration ===

TWITCH_API_URL = os.getenv("TWITCH_API_URL", "https://api.twitch.tv/helix").rstrip("/")
LOOKUP_TIMEOUT = float(os.getenv("LOOKUP_TIMEOUT", "10"))

# === Cache configuration ===

FAIL_WINDOW = timedelta(minutes=1)
FAIL_THRESHOLD = 5
COOLDOWN = timedelta(minutes=1)

# System accounts that show up in chat but are not real users
RESERVED_LOGINS = ("jtv", "twitchnotify")

# Lookup failure tags that count toward the cool-down
TIMEOUT_EXCEPTIONS = ("SocketTimeoutException", "IOException")

# === Other configuration ===

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
