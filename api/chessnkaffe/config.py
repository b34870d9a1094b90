import os

APP_NAME = "ChessnKaffe API"
MATCH_TIMEZONE = os.getenv("MATCH_TIMEZONE", "Europe/Copenhagen")
MATCH_TOP_N = int(os.getenv("MATCH_TOP_N", "10"))
PROPOSAL_TTL_DAYS = int(os.getenv("PROPOSAL_TTL_DAYS", "3"))
PROPOSAL_LEAD_HOURS = int(os.getenv("PROPOSAL_LEAD_HOURS", "3"))
DECLINE_COOLDOWN_HOURS = int(os.getenv("DECLINE_COOLDOWN_HOURS", "24"))
BOOKING_HORIZON_DAYS = int(os.getenv("BOOKING_HORIZON_DAYS", "14"))
NOTIFICATIONS_LIMIT = int(os.getenv("NOTIFICATIONS_LIMIT", "10"))
PROPOSAL_COMMENTS_MAX = int(os.getenv("PROPOSAL_COMMENTS_MAX", "150"))

JWT_SECRET = os.getenv("JWT_SECRET", "")
ACCESS_TOKEN_TTL_MINUTES = int(os.getenv("ACCESS_TOKEN_TTL_MINUTES", "60"))
DEV_MODE = os.getenv("DEV_MODE", "false").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

CHESSCOM_API_BASE = os.getenv("CHESSCOM_API_BASE", "https://api.chess.com/pub")
LICHESS_API_BASE = os.getenv("LICHESS_API_BASE", "https://lichess.org/api")
RATINGS_HTTP_TIMEOUT = float(os.getenv("RATINGS_HTTP_TIMEOUT", "10.0"))

RL_AUTH_LOGIN_LIMIT = int(os.getenv("RL_AUTH_LOGIN_LIMIT", "30"))
RL_MATCH_FIND_LIMIT = int(os.getenv("RL_MATCH_FIND_LIMIT", "60"))
RL_CONNECTION_PROPOSE_LIMIT = int(os.getenv("RL_CONNECTION_PROPOSE_LIMIT", "20"))
RL_CONNECTION_RESPOND_LIMIT = int(os.getenv("RL_CONNECTION_RESPOND_LIMIT", "60"))
RL_WINDOW_SECONDS = int(os.getenv("RL_WINDOW_SECONDS", "60"))

SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "chessnkaffe_session")
SESSION_COOKIE_SECURE = os.getenv("SESSION_COOKIE_SECURE", "false").lower() == "true"
ALLOWED_ORIGINS = [
    o.strip()
    for o in os.getenv("ALLOWED_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
    if o.strip()
]
