"""Google OAuth constants."""

AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
REDIRECT_URI = "http://localhost:8000/callback"
SCOPE = "https://www.googleapis.com/auth/calendar.events"
STATE = "state-token"

CALENDAR_API_BASE = "https://www.googleapis.com/calendar/v3/"

ENV_CLIENT_ID = "GOOGLE_CLIENT_ID"
ENV_CLIENT_SECRET = "GOOGLE_CLIENT_SECRET"
ENV_REDIRECT_URI = "GOOGLE_OAUTH_REDIRECT_URI"
ENV_SCOPE = "GOOGLE_OAUTH_SCOPE"

TOKEN_FILENAME = "token.json"
CALLBACK_TIMEOUT_SEC = 300
EXCHANGE_TIMEOUT_SEC = 30.0

SUCCESS_TEXT = "Authorization code received. You can close this window."
MISSING_CODE_TEXT = "Authorization code not found"
DUPLICATE_CODE_TEXT = "Authorization code already received"
STATE_MISMATCH_TEXT = "State mismatch"
